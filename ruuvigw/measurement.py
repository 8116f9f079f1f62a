"""Decoding of RuuviTag data format 5 (RAWv2) BLE advertisements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

#: Offsets inside the raw advertisement where the manufacturer data lives.
_MANUFACTURER_OFFSET = 5
_FORMAT_OFFSET = 7
_PAYLOAD_END = 25

#: Ruuvi Innovations company identifier, little endian as sent on air.
RUUVI_MANUFACTURER_ID = b"\x99\x04"
#: The only data format this gateway understands.
DATA_FORMAT_RAWV2 = 0x05


class AdvertisementError(ValueError):
    """Raised when a Ruuvi advertisement is too short to be decoded."""


@dataclass(frozen=True)
class Measurement:
    """One set of readings from a RuuviTag."""

    bda: str
    temperature: float
    humidity: float
    pressure: int
    acceleration_x: float
    acceleration_y: float
    acceleration_z: float
    battery: float
    txpower: int
    moves: int
    sequence: int
    name: str = ""


def format_address(bda: bytes) -> str:
    """Render a six-byte Bluetooth device address as ``AA:BB:CC:DD:EE:FF``."""
    bda = bytes(bda)
    if len(bda) != 6:
        raise ValueError(f"device address must be 6 bytes, got {len(bda)}")
    return ":".join(f"{octet:02X}" for octet in bda)


def _u16(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], "big")


def _acceleration(raw: int) -> float:
    value = raw / 1000.0
    if value > 32.767:
        value -= 65.536
    return value


def decode_advertisement(bda: bytes, adv: bytes) -> Optional[Measurement]:
    """Decode a raw advertisement received from ``bda``.

    Returns ``None`` for advertisements that are empty, come from another
    manufacturer or use a data format other than RAWv2. Raises
    :class:`AdvertisementError` when a RAWv2 advertisement is truncated.
    """
    adv = bytes(adv)
    if len(adv) <= _FORMAT_OFFSET:
        return None
    if adv[_MANUFACTURER_OFFSET:_MANUFACTURER_OFFSET + 2] != RUUVI_MANUFACTURER_ID:
        return None
    if adv[_FORMAT_OFFSET] != DATA_FORMAT_RAWV2:
        return None
    if len(adv) < _PAYLOAD_END:
        raise AdvertisementError(
            f"RAWv2 advertisement needs {_PAYLOAD_END} bytes, got {len(adv)}"
        )

    temperature = _u16(adv, 8) * 0.005
    if temperature > 163.836:
        temperature -= 327.68

    power_info = adv[21]
    return Measurement(
        bda=format_address(bda),
        temperature=temperature,
        humidity=_u16(adv, 10) * 0.0025,
        pressure=_u16(adv, 12) + 50000,
        acceleration_x=_acceleration(_u16(adv, 14)),
        acceleration_y=_acceleration(_u16(adv, 16)),
        acceleration_z=_acceleration(_u16(adv, 18)),
        battery=(((adv[20] << 3) | (power_info >> 5)) + 1600) / 1000.0,
        txpower=(power_info & 0x1F) * 2 - 40,
        moves=adv[22],
        sequence=_u16(adv, 23),
    )