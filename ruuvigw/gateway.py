"""Command line gateway: decode RuuviTag advertisements and publish them."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, List, Optional, Tuple

from ruuvigw.ethers import load_ethers
from ruuvigw.measurement import AdvertisementError, decode_advertisement
from ruuvigw.mqtt import DEFAULT_CAPACITY, MeasurementQueue, MqttSettings, run_session

logger = logging.getLogger("ruuvi-gw")


def parse_advertisement_line(line: str) -> Optional[Tuple[bytes, bytes]]:
    """Parse ``<AA:BB:CC:DD:EE:FF> <hex payload>`` into address and payload bytes.

    Blank lines and lines starting with ``#`` give ``None``; malformed lines
    raise :class:`ValueError`.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None
    address, _, payload = text.partition(" ")
    octets = address.split(":")
    if len(octets) != 6 or not all(len(octet) == 2 for octet in octets):
        raise ValueError(f"malformed device address: {address!r}")
    bda = bytes.fromhex("".join(octets))
    adv = bytes.fromhex("".join(payload.split()))
    return bda, adv


def _fill_queue(lines: Iterable[str], measurements: MeasurementQueue) -> int:
    added = 0
    for number, line in enumerate(lines, start=1):
        try:
            parsed = parse_advertisement_line(line)
            if parsed is None:
                continue
            measurement = decode_advertisement(*parsed)
        except (ValueError, AdvertisementError) as exc:
            logger.warning("line %d skipped: %s", number, exc)
            continue
        if measurement is not None and measurements.add(measurement):
            added += 1
    return added


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ruuvigw",
        description="Publish RuuviTag measurements to an MQTT broker.",
    )
    parser.add_argument("input", nargs="?", default="-",
                        help="file of '<address> <hex payload>' lines, '-' for stdin")
    parser.add_argument("--broker", required=True, help="broker URI, e.g. mqtt://host:1883")
    parser.add_argument("--client-id", default="ruuvi-gw")
    parser.add_argument("--topic", default="ruuvi", help="base topic")
    parser.add_argument("--qos", type=int, choices=(0, 1, 2), default=0)
    parser.add_argument("--retain", action="store_true")
    parser.add_argument("--timeout", type=float, default=30.0,
                        help="seconds to wait for publishing to finish")
    parser.add_argument("--ethers", help="file mapping addresses to names")
    parser.add_argument("--ignore-unknown", action="store_true",
                        help="drop tags that are not in the ethers file")
    parser.add_argument("--capacity", type=int, default=DEFAULT_CAPACITY)
    parser.add_argument("--ca-cert")
    parser.add_argument("--client-cert")
    parser.add_argument("--client-key")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run one gateway session and return the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = MqttSettings(
        uri=args.broker,
        client_id=args.client_id,
        topic=args.topic,
        qos=args.qos,
        retain=args.retain,
        timeout=args.timeout,
        ca_cert=args.ca_cert,
        client_cert=args.client_cert,
        client_key=args.client_key,
    )
    try:
        settings.broker_address()
    except ValueError as exc:
        parser.error(str(exc))
    if args.capacity < 1:
        parser.error("--capacity must be at least 1")

    ethers = None
    if args.ethers:
        try:
            ethers = load_ethers(args.ethers)
        except OSError as exc:
            parser.error(f"cannot read ethers file: {exc}")

    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    measurements = MeasurementQueue(ethers, args.ignore_unknown, args.capacity)

    if args.input == "-":
        added = _fill_queue(sys.stdin, measurements)
    else:
        try:
            with open(args.input, encoding="utf-8") as handle:
                added = _fill_queue(handle, measurements)
        except OSError as exc:
            parser.error(f"cannot read input: {exc}")
    logger.info("%d measurements queued", added)

    run_session(measurements, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())