"""Buffering of measurements and publishing them to an MQTT broker."""

from __future__ import annotations

import dataclasses
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Tuple
from urllib.parse import urlsplit

from ruuvigw.ethers import DEFAULT_NAME_LENGTH, EthersError, EthersTable
from ruuvigw.measurement import Measurement

logger = logging.getLogger("ruuvi-gw-mqtt")

#: Roughly how many measurements a 1028-byte no-split ring buffer holds.
DEFAULT_CAPACITY = 11
#: How long to wait for another measurement before the session is done.
DEFAULT_RECEIVE_TIMEOUT = 10.0

_DEFAULT_PORTS = {"mqtt": 1883, "tcp": 1883, "mqtts": 8883, "ssl": 8883}
_TLS_SCHEMES = {"mqtts", "ssl"}


@dataclass
class MqttSettings:
    """Where and how measurements are published."""

    uri: str
    client_id: str = ""
    topic: str = "ruuvi"
    qos: int = 0
    retain: bool = False
    timeout: float = 30.0
    ca_cert: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None

    def broker_address(self) -> Tuple[str, int]:
        """Return the broker's host and port taken from ``uri``."""
        parts = urlsplit(self.uri)
        scheme = parts.scheme.lower()
        if scheme not in _DEFAULT_PORTS:
            raise ValueError(f"unsupported broker URI scheme: {parts.scheme!r}")
        if not parts.hostname:
            raise ValueError(f"broker URI has no host: {self.uri!r}")
        return parts.hostname, parts.port or _DEFAULT_PORTS[scheme]

    @property
    def uses_tls(self) -> bool:
        """Whether the connection is to be encrypted."""
        scheme = urlsplit(self.uri).scheme.lower()
        return scheme in _TLS_SCHEMES or self.ca_cert is not None


class MeasurementQueue:
    """Bounded FIFO of measurements waiting to be published."""

    def __init__(
        self,
        ethers: Optional[EthersTable] = None,
        ignore_unknown: bool = False,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.ethers = ethers
        self.ignore_unknown = ignore_unknown
        self.receive_timeout = DEFAULT_RECEIVE_TIMEOUT
        self._items: "queue.Queue[Measurement]" = queue.Queue(maxsize=capacity)

    def __len__(self) -> int:
        return self._items.qsize()

    def _lookup(self, bda: str) -> Optional[str]:
        if self.ethers is None:
            return None
        try:
            return self.ethers.name_for(bda, DEFAULT_NAME_LENGTH)
        except EthersError:
            return None

    def add(self, measurement: Measurement) -> bool:
        """Name ``measurement`` and queue it.

        Returns ``False`` when the tag is unknown and unknown tags are ignored,
        or when the queue is full.
        """
        name = self._lookup(measurement.bda)
        if name is None:
            if self.ignore_unknown:
                logger.info("Ignoring unknown RuuviTag %s", measurement.bda)
                return False
            name = measurement.bda
        try:
            self._items.put_nowait(dataclasses.replace(measurement, name=name))
        except queue.Full:
            logger.warning("Measurement queue full, dropping %s", measurement.bda)
            return False
        return True

    def drain(self) -> Iterator[Measurement]:
        """Yield queued measurements until none arrives within ``receive_timeout``."""
        while True:
            try:
                if self.receive_timeout > 0:
                    yield self._items.get(timeout=self.receive_timeout)
                else:
                    yield self._items.get_nowait()
            except queue.Empty:
                return


def _format_txpower(value: int) -> str:
    # A zero precision integer conversion prints nothing for zero.
    return str(value) if value else ""


def measurement_messages(measurement: Measurement, base_topic: str) -> List[Tuple[str, str]]:
    """Return the ``(topic, payload)`` pairs published for one measurement."""
    prefix = f"{base_topic}/{measurement.name}"
    fields = [
        ("mac", measurement.bda),
        ("temperature", f"{measurement.temperature:.2f}"),
        ("humidity", f"{measurement.humidity:.2f}"),
        ("pressure", str(measurement.pressure // 100)),
        ("acceleration_x", f"{measurement.acceleration_x:.3f}"),
        ("acceleration_y", f"{measurement.acceleration_y:.3f}"),
        ("acceleration_z", f"{measurement.acceleration_z:.3f}"),
        ("battery", f"{measurement.battery:.3f}"),
        ("txpower", _format_txpower(measurement.txpower)),
        ("moves", str(measurement.moves)),
        ("sequence", str(measurement.sequence)),
    ]
    return [(f"{prefix}/{field}", payload) for field, payload in fields]


def _log_measurement(m: Measurement) -> None:
    logger.info("")
    logger.info("Device Address: %s", m.bda)
    logger.info("Device Name:    %s", m.name)
    logger.info("Temperature:    %.2f C", m.temperature)
    logger.info("Humidity:       %.2f %%", m.humidity)
    logger.info("Pressure:       %d hPa", m.pressure // 100)
    logger.info("Acceleration X: %.3f G", m.acceleration_x)
    logger.info("Acceleration Y: %.3f G", m.acceleration_y)
    logger.info("Acceleration Z: %.3f G", m.acceleration_z)
    logger.info("Battery:        %.3f V", m.battery)
    logger.info("TX Power:       %d dBm", m.txpower)
    logger.info("Moves:          %d", m.moves)
    logger.info("Sequence:       %d", m.sequence)


def publish_measurements(client: Any, queue: MeasurementQueue, settings: MqttSettings) -> int:
    """Publish every queued measurement through ``client``; return how many."""
    count = 0
    for measurement in queue.drain():
        _log_measurement(measurement)
        for topic, payload in measurement_messages(measurement, settings.topic):
            client.publish(topic, payload, settings.qos, settings.retain)
        count += 1
    return count


def _create_client(settings: MqttSettings) -> Any:
    import paho.mqtt.client as paho

    if hasattr(paho, "CallbackAPIVersion"):
        client = paho.Client(paho.CallbackAPIVersion.VERSION2, client_id=settings.client_id)
    else:
        client = paho.Client(client_id=settings.client_id)
    if settings.uses_tls:
        client.tls_set(
            ca_certs=settings.ca_cert,
            certfile=settings.client_cert,
            keyfile=settings.client_key,
        )
    return client


def _connect_failed(reason: Any) -> bool:
    failure = getattr(reason, "is_failure", None)
    if failure is not None:
        return bool(failure)
    return reason != 0


def run_session(
    queue: MeasurementQueue,
    settings: MqttSettings,
    client_factory: Optional[Callable[[MqttSettings], Any]] = None,
) -> bool:
    """Connect, publish the queued measurements and disconnect.

    Returns ``True`` when publishing finished and ``False`` when the session
    timed out first.
    """
    host, port = settings.broker_address()
    client = (client_factory or _create_client)(settings)
    finished = threading.Event()
    connected = threading.Event()

    def on_connect(client: Any, userdata: Any, flags: Any, reason: Any, *rest: Any) -> None:
        if _connect_failed(reason):
            logger.info("MQTT error")
            return
        connected.set()
        logger.info("MQTT connected")
        publish_measurements(client, queue, settings)
        finished.set()

    def on_disconnect(*args: Any) -> None:
        connected.clear()
        logger.info("MQTT disconnected")

    client.on_connect = on_connect
    client.on_disconnect = on_disconnect
    client.connect_async(host, port)
    client.loop_start()
    try:
        done = finished.wait(settings.timeout)
        logger.info("MQTT finished" if done else "MQTT timeout")
        return done
    finally:
        client.disconnect()
        client.loop_stop()