import pytest

from ruuvigw.ethers import EthersTable
from ruuvigw.measurement import Measurement
from ruuvigw.mqtt import (
    MeasurementQueue,
    MqttSettings,
    measurement_messages,
    publish_measurements,
    run_session,
)

FIELDS = [
    "mac",
    "temperature",
    "humidity",
    "pressure",
    "acceleration_x",
    "acceleration_y",
    "acceleration_z",
    "battery",
    "txpower",
    "moves",
    "sequence",
]


def make_measurement(bda="AA:BB:CC:DD:EE:01", name="", sequence=7, txpower=4):
    return Measurement(
        bda=bda,
        temperature=21.25,
        humidity=40.5,
        pressure=101325,
        acceleration_x=0.012,
        acceleration_y=-0.5,
        acceleration_z=1.004,
        battery=2.977,
        txpower=txpower,
        moves=3,
        sequence=sequence,
        name=name,
    )


def drained_queue(**kwargs):
    q = MeasurementQueue(**kwargs)
    q.receive_timeout = 0
    return q


class FakeClient:
    def __init__(self, reason=0, connects=True):
        self.reason = reason
        self.connects = connects
        self.published = []
        self.address = None
        self.disconnected = False
        self.stopped = False
        self.on_connect = None

    def connect_async(self, host, port):
        self.address = (host, port)

    def loop_start(self):
        if self.connects:
            self.on_connect(self, None, {}, self.reason)

    def publish(self, topic, payload, qos, retain):
        self.published.append((topic, payload, qos, retain))

    def disconnect(self):
        self.disconnected = True

    def loop_stop(self):
        self.stopped = True


def test_messages_topics_in_order():
    m = make_measurement(name="kitchen")
    topics = [topic for topic, _ in measurement_messages(m, "home")]
    assert topics == [f"home/kitchen/{field}" for field in FIELDS]


def test_messages_payload_values():
    m = make_measurement(name="kitchen")
    payloads = dict(measurement_messages(m, "home"))
    assert payloads["home/kitchen/mac"] == m.bda
    assert payloads["home/kitchen/pressure"] == "1013"
    assert float(payloads["home/kitchen/temperature"]) == pytest.approx(m.temperature, abs=0.005)
    assert float(payloads["home/kitchen/acceleration_y"]) == pytest.approx(m.acceleration_y)
    assert int(payloads["home/kitchen/sequence"]) == m.sequence
    assert int(payloads["home/kitchen/txpower"]) == m.txpower


def test_zero_txpower_payload_is_empty():
    m = make_measurement(name="x", txpower=0)
    payloads = dict(measurement_messages(m, "t"))
    assert payloads["t/x/txpower"] == ""


def test_queue_names_known_tag():
    ethers = EthersTable("AA:BB:CC:DD:EE:01 kitchen\n")
    q = drained_queue(ethers=ethers)
    assert q.add(make_measurement()) is True
    assert [m.name for m in q.drain()] == ["kitchen"]


def test_queue_uses_address_for_unknown_tag():
    q = drained_queue(ethers=EthersTable(""))
    assert q.add(make_measurement(bda="AA:BB:CC:DD:EE:02")) is True
    assert [m.name for m in q.drain()] == ["AA:BB:CC:DD:EE:02"]


def test_queue_ignores_unknown_tag():
    q = drained_queue(ethers=None, ignore_unknown=True)
    assert q.add(make_measurement()) is False
    assert len(q) == 0


def test_queue_drops_when_full():
    q = drained_queue(capacity=2)
    results = [q.add(make_measurement(sequence=n)) for n in range(3)]
    assert results == [True, True, False]
    assert [m.sequence for m in q.drain()] == [0, 1]


def test_queue_rejects_zero_capacity():
    with pytest.raises(ValueError):
        MeasurementQueue(capacity=0)


def test_publish_measurements_sends_every_field():
    q = drained_queue()
    q.add(make_measurement(sequence=1))
    q.add(make_measurement(sequence=2))
    client = FakeClient()
    settings = MqttSettings(uri="mqtt://broker.example.com", topic="ruuvi", qos=1, retain=True)
    assert publish_measurements(client, q, settings) == 2
    assert len(client.published) == 2 * len(FIELDS)
    assert all(qos == 1 and retain is True for _, _, qos, retain in client.published)
    assert len(q) == 0


def test_broker_address_default_port():
    settings = MqttSettings(uri="mqtt://broker.example.com")
    assert settings.broker_address() == ("broker.example.com", 1883)


def test_broker_address_explicit_port_and_tls():
    settings = MqttSettings(uri="mqtts://broker.example.com:8884")
    assert settings.broker_address() == ("broker.example.com", 8884)
    assert settings.uses_tls is True


def test_broker_address_rejects_unknown_scheme():
    with pytest.raises(ValueError):
        MqttSettings(uri="ftp://broker.example.com").broker_address()


def test_run_session_publishes_and_disconnects():
    q = drained_queue()
    q.add(make_measurement())
    client = FakeClient()
    settings = MqttSettings(uri="mqtt://broker.example.com:1884", timeout=1)
    assert run_session(q, settings, lambda s: client) is True
    assert client.address == ("broker.example.com", 1884)
    assert len(client.published) == len(FIELDS)
    assert client.disconnected and client.stopped


def test_run_session_times_out_without_connection():
    q = drained_queue()
    q.add(make_measurement())
    client = FakeClient(connects=False)
    settings = MqttSettings(uri="mqtt://broker.example.com", timeout=0)
    assert run_session(q, settings, lambda s: client) is False
    assert client.published == []
    assert client.disconnected and client.stopped
    assert len(q) == 1


def test_run_session_refused_connection_publishes_nothing():
    q = drained_queue()
    q.add(make_measurement())
    client = FakeClient(reason=5)
    settings = MqttSettings(uri="mqtt://broker.example.com", timeout=0)
    assert run_session(q, settings, lambda s: client) is False
    assert client.published == []