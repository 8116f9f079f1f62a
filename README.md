# ruuvigw

A small gateway that turns RuuviTag Bluetooth LE advertisements into MQTT
messages. It decodes RuuviTag data format 5 (RAWv2), gives each tag a
friendly name from an ethers-style table, queues the readings and publishes
every field of every reading under its own topic in a single MQTT session.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

Installing the package provides the `ruuvigw` command:

```
ruuvigw --help
```

It reads advertisement lines from a file (or standard input when the file is
`-` or left out), decodes the RuuviTag ones, queues them, and then connects
to the broker once, publishes everything queued and disconnects.

```
ruuvigw --broker mqtt://localhost:1883 --ethers ethers adverts.txt
```

### Input format

One advertisement per line: the device address, a space, and the raw
advertisement bytes in hexadecimal (spaces inside the hex are allowed).
Blank lines and lines starting with `#` are skipped.

```
# address           payload
AA:BB:CC:DD:EE:01 0201061BFF99040512FC5394C37C0004FFFC040CAC364200CD
```

Lines that are malformed, or RAWv2 advertisements too short to decode, are
logged as warnings and skipped. Advertisements from other manufacturers or in
other data formats are ignored silently.

### Options

| Option             | Meaning                                                        |
|--------------------|----------------------------------------------------------------|
| `--broker`         | broker URI (required); scheme `mqtt`, `tcp`, `mqtts` or `ssl`  |
| `--client-id`      | MQTT client id, default `ruuvi-gw`                             |
| `--topic`          | base topic, default `ruuvi`                                    |
| `--qos`            | 0, 1 or 2, default 0                                           |
| `--retain`         | publish with the retain flag                                   |
| `--timeout`        | seconds to wait for publishing to finish, default 30           |
| `--ethers`         | file mapping device addresses to names                         |
| `--ignore-unknown` | drop tags that are not in the ethers file                      |
| `--capacity`       | how many readings the queue holds, default 11                  |
| `--ca-cert`        | CA certificate; giving it also turns TLS on                    |
| `--client-cert`    | client certificate for TLS                                     |
| `--client-key`     | client key for TLS                                             |

Without a port in the URI, `mqtt`/`tcp` use 1883 and `mqtts`/`ssl` use 8883;
the `mqtts` and `ssl` schemes use TLS. Readings that arrive while the queue
is full are dropped with a warning.

After connecting, publishing ends once no further reading has been taken
from the queue for 10 seconds. If the session does not finish within
`--timeout`, it is abandoned and "MQTT timeout" is logged.

## Published topics

For every reading, one message is published per field below
`<base topic>/<tag name>/`:

| Topic suffix     | Value                                            |
|------------------|--------------------------------------------------|
| `mac`            | device address, `AA:BB:CC:DD:EE:FF`              |
| `temperature`    | degrees Celsius, two decimals                    |
| `humidity`       | percent, two decimals                            |
| `pressure`       | hPa, integer                                     |
| `acceleration_x` | G, three decimals                                |
| `acceleration_y` | G, three decimals                                |
| `acceleration_z` | G, three decimals                                |
| `battery`        | volts, three decimals                            |
| `txpower`        | dBm, integer; an empty payload when it is 0      |
| `moves`          | movement counter                                 |
| `sequence`       | measurement sequence number                      |

## Naming tags

Tags are named from a text table in the style of `/etc/ethers`: one device
address followed by a name on each line.

```
AA:BB:CC:DD:EE:01 livingroom
AA:BB:CC:DD:EE:02 freezer
```

Address matching ignores case. The name starts one character after the
address and runs to the end of the line, so every line, the last one too,
must end with a newline. Names must be at most 24 characters long. A tag that
is not in the table (or whose name is too long) is published under its
address, or dropped when unknown tags are set to be ignored.

## Using it as a library

```python
from ruuvigw.measurement import decode_advertisement, AdvertisementError
from ruuvigw.ethers import EthersTable
from ruuvigw.mqtt import MeasurementQueue, measurement_messages

ethers = EthersTable("AA:BB:CC:DD:EE:01 livingroom\n")
queue = MeasurementQueue(ethers, False, 16)
queue.receive_timeout = 0  # do not wait for further readings when draining

address = bytes.fromhex("AABBCCDDEE01")
advertisement = bytes.fromhex("0201061BFF99040512FC5394C37C0004FFFC040CAC364200CD")

try:
    reading = decode_advertisement(address, advertisement)
except AdvertisementError:
    reading = None

if reading is not None:
    queue.add(reading)

for reading in queue.drain():
    for topic, payload in measurement_messages(reading, "ruuvi"):
        print(topic, payload)
```

The main pieces:

- `ruuvigw.measurement` — the `Measurement` dataclass,
  `decode_advertisement` (returns `None` for advertisements it does not
  handle), `format_address` and `AdvertisementError`.
- `ruuvigw.ethers` — `EthersTable` with `name_for`, `load_ethers`, and the
  `EtherNotFound` and `NameTooLong` errors that `name_for` raises.
- `ruuvigw.mqtt` — `MqttSettings` (with `broker_address()` and `uses_tls`),
  `MeasurementQueue` (`add`, `drain`, `receive_timeout`),
  `measurement_messages`, `publish_measurements`, which sends every queued
  reading through any client with a paho-style `publish` method, and
  `run_session`, which connects with paho-mqtt (or a client from the
  `client_factory` you pass), publishes everything queued, disconnects and
  returns whether it finished before the timeout.
- `ruuvigw.gateway` — `parse_advertisement_line` and the `main` entry point
  behind the `ruuvigw` command.

## What it does not do

The package does not scan for Bluetooth LE advertisements itself; it only
decodes advertisements it is given, on the command line as text lines or
through the library. It does not bring up Wi-Fi or Ethernet, and it runs one
publishing session per invocation instead of sleeping and polling on its own,
so schedule the command externally if you want periodic updates.