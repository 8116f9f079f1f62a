[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ruuvigw"
version = "0.1.0"
description = "Decode RuuviTag BLE advertisements and publish the readings over MQTT"
requires-python = ">=3.10"
dependencies = [
    "paho-mqtt",
]
keywords = ["ruuvi", "ruuvitag", "bluetooth", "ble", "mqtt", "gateway", "sensor"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Home Automation",
    "Topic :: Communications",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ruuvigw = "ruuvigw.gateway:main"

[tool.hatch.build.targets.wheel]
packages = ["ruuvigw"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
