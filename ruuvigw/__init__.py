"""Decode RuuviTag RAWv2 advertisements, name tags from an ethers table and publish readings over MQTT."""

__version__ = "0.1.0"
__all__ = ["__version__"]