"""Publish Microsoft Teams call presence to MQTT."""

__version__ = "0.1.0"
