"""Configuration sections and loader."""

from .config import Config, load_config
from .mqtt_config import MQTTConfig
from .watch_config import WatchConfig

__all__ = [
    "Config",
    "MQTTConfig",
    "WatchConfig",
    "load_config",
]
