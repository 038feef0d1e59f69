"""Top-level configuration for teamscall."""

from pydantic import BaseModel, ValidationError

from teamscall.core.config.mqtt_config import MQTTConfig
from teamscall.core.config.watch_config import WatchConfig
from teamscall.core.exceptions import ConfigError


class Config(BaseModel):
    """Aggregate of all configuration sections."""

    mqtt: MQTTConfig
    watch: WatchConfig

    def __repr__(self) -> str:
        return f"Config(mqtt={self.mqtt!r}, watch={self.watch!r})"


def _describe_validation_error(section: str, exc: ValidationError) -> list[str]:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or section
        problems.append(f"Invalid {section} setting {location}: {error.get('msg')}")
    return problems


def load_config() -> Config:
    """Build the configuration from the environment.

    Raises:
        ConfigError: If a required variable is missing or a value is invalid.
            All problems are collected before raising.
    """
    problems: list[str] = []
    mqtt: MQTTConfig | None = None
    watch: WatchConfig | None = None

    try:
        mqtt = MQTTConfig()
    except ValidationError as exc:
        problems.extend(_describe_validation_error("MQTT", exc))
    else:
        problems.extend(
            f"Missing environment variable {name}" for name in mqtt.get_missing_config()
        )
        if mqtt.broker:
            try:
                mqtt.endpoint
            except ValueError as exc:
                problems.append(str(exc))

    try:
        watch = WatchConfig()
    except ValidationError as exc:
        problems.extend(_describe_validation_error("watch", exc))

    if problems or mqtt is None or watch is None:
        raise ConfigError(problems)

    return Config(mqtt=mqtt, watch=watch)
