"""MQTT broker configuration for teamscall."""

from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MQTT_PORT = 1883

# Environment variable names of the required settings, in the order they are reported
REQUIRED_ENV_VARS: dict[str, str] = {
    "broker": "MQTT_BROKER",
    "client_id": "MQTT_CLIENT_ID",
    "username": "MQTT_USERNAME",
    "password": "MQTT_PASSWORD",
}


class MQTTConfig(BaseSettings):
    """Broker connection settings.

    All four connection values are required:
    - MQTT_BROKER: host or host:port (an mqtt:// prefix is tolerated)
    - MQTT_CLIENT_ID: client identifier registered with the broker
    - MQTT_USERNAME / MQTT_PASSWORD: credentials

    Fields default to None so that every missing value can be reported at once
    via get_missing_config() instead of failing on the first one.
    """

    model_config = SettingsConfigDict(
        env_prefix="MQTT_",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    broker: str | None = Field(default=None, description="Broker host[:port]")
    client_id: str | None = Field(default=None, description="MQTT client identifier")
    username: str | None = Field(default=None, description="Broker username")
    password: SecretStr | None = Field(default=None, description="Broker password")
    keepalive: int = Field(
        default=60, gt=0, description="Keepalive interval in seconds"
    )

    @field_validator("broker", "client_id", "username", mode="before")
    def blank_to_none(cls, value: Any) -> Any:  # noqa: N805
        """Treat empty strings like unset variables."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("password", mode="before")
    def blank_password_to_none(cls, value: Any) -> Any:  # noqa: N805
        if isinstance(value, str) and not value:
            return None
        return value

    @property
    def endpoint(self) -> tuple[str, int]:
        """Split the broker setting into (host, port)."""
        if not self.broker:
            raise ValueError("MQTT broker is not configured")
        address = self.broker.strip()
        if "://" in address:
            address = address.split("://", 1)[1]
        address = address.rstrip("/")

        host, sep, port = address.rpartition(":")
        if not sep or "]" in port:
            return address.strip("[]"), DEFAULT_MQTT_PORT
        try:
            return host.strip("[]"), int(port)
        except ValueError:
            raise ValueError(f"Invalid MQTT broker port in {self.broker!r}") from None

    def get_missing_config(self) -> list[str]:
        """List the environment variables that still need to be set."""
        return [
            env_var
            for field_name, env_var in REQUIRED_ENV_VARS.items()
            if getattr(self, field_name) is None
        ]

    def is_configured(self) -> bool:
        return not self.get_missing_config()

    def __repr__(self) -> str:
        """String representation hiding sensitive information."""
        password_display = "***" if self.password else None
        return (
            f"MQTTConfig("
            f"broker={self.broker}, "
            f"client_id={self.client_id}, "
            f"username={self.username}, "
            f"password={password_display}, "
            f"keepalive={self.keepalive})"
        )
