"""Log watching and topic configuration for teamscall.

Environment Variables:
    TEAMSCALL_LOG_FILE=/path/to/logs.txt
    TEAMSCALL_BASE_TOPIC=teams_in_call
    TEAMSCALL_POLL_INTERVAL=1.0
    TEAMSCALL_DEBOUNCE_WINDOW=1.0
    TEAMSCALL_LOG_LEVEL=INFO
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from teamscall.core.utils.path_utils import default_log_file_path

DEFAULT_BASE_TOPIC = "teams_in_call"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_DEBOUNCE_WINDOW = 1.0

_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class WatchConfig(BaseSettings):
    """Which file to watch, how often, and where to publish."""

    model_config = SettingsConfigDict(
        env_prefix="TEAMSCALL_",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    log_file: Path = Field(
        default_factory=default_log_file_path,
        description="Teams log file to watch (platform default when unset)",
    )
    base_topic: str = Field(
        default=DEFAULT_BASE_TOPIC,
        min_length=1,
        description="Topic prefix for the status and state topics",
    )
    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL,
        gt=0,
        description="Seconds between existence checks while the log file is missing",
    )
    debounce_window: float = Field(
        default=DEFAULT_DEBOUNCE_WINDOW,
        gt=0,
        description="Seconds over which bursts of file changes are coalesced",
    )
    log_level: str = Field(default="INFO", description="Console log level")

    @field_validator("log_file")
    def expand_log_file(cls, value: Path) -> Path:  # noqa: N805
        return value.expanduser()

    @field_validator("base_topic")
    def strip_topic_slashes(cls, value: str) -> str:  # noqa: N805
        normalized = value.strip().strip("/")
        if not normalized:
            raise ValueError("base_topic must not be empty")
        if "+" in normalized or "#" in normalized:
            raise ValueError(f"base_topic must not contain MQTT wildcards: {value!r}")
        return normalized

    @field_validator("log_level")
    def validate_log_level(cls, value: str) -> str:  # noqa: N805
        normalized = value.strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {value!r}")
        return normalized

    @property
    def availability_topic(self) -> str:
        return f"{self.base_topic}/status"

    @property
    def state_topic(self) -> str:
        return f"{self.base_topic}/state"
