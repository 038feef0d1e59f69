"""Exception hierarchy for teamscall."""


class TeamsCallError(Exception):
    """Base class for errors raised by teamscall."""


class ConfigError(TeamsCallError, ValueError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


class WatchError(TeamsCallError, RuntimeError):
    """Raised when the filesystem observer stops without being asked to."""
