"""Value types shared by the watch pipeline and the MQTT bridge."""

from enum import Enum


class CallState(Enum):
    """Call presence derived from the last marker line of the Teams log."""

    IN_CALL = "in_call"
    NOT_IN_CALL = "not_in_call"

    @property
    def in_call(self) -> bool:
        return self is CallState.IN_CALL


class Availability(Enum):
    """Liveness of this publisher as seen on the status topic."""

    AVAILABLE = "online"
    UNAVAILABLE = "offline"  # Also registered as the MQTT last will


class BinarySensorValue(Enum):
    """Payloads understood by Home Assistant MQTT binary sensors."""

    ON = "ON"
    OFF = "OFF"

    @classmethod
    def from_call_state(cls, state: CallState) -> "BinarySensorValue":
        return cls.ON if state is CallState.IN_CALL else cls.OFF
