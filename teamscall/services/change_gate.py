"""Suppress consecutive duplicate call states."""

from teamscall.core.types import CallState

_UNSET = object()


class ChangeGate:
    """Pass a value only when it differs from the one offered just before it.

    The first value offered always passes.
    """

    def __init__(self) -> None:
        self._last: CallState | object = _UNSET

    @property
    def last(self) -> CallState | None:
        return None if self._last is _UNSET else self._last  # type: ignore[return-value]

    def accept(self, state: CallState) -> bool:
        if self._last is not _UNSET and self._last == state:
            return False
        self._last = state
        return True

    def reset(self) -> None:
        self._last = _UNSET
