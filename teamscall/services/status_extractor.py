"""Derive the current call state from the Teams log.

Teams writes an ``eventData`` line for call lifecycle transitions. ``a::1``
marks a call starting and ``a::3`` a call ending; only the last such line in
the file matters. The whole file is re-read on every evaluation, so the
result is a pure function of the current file content.
"""

import re
from pathlib import Path

from teamscall.core.types import CallState

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
MARKER_RE = re.compile(r"eventData: s::;m::1;a::[13]")
IN_CALL_RE = re.compile(r"eventData: s::;m::1;a::1")


def split_lines(text: str) -> list[str]:
    """Split on any line ending style (\\r\\n, bare \\r or \\n)."""
    return _LINE_BREAK_RE.split(text)


def last_marker_line(text: str) -> str | None:
    """Return the last call marker line in ``text``, or None if there is none."""
    for line in reversed(split_lines(text)):
        if MARKER_RE.search(line):
            return line
    return None


def extract_call_state(text: str) -> CallState:
    """Classify log content as in call or not.

    No marker line at all counts as not in call.
    """
    line = last_marker_line(text)
    if line is not None and IN_CALL_RE.search(line):
        return CallState.IN_CALL
    return CallState.NOT_IN_CALL


def read_call_state(file_path: Path) -> CallState:
    """Read the full current content of ``file_path`` and classify it.

    Teams may be in the middle of a write; undecodable bytes are replaced so a
    torn multi-byte character only spoils the trailing line.

    Raises:
        OSError: If the file cannot be read.
    """
    text = Path(file_path).read_text(encoding="utf-8", errors="replace")
    return extract_call_state(text)
