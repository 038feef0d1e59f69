"""Pipeline stages and the service that wires them together."""

from .call_status_service import CallStatusService
from .change_gate import ChangeGate
from .debouncer import Debouncer
from .file_watch_service import wait_for_file, watch_file_changes, watch_with_rearm
from .publisher_bridge import PublisherBridge
from .status_extractor import extract_call_state, read_call_state

__all__ = [
    "CallStatusService",
    "ChangeGate",
    "Debouncer",
    "PublisherBridge",
    "extract_call_state",
    "read_call_state",
    "wait_for_file",
    "watch_file_changes",
    "watch_with_rearm",
]
