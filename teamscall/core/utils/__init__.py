"""Core utilities package."""

from .path_utils import default_log_file_path, normalize_file_path

__all__ = [
    "default_log_file_path",
    "normalize_file_path",
]
