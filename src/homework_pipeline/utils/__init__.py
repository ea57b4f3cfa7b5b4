"""
Utility module.

Common utilities for logging and file handling.
"""

from .logging import setup_logging, get_logger, truncate
from .files import ensure_dir, empty_dir, remove_file, strip_archive_suffix

__all__ = [
    "setup_logging",
    "get_logger",
    "truncate",
    "ensure_dir",
    "empty_dir",
    "remove_file",
    "strip_archive_suffix",
]
