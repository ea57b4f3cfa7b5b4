"""File handling utilities."""

import shutil
from pathlib import Path

from .logging import get_logger, truncate

logger = get_logger(__name__)

# Compound suffixes whose inner ".tar" belongs to the archive name
_COMPOUND_SUFFIXES = (".tar.gz", ".tar.bz2", ".tar.xz")


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The path (for chaining)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def empty_dir(path: Path) -> Path:
    """Create a directory, or delete everything inside it if it exists."""
    if path.exists():
        for child in path.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    return ensure_dir(path)


def remove_file(path: Path) -> bool:
    """Delete a file, logging instead of raising when it cannot be removed.

    Returns:
        True if the file was removed or was already gone
    """
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.warning(f"Could not delete {path}: {truncate(e)}")
        return False


def strip_archive_suffix(filename: str) -> str:
    """Return a filename without its archive extension.

    ``2021-Li Lei.zip`` becomes ``2021-Li Lei`` and ``a.tar.gz`` becomes ``a``.
    """
    lowered = filename.lower()
    for compound in _COMPOUND_SUFFIXES:
        if lowered.endswith(compound):
            return filename[: -len(compound)]
    return Path(filename).stem
