"""
Submission flattening.

Moves every target notebook of a fully extracted submission into the
submission root, renaming on collision, then removes all directory
structure and any leftover non-target files.
"""

import shutil
from pathlib import Path

from ..utils.files import remove_file
from ..utils.logging import get_logger, truncate
from .filetypes import FileClassifier
from .scanner import list_entries, walk_files

logger = get_logger(__name__)


def collect_target_files(root: Path, classifier: FileClassifier) -> list[Path]:
    """Collect target documents at any depth, in walk order."""
    return [path for path in walk_files(root) if classifier.is_target(path)]


def unique_destination(directory: Path, filename: str) -> Path:
    """
    Find a free path for ``filename`` inside ``directory``.

    ``hw.ipynb`` becomes ``hw_1.ipynb``, then ``hw_2.ipynb`` and so on
    until no file of that name exists.
    """
    candidate = directory / filename
    stem = Path(filename).stem
    suffix = Path(filename).suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate


def remove_subdirectories(directory: Path) -> None:
    """Delete every subdirectory of ``directory``, children before parents."""
    dirs, _ = list_entries(directory)
    for sub in dirs:
        remove_subdirectories(sub)
        try:
            shutil.rmtree(sub)
        except OSError as e:
            logger.warning(f"Could not delete directory {sub}: {truncate(e)}")


def flatten_submission(root: Path, classifier: FileClassifier) -> list[Path]:
    """
    Flatten a submission directory to a single level.

    Notebooks already in the root keep their names. Nested notebooks are
    moved up in walk order; a move failure is logged and the remaining
    files are still processed.

    Args:
        root: Submission root directory
        classifier: Classifier deciding which files are target documents

    Returns:
        Paths of the target documents now in the root, in walk order
    """
    flattened: list[Path] = []

    for source in collect_target_files(root, classifier):
        if source.parent == root:
            flattened.append(source)
            continue

        destination = unique_destination(root, source.name)
        try:
            shutil.move(str(source), str(destination))
        except OSError as e:
            logger.warning(f"Could not move {source} -> {destination}: {truncate(e)}")
            continue
        logger.debug(f"Moved {source.relative_to(root)} -> {destination.name}")
        flattened.append(destination)

    remove_subdirectories(root)

    _, leftovers = list_entries(root)
    for path in leftovers:
        if not classifier.is_target(path):
            remove_file(path)

    logger.info(f"Flattened {root.name}: {len(flattened)} notebook(s)")
    return flattened
