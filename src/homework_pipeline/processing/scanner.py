"""
Recursive tree scanning and nested archive expansion.

Walks a submission directory depth-first, visiting subdirectories
before the files beside them, so nested archives are expanded before
their siblings are judged. Files that are neither archives, target
notebooks nor secondary sources are deleted.
"""

import stat
from collections.abc import Iterator
from pathlib import Path

from ..utils.files import remove_file
from ..utils.logging import get_logger, truncate
from .extractor import (
    ArchiveExtractor,
    ExtractionError,
    ExtractionOutcome,
    ProcessedArchives,
)
from .filetypes import FileCategory, FileClassifier

logger = get_logger(__name__)


def list_entries(directory: Path) -> tuple[list[Path], list[Path]]:
    """
    List a directory split into subdirectories and files, sorted by name.

    Entries that vanish or cannot be stat'ed are skipped. An unreadable
    directory yields two empty lists.

    Args:
        directory: Directory to list

    Returns:
        Tuple of (subdirectories, files)
    """
    try:
        names = sorted(p.name for p in directory.iterdir())
    except OSError as e:
        logger.warning(f"Could not read directory {directory}: {truncate(e)}")
        return [], []

    dirs: list[Path] = []
    files: list[Path] = []
    for name in names:
        path = directory / name
        try:
            mode = path.lstat().st_mode
        except OSError:
            continue
        if stat.S_ISDIR(mode):
            dirs.append(path)
        elif stat.S_ISREG(mode):
            files.append(path)
    return dirs, files


def walk_files(root: Path) -> Iterator[Path]:
    """
    Yield every regular file under ``root``, depth-first.

    Within each directory the subdirectories are walked (in name order)
    before the directory's own files are yielded. This order decides
    which of two same-named notebooks keeps its original name when a
    submission is flattened.
    """
    dirs, files = list_entries(root)
    for sub in dirs:
        yield from walk_files(sub)
    yield from files


class TreeScanner:
    """Expands nested archives and prunes disposable files."""

    def __init__(self, extractor: ArchiveExtractor, classifier: FileClassifier | None = None):
        """Initialize the scanner.

        Args:
            extractor: Extractor used for every archive found
            classifier: File classifier (defaults to the extractor's)
        """
        self.extractor = extractor
        self.classifier = classifier or extractor.classifier

    def scan(
        self,
        directory: Path,
        processed: ProcessedArchives,
        outcomes: list[ExtractionOutcome] | None = None,
    ) -> None:
        """
        Recursively expand archives and delete disposable files.

        Args:
            directory: Directory to scan
            processed: Archives already handled for the current student
            outcomes: Optional list collecting every attempted extraction
        """
        dirs, files = list_entries(directory)

        for sub in dirs:
            self.scan(sub, processed, outcomes)

        for path in files:
            # Nested extraction may already have consumed this entry
            if not path.exists():
                continue

            category = self.classifier.classify(path)
            if category == FileCategory.ARCHIVE:
                self.extract_nested(path, processed, outcomes)
            elif category == FileCategory.DISPOSABLE:
                logger.debug(f"Deleting non-target file {path}")
                remove_file(path)

    def extract_nested(
        self,
        archive_path: Path,
        processed: ProcessedArchives,
        outcomes: list[ExtractionOutcome] | None = None,
    ) -> ExtractionOutcome | None:
        """
        Extract an archive, expand whatever it contained, then clean up.

        After the tool has run (whatever its outcome), the extracted
        directory named after the archive is scanned if it exists, else
        the archive's own directory is rescanned. The archive and its
        marker file are deleted afterwards.

        Args:
            archive_path: Archive to expand
            processed: Archives already handled for the current student
            outcomes: Optional list collecting every attempted extraction

        Returns:
            The extraction outcome, or None if the archive could not be read
        """
        try:
            outcome = self.extractor.extract(archive_path, processed)
        except (ExtractionError, OSError) as e:
            logger.warning(f"Could not process archive {archive_path}: {truncate(e)}")
            return None

        if not outcome.attempted:
            return outcome
        if outcomes is not None:
            outcomes.append(outcome)

        archive_path = outcome.archive_path
        unpacked = self.extractor.unpack_dir(archive_path)
        if unpacked.is_dir():
            self.scan(unpacked, processed, outcomes)
        else:
            self.scan(archive_path.parent, processed, outcomes)

        remove_file(archive_path)
        remove_file(self.classifier.marker_for(archive_path))
        return outcome
