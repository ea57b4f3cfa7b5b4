"""
File classification for submission trees.

Every file met while walking a submission is one of: an archive to
extract, a target notebook, a secondary source file that is counted
but not parsed, or a disposable file.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..config.models import ExtractionSettings


class FileCategory(Enum):
    """Categories of files found in a submission."""

    ARCHIVE = "archive"
    TARGET = "target"
    SECONDARY = "secondary"
    MARKER = "marker"
    DISPOSABLE = "disposable"


def get_file_extension(path: Path) -> str:
    """Get the last file extension in lowercase, with its dot."""
    return path.suffix.lower()


@dataclass(frozen=True)
class FileClassifier:
    """Classifies paths by extension according to the extraction settings."""

    archive_extensions: frozenset[str]
    target_extension: str
    secondary_extensions: frozenset[str]
    marker_suffix: str

    @classmethod
    def from_settings(cls, settings: ExtractionSettings) -> "FileClassifier":
        return cls(
            archive_extensions=frozenset(settings.archive_extensions),
            target_extension=settings.target_extension,
            secondary_extensions=frozenset(settings.secondary_extensions),
            marker_suffix=settings.marker_suffix,
        )

    def classify(self, path: Path) -> FileCategory:
        """
        Classify a file path.

        Marker files are checked first: ``hw.zip.unzipped`` must never be
        mistaken for a disposable file while its archive is being processed.

        Args:
            path: Path to classify (only the name is inspected)

        Returns:
            The file's category
        """
        if path.name.endswith(self.marker_suffix):
            return FileCategory.MARKER

        ext = get_file_extension(path)
        if ext in self.archive_extensions:
            return FileCategory.ARCHIVE
        if ext == self.target_extension:
            return FileCategory.TARGET
        if ext in self.secondary_extensions:
            return FileCategory.SECONDARY
        return FileCategory.DISPOSABLE

    def is_archive(self, path: Path) -> bool:
        return self.classify(path) == FileCategory.ARCHIVE

    def is_target(self, path: Path) -> bool:
        return self.classify(path) == FileCategory.TARGET

    def is_secondary(self, path: Path) -> bool:
        return self.classify(path) == FileCategory.SECONDARY

    def marker_for(self, archive_path: Path) -> Path:
        """Return the sidecar marker path of an archive."""
        return archive_path.with_name(f"{archive_path.name}{self.marker_suffix}")
