"""
In-place archive extraction through an external tool.

Archive formats are decoded by a command-line utility (7-Zip by default).
This module builds the command, runs it with a bounded wait, classifies
the outcome from the exit status and the tool's diagnostic text, and
writes the sidecar marker that makes extraction idempotent.
"""

import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..config.models import ExtractionSettings
from ..utils.files import strip_archive_suffix
from ..utils.logging import get_logger, truncate
from .filetypes import FileCategory, FileClassifier

logger = get_logger(__name__)

# Absolute archive paths already handed to the tool during one student's walk
ProcessedArchives = set[Path]


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------


class ExtractionError(Exception):
    """Archive path cannot be handed to the extraction tool."""

    pass


# -----------------------------------------------------------------------------
# Data Classes
# -----------------------------------------------------------------------------


class ExtractionStatus(Enum):
    """Closed set of extraction outcomes."""

    SUCCESS = "success"
    ENCRYPTED = "encrypted"
    CORRUPTED = "corrupted"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ExtractionOutcome:
    """Result of one extraction attempt."""

    archive_path: Path
    status: ExtractionStatus
    message: str = ""
    returncode: int | None = None

    @property
    def success(self) -> bool:
        return self.status == ExtractionStatus.SUCCESS

    @property
    def attempted(self) -> bool:
        """True if the tool was invoked (or should have been) for this archive."""
        return self.status != ExtractionStatus.SKIPPED


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def classify_outcome(
    returncode: int,
    diagnostics: str,
    password_patterns: list[str],
    corruption_patterns: list[str],
) -> ExtractionStatus:
    """
    Map an exit status and the tool's output to an outcome kind.

    Pattern matching is case-insensitive. Password patterns are checked
    first, so output mentioning both a password and a data error counts
    as encrypted.

    Args:
        returncode: Exit status of the extraction tool
        diagnostics: Captured stdout and stderr
        password_patterns: Substrings that indicate a password-protected archive
        corruption_patterns: Substrings that indicate a damaged archive

    Returns:
        The classified ExtractionStatus
    """
    if returncode == 0:
        return ExtractionStatus.SUCCESS

    text = diagnostics.lower()
    if any(pattern.lower() in text for pattern in password_patterns):
        return ExtractionStatus.ENCRYPTED
    if any(pattern.lower() in text for pattern in corruption_patterns):
        return ExtractionStatus.CORRUPTED
    return ExtractionStatus.FAILED


def build_command(template: list[str], archive_path: Path, stem: str | None = None) -> list[str]:
    """
    Fill ``{name}`` and ``{stem}`` in the command template.

    ``stem`` is the name of the directory the archive unpacks into and
    defaults to the archive name without its archive suffix.
    """
    name = archive_path.name
    if stem is None:
        stem = strip_archive_suffix(name)
    return [part.replace("{name}", name).replace("{stem}", stem) for part in template]


# -----------------------------------------------------------------------------
# Archive Extractor
# -----------------------------------------------------------------------------


class ArchiveExtractor:
    """Runs the external tool on one archive at a time."""

    def __init__(self, settings: ExtractionSettings, classifier: FileClassifier | None = None):
        """Initialize the extractor.

        Args:
            settings: Extraction tool and pattern settings
            classifier: File classifier (built from settings if omitted)
        """
        self.settings = settings
        self.classifier = classifier or FileClassifier.from_settings(settings)

    def unpack_dir(self, archive_path: Path) -> Path:
        """
        Directory an archive is unpacked into, beside the archive.

        The archive suffix is removed, and so is a file suffix left behind
        by single-file compression: ``hw.ipynb.gz`` unpacks into ``hw`` so
        the directory never takes the name of the notebook inside it.
        """
        stem = strip_archive_suffix(archive_path.name)
        leftover = Path(stem)
        if self.classifier.classify(leftover) != FileCategory.DISPOSABLE:
            stem = leftover.stem or stem
        return archive_path.parent / stem

    def extract(self, archive_path: Path, processed: ProcessedArchives) -> ExtractionOutcome:
        """
        Extract an archive beside itself, at most once per processed set.

        Unrecognized extensions, archives already in ``processed`` and
        archives whose marker file already exists are skipped without
        invoking the tool.

        Args:
            archive_path: Path to the archive file
            processed: Set of archives already handled in this walk

        Returns:
            ExtractionOutcome describing what happened

        Raises:
            ExtractionError: If the path is not an existing regular file
        """
        archive_path = archive_path.resolve()

        if not self.classifier.is_archive(archive_path):
            return ExtractionOutcome(archive_path, ExtractionStatus.SKIPPED, "not an archive")
        if archive_path in processed:
            return ExtractionOutcome(archive_path, ExtractionStatus.SKIPPED, "already processed")
        processed.add(archive_path)

        if self.classifier.marker_for(archive_path).exists():
            logger.debug(f"Marker present, skipping {archive_path.name}")
            return ExtractionOutcome(archive_path, ExtractionStatus.SKIPPED, "marker present")

        if not archive_path.is_file():
            raise ExtractionError(f"Archive not found: {archive_path}")

        outcome = self._run_tool(archive_path)
        self._log_outcome(outcome)

        if outcome.success:
            self._write_marker(archive_path)
        return outcome

    def _run_tool(self, archive_path: Path) -> ExtractionOutcome:
        """Invoke the extraction command in the archive's directory."""
        command = build_command(
            self.settings.command, archive_path, self.unpack_dir(archive_path).name
        )
        logger.debug(f"Running {' '.join(command)} in {archive_path.parent}")

        try:
            completed = subprocess.run(
                command,
                cwd=archive_path.parent,
                # A tool prompting for a password gets EOF instead of waiting
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.settings.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return ExtractionOutcome(
                archive_path,
                ExtractionStatus.TIMED_OUT,
                f"no result after {self.settings.timeout_seconds:g}s",
            )
        except OSError as e:
            # Tool missing or not executable
            return ExtractionOutcome(archive_path, ExtractionStatus.FAILED, truncate(e))

        diagnostics = f"{completed.stdout or ''}\n{completed.stderr or ''}"
        status = classify_outcome(
            completed.returncode,
            diagnostics,
            self.settings.password_patterns,
            self.settings.corruption_patterns,
        )
        message = "" if status == ExtractionStatus.SUCCESS else truncate(
            completed.stderr or completed.stdout or f"exit status {completed.returncode}"
        )
        return ExtractionOutcome(archive_path, status, message, completed.returncode)

    def _log_outcome(self, outcome: ExtractionOutcome) -> None:
        name = outcome.archive_path.name
        if outcome.status == ExtractionStatus.SUCCESS:
            logger.info(f"Extracted {name}")
        elif outcome.status == ExtractionStatus.ENCRYPTED:
            logger.warning(f"{outcome.archive_path} is password protected, skipping")
        elif outcome.status == ExtractionStatus.CORRUPTED:
            logger.warning(f"{outcome.archive_path} is corrupted, skipping")
        elif outcome.status == ExtractionStatus.TIMED_OUT:
            logger.warning(f"Extraction of {outcome.archive_path} timed out: {outcome.message}")
        else:
            logger.error(f"Extraction of {outcome.archive_path} failed: {outcome.message}")

    def _write_marker(self, archive_path: Path) -> None:
        marker = self.classifier.marker_for(archive_path)
        try:
            marker.write_text("extracted\n", encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write marker {marker}: {truncate(e)}")
