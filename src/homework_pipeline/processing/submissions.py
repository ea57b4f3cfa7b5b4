"""
Submission discovery and naming-convention parsing.

Submissions are named ``<studentId>-<name>``, either as a directory or
as an archive file such as ``2023001-Li Lei.zip``.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from ..config.models import StudentSettings
from ..utils.files import strip_archive_suffix

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class StudentInfo:
    """Student identity parsed from a submission name."""

    student_id: str
    name: str
    separator: str = "-"

    @property
    def label(self) -> str:
        """Submission name rebuilt with the configured separator."""
        return f"{self.student_id}{self.separator}{self.name}"


def _clean_segment(segment: str | None, default: str) -> str:
    if segment is None:
        return default
    cleaned = _WHITESPACE.sub("", segment)
    return cleaned or default


def parse_student_info(submission_name: str, settings: StudentSettings | None = None) -> StudentInfo:
    """
    Extract student id and name from ``<studentId>-<name>``.

    All whitespace is removed from both parts. A missing or blank part
    falls back to the configured sentinel, so neither field is ever empty.
    Only the first separator splits, so hyphenated names stay whole:
    ``01-Anne-Marie`` gives ``Anne-Marie``, not ``Anne``. This is a
    deliberate departure from splitting on every separator and keeping
    the second piece.

    Args:
        submission_name: Directory name or archive name without extension
        settings: Naming convention settings

    Returns:
        StudentInfo for the submission
    """
    settings = settings or StudentSettings()
    parts = submission_name.split(settings.separator, 1)
    student_id = parts[0]
    name = parts[1] if len(parts) > 1 else None
    return StudentInfo(
        student_id=_clean_segment(student_id, settings.unknown_id),
        name=_clean_segment(name, settings.unknown_name),
        separator=settings.separator,
    )


def submission_name_from_archive(archive_path: Path) -> str:
    """Submission directory name of a student archive (extension removed)."""
    return strip_archive_suffix(archive_path.name)


def matches_convention(name: str, settings: StudentSettings | None = None) -> bool:
    """Check whether a directory or archive name follows the naming convention."""
    settings = settings or StudentSettings()
    return settings.separator in name
