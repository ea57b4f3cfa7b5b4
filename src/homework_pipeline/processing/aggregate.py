"""Per-student aggregation of notebook statistics."""

from dataclasses import dataclass, field
from pathlib import Path

from .filetypes import FileClassifier
from .notebooks import NotebookRecord, parse_notebook
from .scanner import walk_files


@dataclass(frozen=True)
class FileDetail:
    """Per-file line of a submission summary."""

    file_name: str
    code_blocks: int
    error: str = ""

    def describe(self) -> str:
        text = f"{self.file_name} (code cells: {self.code_blocks}"
        if self.error:
            text += f", error: {self.error}"
        return text + ")"


@dataclass
class SubmissionSummary:
    """Aggregate statistics over one student's notebooks."""

    total_notebooks: int = 0
    total_code_blocks: int = 0
    all_blocks_have_output: bool = False
    has_error: bool = False
    has_image: bool = False
    secondary_file_count: int = 0
    per_file_details: list[FileDetail] = field(default_factory=list)

    def details_text(self, separator: str = "; ") -> str:
        return separator.join(detail.describe() for detail in self.per_file_details)


def summarize_notebooks(
    records: list[NotebookRecord],
    secondary_file_count: int = 0,
) -> SubmissionSummary:
    """
    Combine notebook records into one summary.

    ``all_blocks_have_output`` is an AND over the records and is therefore
    True for a student with no notebooks at all, even though a single
    notebook without code cells reports False.
    """
    return SubmissionSummary(
        total_notebooks=len(records),
        total_code_blocks=sum(r.total_code_blocks for r in records),
        all_blocks_have_output=all(r.all_blocks_have_output for r in records),
        has_error=any(r.has_error for r in records),
        has_image=any(r.has_image for r in records),
        secondary_file_count=secondary_file_count,
        per_file_details=[
            FileDetail(r.file_name, r.total_code_blocks, r.parse_error) for r in records
        ],
    )


def count_secondary_files(root: Path, classifier: FileClassifier) -> int:
    """Count secondary source files (``.py`` by default) at any depth."""
    return sum(1 for path in walk_files(root) if classifier.is_secondary(path))


def collect_statistics(root: Path, classifier: FileClassifier) -> tuple[SubmissionSummary, list[Path]]:
    """
    Parse every notebook under ``root`` and summarize the submission.

    Returns:
        Tuple of (summary, notebook paths in walk order)
    """
    notebooks = [path for path in walk_files(root) if classifier.is_target(path)]
    records = [parse_notebook(path) for path in notebooks]
    summary = summarize_notebooks(records, count_secondary_files(root, classifier))
    return summary, notebooks
