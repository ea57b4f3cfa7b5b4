"""
Submission processing module.

Handles extraction of nested archives, flattening of submission trees,
and notebook statistics for each student submission.
"""

# File classification
from .filetypes import FileCategory, FileClassifier, get_file_extension

# Archive extraction and tree scanning
from .extractor import (
    ArchiveExtractor,
    ExtractionError,
    ExtractionOutcome,
    ExtractionStatus,
    ProcessedArchives,
    build_command,
    classify_outcome,
)
from .scanner import TreeScanner, list_entries, walk_files

# Flattening
from .flattener import (
    collect_target_files,
    flatten_submission,
    remove_subdirectories,
    unique_destination,
)

# Notebook statistics
from .notebooks import (
    NotebookParseError,
    NotebookRecord,
    notebook_statistics,
    parse_notebook,
    read_notebook_file,
    render_notebook_text,
)
from .aggregate import (
    FileDetail,
    SubmissionSummary,
    collect_statistics,
    count_secondary_files,
    summarize_notebooks,
)

# Submission naming
from .submissions import (
    StudentInfo,
    matches_convention,
    parse_student_info,
    submission_name_from_archive,
)

__all__ = [
    "FileCategory",
    "FileClassifier",
    "get_file_extension",
    "ArchiveExtractor",
    "ExtractionError",
    "ExtractionOutcome",
    "ExtractionStatus",
    "ProcessedArchives",
    "build_command",
    "classify_outcome",
    "TreeScanner",
    "list_entries",
    "walk_files",
    "collect_target_files",
    "flatten_submission",
    "remove_subdirectories",
    "unique_destination",
    "NotebookParseError",
    "NotebookRecord",
    "notebook_statistics",
    "parse_notebook",
    "read_notebook_file",
    "render_notebook_text",
    "FileDetail",
    "SubmissionSummary",
    "collect_statistics",
    "count_secondary_files",
    "summarize_notebooks",
    "StudentInfo",
    "matches_convention",
    "parse_student_info",
    "submission_name_from_archive",
]
