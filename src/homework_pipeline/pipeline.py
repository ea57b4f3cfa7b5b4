"""
Batch driver.

Runs one of two per-student pipelines over a source directory:

- ``normalize``: copy each ``<id>-<name>.<ext>`` archive into its own
  output directory, expand nested archives, record statistics, then
  flatten the directory to the student's notebooks.
- ``analyze``: collect statistics from existing ``<id>-<name>``
  directories without modifying them.

Students are processed one after another. A failure inside one
student's pipeline is recorded on that student's result and the batch
moves on; only an unreadable source directory stops the run.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .config.models import PipelineConfig
from .grading.grader import GradeResult, LLMGrader
from .processing.aggregate import SubmissionSummary, collect_statistics
from .processing.extractor import ArchiveExtractor, ExtractionOutcome
from .processing.filetypes import FileClassifier
from .processing.flattener import flatten_submission
from .processing.scanner import TreeScanner
from .processing.submissions import (
    StudentInfo,
    matches_convention,
    parse_student_info,
    submission_name_from_archive,
)
from .utils.files import empty_dir, ensure_dir
from .utils.logging import get_logger, truncate

logger = get_logger(__name__)


class BatchError(Exception):
    """The batch cannot run at all (e.g. unreadable source directory)."""

    pass


@dataclass
class SubmissionResult:
    """Outcome of one student's pipeline."""

    student: StudentInfo
    root: Path
    summary: SubmissionSummary = field(default_factory=SubmissionSummary)
    notebooks: list[Path] = field(default_factory=list)
    archive_issues: list[str] = field(default_factory=list)
    error: str = ""
    grade: GradeResult | None = None

    @property
    def ok(self) -> bool:
        return not self.error

    @property
    def status(self) -> str:
        if self.error:
            return f"failed: {self.error}"
        if self.archive_issues:
            return "partial: " + "; ".join(self.archive_issues)
        return "ok"


def _describe_issue(outcome: ExtractionOutcome) -> str:
    text = f"{outcome.archive_path.name} {outcome.status.value}"
    return f"{text} ({outcome.message})" if outcome.message else text


def _claim_directory(submission_name: str, claimed: set[str], archive: Path) -> str:
    """
    Reserve an output directory name for one archive.

    ``01-A.zip`` and ``01-A.tar.gz`` share a submission name; the later
    archive gets ``01-A_1`` instead of being unpacked into the first
    one's already flattened directory.
    """
    directory_name = submission_name
    counter = 1
    while directory_name in claimed:
        directory_name = f"{submission_name}_{counter}"
        counter += 1

    if directory_name != submission_name:
        logger.warning(
            f"Duplicate submission {submission_name}: {archive.name} goes to {directory_name}"
        )
    claimed.add(directory_name)
    return directory_name


class BatchPipeline:
    """Orchestrates normalization and analysis over a batch of students."""

    def __init__(self, config: PipelineConfig | None = None):
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration (defaults when omitted)
        """
        self.config = config or PipelineConfig()
        self.classifier = FileClassifier.from_settings(self.config.extraction)
        self.extractor = ArchiveExtractor(self.config.extraction, self.classifier)
        self.scanner = TreeScanner(self.extractor, self.classifier)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def _list_source(self, source_dir: Path) -> list[Path]:
        try:
            return sorted(source_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise BatchError(f"Cannot read source directory {source_dir}: {e}") from e

    def discover_archives(self, source_dir: Path) -> list[Path]:
        """Student archives named ``<id>-<name>.<ext>`` in the source directory."""
        return [
            path
            for path in self._list_source(source_dir)
            if path.is_file()
            and self.classifier.is_archive(path)
            and matches_convention(submission_name_from_archive(path), self.config.students)
        ]

    def discover_directories(self, source_dir: Path) -> list[Path]:
        """Student directories named ``<id>-<name>`` in the source directory."""
        return [
            path
            for path in self._list_source(source_dir)
            if path.is_dir() and matches_convention(path.name, self.config.students)
        ]

    # -------------------------------------------------------------------------
    # Batch runs
    # -------------------------------------------------------------------------

    def normalize(self, source_dir: Path, output_dir: Path) -> list[SubmissionResult]:
        """
        Run the extraction pipeline for every student archive.

        The output directory is emptied first. An empty batch is logged
        as a warning and returns an empty list.

        Raises:
            BatchError: If the source directory cannot be read or the
                output directory cannot be prepared
        """
        source_dir = source_dir.resolve()
        output_dir = output_dir.resolve()
        if source_dir == output_dir or source_dir.is_relative_to(output_dir):
            raise BatchError("Output directory must not contain the source directory")

        archives = self.discover_archives(source_dir)

        logger.info(f"Preparing output directory {output_dir}")
        try:
            empty_dir(output_dir)
        except OSError as e:
            raise BatchError(f"Cannot prepare output directory {output_dir}: {e}") from e

        if not archives:
            logger.warning(f"No student archives (<id>-<name>.<ext>) found in {source_dir}")
            return []

        results = []
        claimed: set[str] = set()
        for archive in archives:
            submission_name = submission_name_from_archive(archive)
            student_dir = output_dir / _claim_directory(submission_name, claimed, archive)
            result = self._run_isolated(
                parse_student_info(submission_name, self.config.students),
                student_dir,
                lambda result, archive=archive: self.normalize_submission(archive, result),
            )
            results.append(result)

        self._log_totals(results)
        return results

    def analyze(self, source_dir: Path) -> list[SubmissionResult]:
        """
        Run the analysis pipeline for every student directory.

        Raises:
            BatchError: If the source directory cannot be read
        """
        directories = self.discover_directories(source_dir)
        if not directories:
            logger.warning(f"No student directories (<id>-<name>) found in {source_dir}")
            return []

        results = []
        for directory in directories:
            result = self._run_isolated(
                parse_student_info(directory.name, self.config.students),
                directory,
                self.analyze_submission,
            )
            results.append(result)

        self._log_totals(results)
        return results

    def grade(self, results: list[SubmissionResult], grader: LLMGrader) -> None:
        """Grade every successfully processed submission in place."""
        for result in results:
            if not result.ok:
                logger.info(f"Skipping grading for {result.student.label}: {result.error}")
                continue
            result.grade = grader.grade(result.student, result.summary, result.notebooks)

    # -------------------------------------------------------------------------
    # Per-student pipelines
    # -------------------------------------------------------------------------

    def normalize_submission(self, archive: Path, result: SubmissionResult) -> None:
        """
        Copy, expand, measure and flatten one student's archive.

        Statistics are collected before flattening so secondary source
        files nested in the archive are still counted.
        """
        student_dir = ensure_dir(result.root)
        local_archive = student_dir / archive.name
        shutil.copy2(archive, local_archive)

        # One processed set per student; identically named nested archives
        # of different students must each be extracted
        processed: set[Path] = set()
        outcomes: list[ExtractionOutcome] = []
        self.scanner.extract_nested(local_archive, processed, outcomes)
        result.archive_issues = [_describe_issue(o) for o in outcomes if not o.success]

        result.summary, _ = collect_statistics(student_dir, self.classifier)
        result.notebooks = flatten_submission(student_dir, self.classifier)

    def analyze_submission(self, result: SubmissionResult) -> None:
        """Collect statistics from an existing student directory."""
        result.summary, result.notebooks = collect_statistics(result.root, self.classifier)

    def _run_isolated(
        self,
        student: StudentInfo,
        root: Path,
        run: Callable[[SubmissionResult], None],
    ) -> SubmissionResult:
        """Run a per-student pipeline, converting any failure into ``error``."""
        logger.info(f"Processing {student.label}")
        result = SubmissionResult(student=student, root=root)
        try:
            run(result)
        except Exception as e:
            message = truncate(e) or type(e).__name__
            logger.error(f"Failed to process {student.label}: {message}")
            return SubmissionResult(student=student, root=root, error=message)

        logger.info(
            f"{student.label}: {result.summary.total_notebooks} notebook(s), "
            f"{result.summary.total_code_blocks} code cell(s)"
        )
        return result

    def _log_totals(self, results: list[SubmissionResult]) -> None:
        failed = sum(1 for r in results if not r.ok)
        logger.info(f"Processed {len(results)} students: {len(results) - failed} ok, {failed} failed")
