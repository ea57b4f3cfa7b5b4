"""
Spreadsheet reports.

Writes the per-student statistics (and grades, when present) as a
workbook or CSV, and fills scores and comments into an institution's
grade import template.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils import get_column_letter

from ..config.models import ReportSettings
from ..grading.grader import GradeResult
from ..pipeline import SubmissionResult
from ..utils.files import ensure_dir
from ..utils.logging import get_logger

logger = get_logger(__name__)

SHEET_NAME = "Summary"

COLUMN_WIDTHS = {
    "Student ID": 12,
    "Name": 12,
    "Notebooks": 11,
    "Code cells": 11,
    "All cells have output": 20,
    "Outputs contain errors": 20,
    "Outputs contain images": 20,
    "Python files": 12,
    "Status": 30,
    "Notebook details": 50,
    "Score": 8,
    "Comment": 60,
}

BASE_COLUMNS = list(COLUMN_WIDTHS)[:10]


class ReportError(Exception):
    """Report or template cannot be written."""

    pass


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def summary_rows(results: list[SubmissionResult]) -> list[dict[str, Any]]:
    """One flat row per student, in batch order."""
    include_grades = any(r.grade is not None for r in results)
    rows = []
    for result in results:
        summary = result.summary
        row: dict[str, Any] = {
            "Student ID": result.student.student_id,
            "Name": result.student.name,
            "Notebooks": summary.total_notebooks,
            "Code cells": summary.total_code_blocks,
            "All cells have output": _yes_no(summary.all_blocks_have_output),
            "Outputs contain errors": _yes_no(summary.has_error),
            "Outputs contain images": _yes_no(summary.has_image),
            "Python files": summary.secondary_file_count,
            "Status": result.status,
            "Notebook details": summary.details_text(),
        }
        if include_grades:
            row["Score"] = result.grade.score if result.grade else None
            row["Comment"] = result.grade.comment if result.grade else ""
        rows.append(row)
    return rows


def build_summary_frame(results: list[SubmissionResult]) -> pd.DataFrame:
    """Statistics of a batch as a DataFrame."""
    rows = summary_rows(results)
    if not rows:
        return pd.DataFrame(columns=BASE_COLUMNS)
    return pd.DataFrame(rows)


def write_summary_report(results: list[SubmissionResult], output_path: Path) -> Path:
    """
    Write the batch statistics to ``.xlsx`` or ``.csv``.

    Args:
        results: Batch results
        output_path: Destination; the suffix selects the format

    Returns:
        The written path
    """
    ensure_dir(output_path.parent)
    frame = build_summary_frame(results)

    if output_path.suffix.lower() == ".csv":
        frame.to_csv(output_path, index=False, encoding="utf-8-sig")
    else:
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
            worksheet = writer.sheets[SHEET_NAME]
            for index, column in enumerate(frame.columns, start=1):
                width = COLUMN_WIDTHS.get(column, 15)
                worksheet.column_dimensions[get_column_letter(index)].width = width

    logger.info(f"Report written: {output_path}")
    return output_path


def _cell_text(value: Any) -> str:
    """Template ids may be stored as numbers; 2023001.0 must match '2023001'."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def fill_grade_template(
    template_path: Path,
    output_path: Path,
    grades: dict[str, GradeResult],
    settings: ReportSettings | None = None,
) -> int:
    """
    Copy a grade import template, filling score and comment by student id.

    Rows from ``settings.start_row`` on are matched on the student id
    column; rows without a grade are left untouched.

    Args:
        template_path: ``.xlsx`` template with one row per student
        output_path: Where to save the filled workbook
        grades: Grades keyed by student id
        settings: Column mapping

    Returns:
        Number of rows updated

    Raises:
        ReportError: If the template is not an ``.xlsx``/``.xlsm`` workbook
        FileNotFoundError: If the template does not exist
    """
    settings = settings or ReportSettings()
    if template_path.suffix.lower() not in (".xlsx", ".xlsm"):
        raise ReportError(
            f"Unsupported template format '{template_path.suffix}': save it as .xlsx first"
        )
    if not template_path.exists():
        raise FileNotFoundError(f"Template not found: {template_path}")

    workbook = load_workbook(template_path)
    worksheet = workbook.worksheets[0]

    updated = 0
    for row in range(settings.start_row, worksheet.max_row + 1):
        student_id = _cell_text(worksheet[f"{settings.student_id_column}{row}"].value)
        if not student_id:
            continue
        grade = grades.get(student_id)
        if grade is None:
            logger.warning(f"No grade for student {student_id}, row {row} left unchanged")
            continue

        worksheet[f"{settings.score_column}{row}"] = grade.score
        worksheet[f"{settings.comment_column}{row}"] = grade.comment
        if settings.status_column:
            worksheet[f"{settings.status_column}{row}"] = "graded" if grade.ok else "grading failed"
        updated += 1

    ensure_dir(output_path.parent)
    workbook.save(output_path)
    logger.info(f"Grade template written: {output_path} ({updated} rows updated)")
    return updated


def grades_by_student(results: list[SubmissionResult]) -> dict[str, GradeResult]:
    """Grades of a batch keyed by student id."""
    return {r.student.student_id: r.grade for r in results if r.grade is not None}
