"""
Output module.

Spreadsheet reports and grade template filling.
"""

from .report import (
    ReportError,
    build_summary_frame,
    fill_grade_template,
    grades_by_student,
    summary_rows,
    write_summary_report,
)

__all__ = [
    "ReportError",
    "build_summary_frame",
    "fill_grade_template",
    "grades_by_student",
    "summary_rows",
    "write_summary_report",
]
