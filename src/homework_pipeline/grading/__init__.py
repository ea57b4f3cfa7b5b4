"""
Grading module.

LLM-assisted grading of normalized notebook submissions.
"""

from .grader import (
    GradeResult,
    GradingError,
    LLMGrader,
    create_client,
    parse_grading_output,
    request_with_retry,
)
from .prompts import build_user_prompt, render_template

__all__ = [
    "GradeResult",
    "GradingError",
    "LLMGrader",
    "create_client",
    "parse_grading_output",
    "request_with_retry",
    "build_user_prompt",
    "render_template",
]
