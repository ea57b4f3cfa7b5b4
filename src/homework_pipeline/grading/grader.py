"""
LLM grading of normalized submissions.

Builds the grading prompt from a student's statistics and notebook
text, calls Claude through the Anthropic API with retries, and parses
the reply into a score and a comment.
"""

from __future__ import annotations

import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import anthropic

from ..config.models import GradingSettings
from ..processing.aggregate import SubmissionSummary
from ..processing.submissions import StudentInfo
from ..utils.logging import get_logger, truncate
from .prompts import build_user_prompt, render_template

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_COMMENT = "No valid grading result received"


class GradingError(Exception):
    """LLM grading failed."""

    pass


@dataclass
class GradeResult:
    """Score and comment for one student."""

    score: int
    max_score: int = 100
    comment: str = ""
    raw_response: str = ""
    error: str = ""

    @property
    def percentage(self) -> float:
        """Get the grade as a percentage."""
        if self.max_score == 0:
            return 0.0
        return (self.score / self.max_score) * 100

    @property
    def ok(self) -> bool:
        return not self.error


def parse_grading_output(text: str, score_pattern: str, max_score: int = 100) -> tuple[int, str]:
    """
    Split the model's reply into a score and a comment.

    The first line matching ``score_pattern`` gives the score, clamped to
    ``[0, max_score]``. Every other non-empty line forms the comment, with
    whitespace collapsed.

    Args:
        text: Raw model output
        score_pattern: Regex whose first group is the integer score
        max_score: Upper bound for the score

    Returns:
        Tuple of (score, comment); score defaults to 0
    """
    pattern = re.compile(score_pattern, re.IGNORECASE)
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    score = 0
    score_line_index = None
    for index, line in enumerate(lines):
        match = pattern.search(line)
        if match:
            score = max(0, min(max_score, int(match.group(1))))
            score_line_index = index
            break

    comment_lines = [line for index, line in enumerate(lines) if index != score_line_index]
    comment = re.sub(r"\s+", " ", " ".join(comment_lines)).strip()

    if score_line_index is None and not comment:
        return 0, DEFAULT_COMMENT
    if score_line_index is None:
        return 0, f"[score not found] {truncate(text)}"
    return score, comment or DEFAULT_COMMENT


def request_with_retry(
    request: Callable[[], T],
    retry_times: int,
    backoff_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``request`` up to ``retry_times`` times.

    Waits ``backoff_seconds * attempt`` between attempts. Only API errors
    and GradingError are retried.

    Raises:
        GradingError: If every attempt failed
    """
    last_error: Exception | None = None
    for attempt in range(1, retry_times + 1):
        try:
            return request()
        except (anthropic.APIError, GradingError) as e:
            last_error = e
            if attempt < retry_times:
                logger.warning(f"Request failed ({truncate(e)}), retry {attempt}...")
                sleep(backoff_seconds * attempt)

    raise GradingError(f"failed after {retry_times} attempts: {describe_failure(last_error)}")


def describe_failure(error: Exception | None) -> str:
    """Readable reason for the most common API failures."""
    if isinstance(error, anthropic.AuthenticationError):
        return "invalid API key, check the configuration"
    if isinstance(error, anthropic.RateLimitError):
        return "API rate limit exceeded, try again later"
    if isinstance(error, anthropic.APITimeoutError):
        return "request timed out"
    return truncate(error) if error else "unknown error"


def create_client(settings: GradingSettings) -> anthropic.Anthropic:
    """
    Create an Anthropic client from the API key in the environment.

    Raises:
        GradingError: If the API key variable is not set
    """
    api_key = os.getenv(settings.api_key_env)
    if not api_key:
        raise GradingError(
            f"{settings.api_key_env} is not set. "
            f"Export it or add it to a .env file."
        )
    return anthropic.Anthropic(api_key=api_key)


class LLMGrader:
    """Grades one student at a time with a chat model."""

    def __init__(
        self,
        settings: GradingSettings,
        client: Any | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the grader.

        Args:
            settings: Model, prompt and retry settings
            client: Anthropic client (created from the environment if omitted)
            sleep: Function used to wait between retries
        """
        self.settings = settings
        self.client = client if client is not None else create_client(settings)
        self._sleep = sleep

    def system_prompt(self) -> str:
        return render_template(self.settings.system_prompt, {"max_score": self.settings.max_score})

    def grade(
        self,
        student: StudentInfo,
        summary: SubmissionSummary,
        notebooks: list[Path],
    ) -> GradeResult:
        """
        Grade one student's submission.

        A failed call never raises; the failure is returned as a zero
        score whose comment and ``error`` describe what went wrong.
        """
        user_prompt = build_user_prompt(
            self.settings.user_prompt,
            student,
            summary,
            notebooks,
            self.settings.max_notebook_contents,
        )
        logger.debug(f"Prompt for {student.label} ({len(user_prompt)} characters)")

        try:
            raw_text = request_with_retry(
                lambda: self._call_model(user_prompt),
                self.settings.retry_times,
                self.settings.backoff_seconds,
                self._sleep,
            )
        except GradingError as e:
            message = str(e)
            logger.error(f"Grading failed for {student.label}: {message}")
            return GradeResult(
                score=0,
                max_score=self.settings.max_score,
                comment=f"Grading failed: {message}",
                error=message,
            )

        score, comment = parse_grading_output(
            raw_text, self.settings.score_pattern, self.settings.max_score
        )
        logger.info(f"Graded {student.label}: {score}/{self.settings.max_score}")
        return GradeResult(
            score=score,
            max_score=self.settings.max_score,
            comment=comment,
            raw_response=raw_text,
        )

    def _call_model(self, user_prompt: str) -> str:
        """Send one request and return the concatenated text blocks."""
        response = self.client.messages.create(
            model=self.settings.model,
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
            system=self.system_prompt(),
            messages=[{"role": "user", "content": user_prompt}],
        )

        text_parts = []
        for block in response.content:
            if getattr(block, "type", None) == "text":
                text_parts.append(block.text)

        text = "".join(text_parts).strip()
        if not text:
            raise GradingError("model returned an empty response")
        return text
