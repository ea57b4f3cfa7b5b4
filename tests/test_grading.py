from dataclasses import replace
from types import SimpleNamespace

import pytest

from helpers import code_cell, result_output, write_notebook

from homework_pipeline.config.loader import ConfigLoader
from homework_pipeline.config.models import GradingSettings
from homework_pipeline.grading.grader import (
    DEFAULT_COMMENT,
    GradingError,
    LLMGrader,
    create_client,
    parse_grading_output,
    request_with_retry,
)
from homework_pipeline.grading.prompts import build_user_prompt, render_template
from homework_pipeline.processing.aggregate import SubmissionSummary
from homework_pipeline.processing.submissions import StudentInfo

PATTERN = GradingSettings().score_pattern


@pytest.fixture
def grading_settings() -> GradingSettings:
    return ConfigLoader().load().grading


class StubMessages:
    def __init__(self, replies):
        self.replies = list(replies)
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=reply)])


class StubClient:
    def __init__(self, *replies):
        self.messages = StubMessages(replies)


# -----------------------------------------------------------------------------
# Output parsing
# -----------------------------------------------------------------------------


def test_parse_score_and_comment():
    score, comment = parse_grading_output(
        "Score: 85\nGood structure.\n\n  Plots are   missing labels.", PATTERN
    )

    assert score == 85
    assert comment == "Good structure. Plots are missing labels."


def test_parse_chinese_score_line():
    score, comment = parse_grading_output("分数：92\n完成度很高", PATTERN)

    assert score == 92
    assert comment == "完成度很高"


def test_score_is_clamped():
    assert parse_grading_output("Score: 250\nwow", PATTERN)[0] == 100
    assert parse_grading_output("Score: 7\nok", PATTERN, max_score=5)[0] == 5


def test_missing_score_keeps_reply_in_comment():
    score, comment = parse_grading_output("I cannot grade this.", PATTERN)

    assert score == 0
    assert comment.startswith("[score not found]")
    assert "I cannot grade this." in comment


def test_empty_reply():
    assert parse_grading_output("   \n", PATTERN) == (0, DEFAULT_COMMENT)


def test_score_only_reply():
    assert parse_grading_output("Score: 60", PATTERN) == (60, DEFAULT_COMMENT)


# -----------------------------------------------------------------------------
# Retry
# -----------------------------------------------------------------------------


def test_retry_backs_off_linearly():
    waits = []
    attempts = []

    def request():
        attempts.append(1)
        if len(attempts) < 3:
            raise GradingError("flaky")
        return "done"

    assert request_with_retry(request, 3, 2.0, waits.append) == "done"
    assert waits == [2.0, 4.0]


def test_retry_gives_up():
    waits = []

    def request():
        raise GradingError("always")

    with pytest.raises(GradingError, match="failed after 2 attempts"):
        request_with_retry(request, 2, 1.0, waits.append)
    assert waits == [1.0]


def test_retry_does_not_catch_unrelated_errors():
    def request():
        raise KeyError("bug")

    with pytest.raises(KeyError):
        request_with_retry(request, 3, 0.0, lambda _: None)


def test_create_client_requires_key(monkeypatch):
    monkeypatch.delenv("HOMEWORK_TEST_KEY", raising=False)

    with pytest.raises(GradingError, match="HOMEWORK_TEST_KEY"):
        create_client(GradingSettings(api_key_env="HOMEWORK_TEST_KEY"))


# -----------------------------------------------------------------------------
# Prompts
# -----------------------------------------------------------------------------


def test_render_template_leaves_other_braces():
    assert render_template("{a} {b} {{x}} {c}", {"a": 1, "b": "two"}) == "1 two {{x}} {c}"


def test_build_user_prompt(tmp_path):
    notebooks = [
        write_notebook(tmp_path / f"hw{i}.ipynb", [code_cell([result_output("{name}")])])
        for i in range(3)
    ]
    summary = SubmissionSummary(
        total_notebooks=3,
        total_code_blocks=3,
        all_blocks_have_output=True,
        secondary_file_count=1,
    )
    template = (
        "{student_id}/{name}: {notebook_count} nb, {code_block_count} cells, "
        "output={all_have_output} error={has_error} image={has_image} py={secondary_count}\n"
        "{notebook_contents}"
    )

    prompt = build_user_prompt(template, StudentInfo("7", "Zoe"), summary, notebooks, 2)

    assert prompt.startswith("7/Zoe: 3 nb, 3 cells, output=yes error=no image=no py=1\n")
    assert "[File] hw0.ipynb" in prompt
    assert "[File] hw1.ipynb" in prompt
    assert "hw2.ipynb" not in prompt
    # Student output is not treated as a placeholder
    assert "[output] {name}" in prompt


def test_build_user_prompt_without_notebooks():
    prompt = build_user_prompt("{notebook_contents}", StudentInfo("1", "A"), SubmissionSummary(), [], 4)

    assert prompt == "(no notebooks found)"


# -----------------------------------------------------------------------------
# Grader
# -----------------------------------------------------------------------------


def test_grader_returns_parsed_result(grading_settings):
    client = StubClient("Score: 78\nSolid work, add comments.")
    settings = grading_settings
    grader = LLMGrader(settings, client=client, sleep=lambda _: None)

    result = grader.grade(StudentInfo("1", "Ann"), SubmissionSummary(), [])

    assert result.ok
    assert result.score == 78
    assert result.percentage == 78.0
    assert result.comment == "Solid work, add comments."

    request = client.messages.requests[0]
    assert request["model"] == settings.model
    assert request["max_tokens"] == settings.max_tokens
    assert request["temperature"] == settings.temperature
    assert "{max_score}" not in request["system"]
    assert "100" in request["system"]
    assert request["messages"][0]["role"] == "user"
    assert "Ann" in request["messages"][0]["content"]


def test_grader_retries_empty_reply(grading_settings):
    client = StubClient("   ", "Score: 50\nHalf done.")
    waits = []
    grader = LLMGrader(replace(grading_settings, backoff_seconds=0.5), client=client, sleep=waits.append)

    result = grader.grade(StudentInfo("1", "Ann"), SubmissionSummary(), [])

    assert result.score == 50
    assert waits == [0.5]
    assert len(client.messages.requests) == 2


def test_grader_failure_is_returned_not_raised(grading_settings):
    client = StubClient(GradingError("down"), GradingError("still down"))
    grader = LLMGrader(replace(grading_settings, retry_times=2), client=client, sleep=lambda _: None)

    result = grader.grade(StudentInfo("1", "Ann"), SubmissionSummary(), [])

    assert not result.ok
    assert result.score == 0
    assert "still down" in result.error
    assert result.comment.startswith("Grading failed:")
