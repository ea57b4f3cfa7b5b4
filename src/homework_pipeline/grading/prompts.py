"""Prompt templating for LLM grading."""

from pathlib import Path

from ..processing.aggregate import SubmissionSummary
from ..processing.notebooks import render_notebook_text
from ..processing.submissions import StudentInfo

NOTEBOOK_SEPARATOR = "\n\n-------------------------\n\n"


def yes_no(value: bool) -> str:
    return "yes" if value else "no"


def render_template(template: str, values: dict[str, object]) -> str:
    """
    Substitute ``{key}`` placeholders in a prompt template.

    Unlike ``str.format`` this leaves every other brace alone, so
    templates and notebook code may contain literal ``{`` and ``}``.
    Keys are substituted in insertion order.
    """
    rendered = template
    for key, value in values.items():
        rendered = rendered.replace(f"{{{key}}}", str(value))
    return rendered


def build_user_prompt(
    template: str,
    student: StudentInfo,
    summary: SubmissionSummary,
    notebooks: list[Path],
    max_notebook_contents: int,
) -> str:
    """
    Render the per-student grading prompt.

    At most ``max_notebook_contents`` notebooks are rendered into the
    prompt; the statistics still cover all of them.
    """
    contents = [render_notebook_text(path) for path in notebooks[:max_notebook_contents]]
    values = {
        "student_id": student.student_id,
        "name": student.name,
        "notebook_count": summary.total_notebooks,
        "code_block_count": summary.total_code_blocks,
        "all_have_output": yes_no(summary.all_blocks_have_output),
        "has_error": yes_no(summary.has_error),
        "has_image": yes_no(summary.has_image),
        "secondary_count": summary.secondary_file_count,
        # Last, so placeholders inside student code are never substituted
        "notebook_contents": NOTEBOOK_SEPARATOR.join(contents) or "(no notebooks found)",
    }
    return render_template(template, values)
