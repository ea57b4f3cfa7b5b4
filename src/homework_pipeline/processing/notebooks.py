"""
Notebook statistics extraction.

Parses ``.ipynb`` documents leniently and reduces each one to a
NotebookRecord. Well-formed files go through the standard ``json``
parser; only files it rejects are retried with JSON5, so trailing commas
and similar hand-edit damage are tolerated without slowing down large
notebooks with embedded images.

Parsing problems never escape ``parse_notebook``; they are recorded in
the record's ``parse_error`` field instead.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import chardet
import json5

from ..utils.logging import get_logger, truncate

logger = get_logger(__name__)

DATA_OUTPUT_TYPES = ("display_data", "execute_result")
IMAGE_MIME_PREFIX = "image/"

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------


class NotebookParseError(Exception):
    """Notebook file could not be read or is not a notebook structure."""

    pass


# -----------------------------------------------------------------------------
# Data Classes
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class NotebookRecord:
    """Statistics of one parsed notebook."""

    file_name: str
    total_code_blocks: int = 0
    all_blocks_have_output: bool = False
    has_error: bool = False
    has_image: bool = False
    parse_error: str = ""

    @property
    def ok(self) -> bool:
        return not self.parse_error

    @classmethod
    def failed(cls, file_name: str, message: str) -> "NotebookRecord":
        """Record for a notebook that could not be parsed."""
        return cls(file_name=file_name, parse_error=message or "unknown parse error")


# -----------------------------------------------------------------------------
# Reading
# -----------------------------------------------------------------------------


def _decode(raw: bytes) -> str:
    """Decode notebook bytes, trying UTF-8 first and then a detected encoding."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(raw[:10000])
    encoding = detected.get("encoding") if detected else None
    if encoding and detected.get("confidence", 0) > 0.5:
        try:
            return raw.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            pass

    raise NotebookParseError("cannot decode file (not UTF-8 and encoding detection failed)")


def _loads(text: str) -> Any:
    """Parse strict JSON, falling back to JSON5 for hand-edited files."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    except RecursionError as e:
        raise NotebookParseError(f"invalid notebook JSON: {e}") from e

    try:
        return json5.loads(text)
    except (ValueError, RecursionError) as e:
        raise NotebookParseError(f"invalid notebook JSON: {e}") from e


def read_notebook_file(path: Path) -> dict[str, Any]:
    """
    Read and leniently parse a notebook file.

    Args:
        path: Path to the ``.ipynb`` file

    Returns:
        The notebook as a dictionary

    Raises:
        NotebookParseError: If the file cannot be read, decoded or parsed,
            or does not hold a notebook object
    """
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise NotebookParseError(f"cannot read file: {e}") from e

    text = _decode(raw)
    if not text.strip():
        raise NotebookParseError("file is empty")

    notebook = _loads(text)

    if not isinstance(notebook, dict):
        raise NotebookParseError("notebook root is not an object")

    cells = notebook.get("cells", [])
    if cells is None:
        notebook["cells"] = []
    elif not isinstance(cells, list):
        raise NotebookParseError("'cells' is not a list")
    return notebook


def code_cells(notebook: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the cells tagged as executable code."""
    return [
        cell
        for cell in notebook.get("cells") or []
        if isinstance(cell, dict) and cell.get("cell_type") == "code"
    ]


def _cell_outputs(cell: dict[str, Any]) -> list[dict[str, Any]]:
    outputs = cell.get("outputs")
    if not isinstance(outputs, list):
        return []
    return [output for output in outputs if isinstance(output, dict)]


def _has_image_payload(output: dict[str, Any]) -> bool:
    if output.get("output_type") not in DATA_OUTPUT_TYPES:
        return False
    data = output.get("data")
    if not isinstance(data, dict):
        return False
    return any(str(key).startswith(IMAGE_MIME_PREFIX) for key in data)


# -----------------------------------------------------------------------------
# Statistics
# -----------------------------------------------------------------------------


def notebook_statistics(file_name: str, notebook: dict[str, Any]) -> NotebookRecord:
    """
    Reduce a parsed notebook to its statistics record.

    ``all_blocks_have_output`` is False for a notebook without code cells.
    """
    cells = code_cells(notebook)
    all_have_output = True
    has_error = False
    has_image = False

    for cell in cells:
        outputs = _cell_outputs(cell)
        if not outputs:
            all_have_output = False
        for output in outputs:
            if output.get("output_type") == "error":
                has_error = True
            if _has_image_payload(output):
                has_image = True

    return NotebookRecord(
        file_name=file_name,
        total_code_blocks=len(cells),
        all_blocks_have_output=all_have_output if cells else False,
        has_error=has_error,
        has_image=has_image,
    )


def parse_notebook(path: Path) -> NotebookRecord:
    """
    Parse one notebook file into a NotebookRecord.

    Never raises for bad input: an unreadable or malformed file yields a
    zeroed record with ``parse_error`` set.
    """
    try:
        notebook = read_notebook_file(path)
    except NotebookParseError as e:
        message = truncate(e)
        logger.error(f"Failed to parse notebook {path}: {message}")
        return NotebookRecord.failed(path.name, message)

    return notebook_statistics(path.name, notebook)


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------


def _join_text(value: Any) -> str:
    """Notebook text fields are either a string or a list of line fragments."""
    if isinstance(value, list):
        return "".join(str(part) for part in value)
    if value is None:
        return ""
    return str(value)


def _render_output(output: dict[str, Any]) -> str:
    output_type = output.get("output_type")

    if output_type == "error":
        traceback = output.get("traceback")
        if traceback:
            text = "\n".join(str(line) for line in traceback)
        else:
            text = f"{output.get('ename', 'Error')}: {output.get('evalue', '')}"
        return f"[error] {_ANSI_ESCAPE.sub('', text)}"

    if output_type in DATA_OUTPUT_TYPES:
        data = output.get("data") if isinstance(output.get("data"), dict) else {}
        text = _join_text(data.get("text/plain"))
        if _has_image_payload(output):
            text = f"{text}\n[image]" if text else "[image]"
        return f"[output] {text or '(no text output)'}"

    return _join_text(output.get("text")) or "(no output)"


def render_notebook_text(path: Path) -> str:
    """
    Render a notebook's code cells and their outputs as plain text.

    Used to show the notebook to the grading model. Markdown cells are
    left out.
    """
    try:
        notebook = read_notebook_file(path)
    except NotebookParseError as e:
        return f"[File] {path.name}\n[Read failed] {truncate(e)}"

    cells = notebook.get("cells") or []
    lines = [
        f"[File] {path.name}",
        f"[Code cells] {len(code_cells(notebook))}",
        "[Code]",
    ]

    for index, cell in enumerate(cells, start=1):
        if not isinstance(cell, dict) or cell.get("cell_type") != "code":
            continue
        lines.append(f"\n===== Cell {index} =====")
        lines.append(f"Code:\n{_join_text(cell.get('source')) or '(empty)'}")
        lines.append("Output:")
        outputs = _cell_outputs(cell)
        if not outputs:
            lines.append("(no output)")
        for output in outputs:
            lines.append(_render_output(output))

    return "\n".join(lines)
