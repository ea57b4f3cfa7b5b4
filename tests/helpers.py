"""Builders for notebooks and archives used across the tests."""

from __future__ import annotations

import io
import json
import subprocess
import zipfile
from pathlib import Path


def code_cell(outputs: list[dict] | None = None, source: str = "print('hi')\n") -> dict:
    return {
        "cell_type": "code",
        "execution_count": 1,
        "metadata": {},
        "source": [source],
        "outputs": outputs if outputs is not None else [],
    }


def markdown_cell(text: str = "# Title") -> dict:
    return {"cell_type": "markdown", "metadata": {}, "source": [text]}


def stream_output(text: str = "hi\n") -> dict:
    return {"output_type": "stream", "name": "stdout", "text": [text]}


def result_output(text: str = "42") -> dict:
    return {
        "output_type": "execute_result",
        "execution_count": 1,
        "data": {"text/plain": [text]},
        "metadata": {},
    }


def image_output() -> dict:
    return {
        "output_type": "display_data",
        "data": {"image/png": "iVBORw0KGgo=", "text/plain": ["<Figure size 640x480>"]},
        "metadata": {},
    }


def error_output() -> dict:
    return {
        "output_type": "error",
        "ename": "ZeroDivisionError",
        "evalue": "division by zero",
        "traceback": ["\x1b[0;31mZeroDivisionError\x1b[0m: division by zero"],
    }


def notebook_json(cells: list[dict]) -> str:
    return json.dumps(
        {"cells": cells, "metadata": {}, "nbformat": 4, "nbformat_minor": 5},
        ensure_ascii=False,
    )


def write_notebook(path: Path, cells: list[dict]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(notebook_json(cells), encoding="utf-8")
    return path


def zip_bytes(members: dict[str, str | bytes]) -> bytes:
    """Zip archive bytes from ``{arcname: content}``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for arcname, content in members.items():
            zf.writestr(arcname, content)
    return buffer.getvalue()


def make_zip(path: Path, members: dict[str, str | bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(zip_bytes(members))
    return path


class FakeSevenZip:
    """Replacement for ``subprocess.run`` that unpacks zips like ``7z x -o{stem}``."""

    def __init__(self):
        self.calls: list[Path] = []
        self.encrypted: set[str] = set()
        self.hang: set[str] = set()

    def __call__(self, command, cwd=None, timeout=None, **kwargs):
        cwd = Path(cwd)
        archive = cwd / command[-1]
        self.calls.append(archive)

        if archive.name in self.hang:
            raise subprocess.TimeoutExpired(command, timeout)
        if archive.name in self.encrypted:
            return subprocess.CompletedProcess(
                command, 2, "", f"ERROR: Wrong password : {archive.name}\n"
            )

        out_arg = next(part for part in command if part.startswith("-o"))
        target = cwd / out_arg[2:]
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(target)
        except zipfile.BadZipFile:
            return subprocess.CompletedProcess(
                command, 2, "", "ERROR: Can not open the file as archive: data is corrupted\n"
            )
        return subprocess.CompletedProcess(command, 0, "Everything is Ok\n", "")
