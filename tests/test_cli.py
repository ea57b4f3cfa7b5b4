import logging

import pytest
from typer.testing import CliRunner

from helpers import code_cell, make_zip, notebook_json, stream_output

from homework_pipeline.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_normalize_then_analyze(tmp_path, fake_7z):
    source = tmp_path / "incoming"
    make_zip(source / "2023001-Alice.zip", {"work/hw.ipynb": notebook_json([code_cell([stream_output()])])})
    output = tmp_path / "out"

    result = runner.invoke(app, ["normalize", str(source), str(output), "--report", str(tmp_path / "n.csv")])

    assert result.exit_code == 0, result.output
    assert (output / "2023001-Alice" / "hw.ipynb").exists()
    assert (tmp_path / "n.csv").exists()

    result = runner.invoke(app, ["analyze", str(output)])

    assert result.exit_code == 0, result.output
    assert (output / "summary.xlsx").exists()


def test_missing_source_exits_with_error(tmp_path):
    result = runner.invoke(app, ["normalize", str(tmp_path / "nope"), str(tmp_path / "out")])

    assert result.exit_code == 1
    assert "Batch failed" in result.output


def test_bad_config_exits_with_error(tmp_path):
    config = tmp_path / "bad.yml"
    config.write_text("grading:\n  retry_times: 0\n", encoding="utf-8")

    result = runner.invoke(app, ["analyze", str(tmp_path), "--config", str(config)])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_grade_without_api_key(tmp_path, monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setattr("homework_pipeline.cli.load_dotenv", lambda: None)

    result = runner.invoke(app, ["grade", str(tmp_path)])

    assert result.exit_code == 1
    assert "ANTHROPIC_API_KEY" in result.output
