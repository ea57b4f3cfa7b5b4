import pytest

from homework_pipeline.config.loader import ConfigLoader, merge_dicts
from homework_pipeline.config.models import ConfigError, ExtractionSettings, PipelineConfig


def test_packaged_defaults():
    config = ConfigLoader().load()

    assert config.extraction.command == ["7z", "x", "-aoa", "-y", "-o{stem}", "{name}"]
    assert config.extraction.timeout_seconds == 60
    assert config.extraction.target_extension == ".ipynb"
    assert config.extraction.secondary_extensions == [".py"]
    assert "密码" in config.extraction.password_patterns
    assert config.students.separator == "-"
    assert config.grading.retry_times == 2
    assert "{notebook_contents}" in config.grading.user_prompt
    assert "{max_score}" in config.grading.system_prompt
    assert config.report.start_row == 3


def test_user_file_overrides_subset(tmp_path):
    override = tmp_path / "course.yml"
    override.write_text(
        "extraction:\n"
        "  timeout_seconds: 5\n"
        "  archive_extensions: [ZIP, rar]\n"
        "grading:\n"
        "  model: claude-haiku\n",
        encoding="utf-8",
    )

    config = ConfigLoader().load(override)

    assert config.extraction.timeout_seconds == 5
    assert config.extraction.archive_extensions == [".zip", ".rar"]
    assert config.extraction.marker_suffix == ".unzipped"
    assert config.grading.model == "claude-haiku"
    assert config.grading.user_prompt


def test_empty_override_file(tmp_path):
    override = tmp_path / "empty.yml"
    override.write_text("", encoding="utf-8")

    assert ConfigLoader().load(override).students.unknown_id == "unknown_id"


def test_missing_override_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigLoader().load(tmp_path / "nope.yml")


def test_override_must_be_mapping(tmp_path):
    override = tmp_path / "list.yml"
    override.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigLoader().load(override)


@pytest.mark.parametrize(
    "data",
    [
        {"extraction": {"command": ["7z", "x"]}},
        {"extraction": {"timeout_seconds": 0}},
        {"extraction": {"target_extension": " "}},
        {"students": {"separator": ""}},
        {"grading": {"retry_times": 0}},
    ],
)
def test_invalid_values(data):
    with pytest.raises(ConfigError):
        PipelineConfig.from_dict(data)


def test_command_string_is_split():
    settings = ExtractionSettings.from_dict({"command": "unar -o {stem} {name}"})

    assert settings.command == ["unar", "-o", "{stem}", "{name}"]


def test_merge_dicts_is_recursive_and_copies():
    base = {"a": {"x": 1, "y": 2}, "b": 1}

    merged = merge_dicts(base, {"a": {"y": 3}, "c": 4})

    assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
    assert base == {"a": {"x": 1, "y": 2}, "b": 1}
