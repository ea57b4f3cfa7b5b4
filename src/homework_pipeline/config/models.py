"""Configuration data models."""

from dataclasses import dataclass, field
from typing import Any


class ConfigError(ValueError):
    """Invalid configuration value."""

    pass


def _extension_list(values: list[str] | None, default: list[str]) -> list[str]:
    """Normalize extensions to lowercase with a leading dot."""
    if not values:
        return list(default)
    normalized = []
    for value in values:
        ext = str(value).strip().lower()
        if not ext:
            continue
        normalized.append(ext if ext.startswith(".") else f".{ext}")
    return normalized


@dataclass
class ExtractionSettings:
    """External extraction tool and file-type policy."""

    archive_extensions: list[str] = field(
        default_factory=lambda: [".zip", ".7z", ".rar", ".tar", ".gz"]
    )
    target_extension: str = ".ipynb"
    secondary_extensions: list[str] = field(default_factory=lambda: [".py"])
    marker_suffix: str = ".unzipped"
    command: list[str] = field(
        default_factory=lambda: ["7z", "x", "-aoa", "-y", "-o{stem}", "{name}"]
    )
    timeout_seconds: float = 60.0
    # Diagnostic text is locale dependent, so both English and Chinese are matched
    password_patterns: list[str] = field(default_factory=lambda: ["password", "密码"])
    corruption_patterns: list[str] = field(
        default_factory=lambda: ["corrupt", "damaged", "损坏"]
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractionSettings":
        defaults = cls()
        command = data.get("command") or defaults.command
        if isinstance(command, str):
            command = command.split()
        if not any("{name}" in part for part in command):
            raise ConfigError("extraction.command must reference the archive as {name}")

        timeout = float(data.get("timeout_seconds", defaults.timeout_seconds))
        if timeout <= 0:
            raise ConfigError("extraction.timeout_seconds must be positive")

        target = _extension_list([data.get("target_extension", defaults.target_extension)], [])
        if not target:
            raise ConfigError("extraction.target_extension must not be empty")

        return cls(
            archive_extensions=_extension_list(
                data.get("archive_extensions"), defaults.archive_extensions
            ),
            target_extension=target[0],
            secondary_extensions=_extension_list(
                data.get("secondary_extensions"), defaults.secondary_extensions
            ),
            marker_suffix=data.get("marker_suffix", defaults.marker_suffix),
            command=[str(part) for part in command],
            timeout_seconds=timeout,
            password_patterns=list(data.get("password_patterns") or defaults.password_patterns),
            corruption_patterns=list(
                data.get("corruption_patterns") or defaults.corruption_patterns
            ),
        )


@dataclass
class StudentSettings:
    """Submission naming convention."""

    separator: str = "-"
    unknown_id: str = "unknown_id"
    unknown_name: str = "unknown_name"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StudentSettings":
        separator = data.get("separator", "-")
        if not separator:
            raise ConfigError("students.separator must not be empty")
        return cls(
            separator=separator,
            unknown_id=data.get("unknown_id", "unknown_id"),
            unknown_name=data.get("unknown_name", "unknown_name"),
        )


@dataclass
class GradingSettings:
    """LLM grading settings."""

    model: str = "claude-sonnet-4-20250514"
    temperature: float = 0.3
    max_tokens: int = 1500
    retry_times: int = 2
    backoff_seconds: float = 1.0
    max_notebook_contents: int = 4
    api_key_env: str = "ANTHROPIC_API_KEY"
    system_prompt: str = ""
    user_prompt: str = ""
    score_pattern: str = r"(?:Score|分数)\s*[:：]\s*(\d+)"
    max_score: int = 100

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GradingSettings":
        retry_times = int(data.get("retry_times", 2))
        if retry_times < 1:
            raise ConfigError("grading.retry_times must be at least 1")
        return cls(
            model=data.get("model", "claude-sonnet-4-20250514"),
            temperature=float(data.get("temperature", 0.3)),
            max_tokens=int(data.get("max_tokens", 1500)),
            retry_times=retry_times,
            backoff_seconds=float(data.get("backoff_seconds", 1.0)),
            max_notebook_contents=int(data.get("max_notebook_contents", 4)),
            api_key_env=data.get("api_key_env", "ANTHROPIC_API_KEY"),
            system_prompt=data.get("system_prompt", ""),
            user_prompt=data.get("user_prompt", ""),
            score_pattern=data.get("score_pattern", r"(?:Score|分数)\s*[:：]\s*(\d+)"),
            max_score=int(data.get("max_score", 100)),
        )


@dataclass
class ReportSettings:
    """Column mapping of the grade import template."""

    student_id_column: str = "A"
    score_column: str = "I"
    comment_column: str = "J"
    status_column: str | None = "K"
    start_row: int = 3

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportSettings":
        return cls(
            student_id_column=data.get("student_id_column", "A"),
            score_column=data.get("score_column", "I"),
            comment_column=data.get("comment_column", "J"),
            status_column=data.get("status_column", "K"),
            start_row=int(data.get("start_row", 3)),
        )


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""

    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    students: StudentSettings = field(default_factory=StudentSettings)
    grading: GradingSettings = field(default_factory=GradingSettings)
    report: ReportSettings = field(default_factory=ReportSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineConfig":
        return cls(
            extraction=ExtractionSettings.from_dict(data.get("extraction") or {}),
            students=StudentSettings.from_dict(data.get("students") or {}),
            grading=GradingSettings.from_dict(data.get("grading") or {}),
            report=ReportSettings.from_dict(data.get("report") or {}),
        )
