"""
Configuration module.

Handles loading and validation of pipeline settings.
"""

from .loader import ConfigLoader, merge_dicts
from .models import (
    ConfigError,
    ExtractionSettings,
    GradingSettings,
    PipelineConfig,
    ReportSettings,
    StudentSettings,
)

__all__ = [
    "ConfigLoader",
    "merge_dicts",
    "ConfigError",
    "ExtractionSettings",
    "GradingSettings",
    "PipelineConfig",
    "ReportSettings",
    "StudentSettings",
]
