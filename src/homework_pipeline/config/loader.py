"""Configuration loader for pipeline settings."""

from pathlib import Path
from typing import Any

import yaml

from .models import ConfigError, PipelineConfig

DEFAULT_CONFIG_FILE = Path(__file__).parent / "default.yml"


class ConfigLoader:
    """Loads the packaged defaults and merges user overrides on top."""

    def __init__(self, defaults_file: Path | None = None):
        """Initialize the config loader.

        Args:
            defaults_file: YAML file with default settings. Defaults to the
                packaged ``default.yml``
        """
        self.defaults_file = defaults_file or DEFAULT_CONFIG_FILE

    def load(self, config_file: str | Path | None = None) -> PipelineConfig:
        """Load the pipeline configuration.

        Args:
            config_file: Optional YAML file overriding the defaults

        Returns:
            Parsed PipelineConfig object

        Raises:
            FileNotFoundError: If a config file does not exist
            ConfigError: If a value is invalid
        """
        data = self._load_yaml(self.defaults_file)
        if config_file is not None:
            data = merge_dicts(data, self._load_yaml(Path(config_file)))
        return PipelineConfig.from_dict(data)

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load and parse a YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {path}")
        return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged
