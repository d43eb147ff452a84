"""
kernel/config.py — Runner configuration: defaults and the runner.yml loader.

All path constants and run settings live here. The configuration file is a
flat YAML mapping; relative paths in it are resolved against the directory
holding the file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from domain.errors import ConfigError

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_FILE = Path("runner.yml")
DEFAULT_REPORT_FILE = Path("report.csv")
DEFAULT_LOG_FILE = Path(".dmntck") / "dmntck.log"

# ---------------------------------------------------------------------------
# Run settings
# ---------------------------------------------------------------------------

TEST_CASE_EXTENSION = "xml"

# Cases evaluated concurrently
DEFAULT_WORKERS = 1

# Per-case limit in seconds; also used as the HTTP socket timeout
DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class RunnerConfig:
    """Settings for one runner invocation."""

    test_cases_dir_path: Path
    file_name_pattern: str = ""
    deploy_url: str | None = None
    evaluate_url: str | None = None
    report_file_path: Path = DEFAULT_REPORT_FILE
    stop_on_failure: bool = False
    workers: int = DEFAULT_WORKERS
    timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS
    log_file_path: Path = DEFAULT_LOG_FILE


_PATH_KEYS = frozenset({"test_cases_dir_path", "report_file_path", "log_file_path"})
_STRING_KEYS = frozenset({"file_name_pattern", "deploy_url", "evaluate_url"})
_KNOWN_KEYS = _PATH_KEYS | _STRING_KEYS | {"stop_on_failure", "workers", "timeout_seconds"}


def _check_value(key: str, value: Any) -> Any:
    """Validate one configuration entry and return it in its final type."""
    if key == "file_name_pattern":
        if not isinstance(value, str):
            msg = "'file_name_pattern' must be a string"
            raise ConfigError(msg)
        return value
    if key in _PATH_KEYS or key in _STRING_KEYS:
        if not isinstance(value, str) or not value:
            msg = f"'{key}' must be a non-empty string"
            raise ConfigError(msg)
        return value
    if key == "stop_on_failure":
        if not isinstance(value, bool):
            msg = "'stop_on_failure' must be true or false"
            raise ConfigError(msg)
        return value
    if key == "workers":
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            msg = "'workers' must be a positive integer"
            raise ConfigError(msg)
        return value
    # timeout_seconds
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        msg = "'timeout_seconds' must be a positive number or null"
        raise ConfigError(msg)
    return float(value)


def parse_config(data: object, *, base_dir: Path) -> RunnerConfig:
    """Build a RunnerConfig from a decoded YAML document.

    Raises:
        ConfigError: the document is not a mapping, has unknown keys, lacks
            ``test_cases_dir_path`` or holds a value of the wrong type.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = "configuration must be a mapping"
        raise ConfigError(msg)
    unknown = sorted(str(key) for key in data if key not in _KNOWN_KEYS)
    if unknown:
        msg = f"unknown configuration keys: {unknown}"
        raise ConfigError(msg)
    if "test_cases_dir_path" not in data:
        msg = "'test_cases_dir_path' is required"
        raise ConfigError(msg)

    values: dict[str, Any] = {key: _check_value(key, value) for key, value in data.items()}
    for key in _PATH_KEYS & values.keys():
        path = Path(values[key]).expanduser()
        values[key] = path if path.is_absolute() else base_dir / path
    return RunnerConfig(**values)


def load_config(path: Path = DEFAULT_CONFIG_FILE) -> RunnerConfig:
    """Read and validate the runner configuration file.

    Raises:
        ConfigError: the file cannot be read, is not valid YAML or does not
            describe a valid configuration.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"reading configuration file '{path}' failed: {exc}"
        raise ConfigError(msg) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"parsing configuration file '{path}' failed: {exc}"
        raise ConfigError(msg) from exc
    return parse_config(data, base_dir=path.resolve().parent)
