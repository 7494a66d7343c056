"""Configuration helpers for the carrier snapshot extractor."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files or values are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

MODES = ("both", "urls")

# Setting name -> environment variable.
ENVIRONMENT_VARIABLES: Mapping[str, str] = {
    "concurrency": "CONCURRENCY",
    "inter_wave_delay_ms": "DELAY",
    "batch_size": "BATCH_SIZE",
    "post_run_wait_seconds": "WAIT_SECONDS",
    "mode": "MODE",
    "fetch_timeout_ms": "FETCH_TIMEOUT_MS",
    "max_retries": "MAX_RETRIES",
    "backoff_base_ms": "BACKOFF_BASE_MS",
}


@dataclass(frozen=True)
class ExtractorSettings:
    concurrency: int = 6
    inter_wave_delay_ms: int = 300
    batch_size: int = 500
    post_run_wait_seconds: int = 0
    mode: str = "both"
    fetch_timeout_ms: int = 20000
    max_retries: int = 3
    backoff_base_ms: int = 2000

    def validate(self) -> "ExtractorSettings":
        for name in ("concurrency", "batch_size", "fetch_timeout_ms", "max_retries"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"'{name}' must be a positive integer, got {getattr(self, name)}")
        for name in ("inter_wave_delay_ms", "post_run_wait_seconds", "backoff_base_ms"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"'{name}' must not be negative, got {getattr(self, name)}")
        if self.mode not in MODES:
            raise ConfigurationError(f"'mode' must be one of {MODES}, got '{self.mode}'")
        return self

    def with_overrides(self, overrides: Mapping[str, Any]) -> "ExtractorSettings":
        """Return a copy with the non-``None`` values of ``overrides`` applied."""

        known = {item.name for item in fields(self)}
        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in known:
                LOGGER.debug("Ignoring unknown setting %s", key)
                continue
            changes[key] = _coerce(key, value)
        return replace(self, **changes)


def _coerce(name: str, value: Any) -> Any:
    if name == "mode":
        return str(value).strip().lower()
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigurationError(f"'{name}' must be an integer, got '{value}'") from exc


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - dependency optional
            raise ConfigurationError(
                "YAML configuration requires the 'pyyaml' package to be installed"
            ) from exc
        data = yaml.safe_load(text)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping")
    return data


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect setting overrides from environment variables."""

    if environ is None:
        load_dotenv()
        environ = os.environ
    return {
        name: environ[variable]
        for name, variable in ENVIRONMENT_VARIABLES.items()
        if environ.get(variable, "").strip()
    }


def resolve_settings(
    config_path: str | Path | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ExtractorSettings:
    """Combine defaults, a config file, environment variables, and explicit overrides."""

    settings = ExtractorSettings()
    if config_path:
        settings = settings.with_overrides(load_configuration(config_path))
    settings = settings.with_overrides(settings_from_env(environ))
    if overrides:
        settings = settings.with_overrides(overrides)
    return settings.validate()


__all__ = [
    "ConfigurationError",
    "ENVIRONMENT_VARIABLES",
    "ExtractorSettings",
    "load_configuration",
    "resolve_settings",
    "settings_from_env",
]
