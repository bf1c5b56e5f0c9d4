"""recurrence_lite.config_loader

Config loader for recurrence_lite.

- Reads YAML with PyYAML (JSON files load too, JSON being a YAML subset).
- Exposes a typed dataclass `Config`, a `load_config()` helper that accepts an
  optional path override, and `apply_env_overrides()` for RECURRENCE_LITE_*
  environment variables.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .core.timezone_utils import DEFAULT_IMPORT_TIMEZONE, normalize_timezone_name
from .lite_exceptions import LiteConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "RECURRENCE_LITE_"

_TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass
class Config:
    """Typed configuration for recurrence_lite.

    Fields:
        max_instances: per-series cap on expanded occurrences (1..100000)
        default_timezone: zone for import tokens without TZID
        recurrence_horizon_years: recurrence end when RRULE has no UNTIL (1..100)
        strict_import: abort an import on the first bad record
        log_level: logging level name
    """

    max_instances: int = 1000
    default_timezone: str = DEFAULT_IMPORT_TIMEZONE
    recurrence_horizon_years: int = 5
    strict_import: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and clamped to their allowed
        range; an unknown timezone falls back to UTC. Every coercion is logged
        as a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int, low: int, high: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < low:
                logger.warning("%s %d below minimum; coercing to %d", key, value, low)
                return low
            if value > high:
                logger.warning("%s %d above maximum; coercing to %d", key, value, high)
                return high
            return value

        max_instances = _coerce_int("max_instances", 1000, 1, 100_000)
        horizon = _coerce_int("recurrence_horizon_years", 5, 1, 100)

        tz_raw = data.get("default_timezone") or DEFAULT_IMPORT_TIMEZONE
        default_timezone = normalize_timezone_name(str(tz_raw))
        if default_timezone is None:
            logger.warning("Config default_timezone=%r is unknown; using %s", tz_raw, DEFAULT_IMPORT_TIMEZONE)
            default_timezone = DEFAULT_IMPORT_TIMEZONE

        strict_raw = data.get("strict_import", False)
        if isinstance(strict_raw, str):
            strict_import = strict_raw.strip().lower() in _TRUE_VALUES
        else:
            strict_import = bool(strict_raw)

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            max_instances=max_instances,
            default_timezone=default_timezone,
            recurrence_horizon_years=horizon,
            strict_import=strict_import,
            log_level=log_level,
        )


def _load_yaml(path: Path) -> Any:
    """Load a YAML (or JSON) document; an empty file is an empty mapping.

    Raises:
        LiteConfigError: If the file is not valid YAML
    """
    text = path.read_text()
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise LiteConfigError(f"Unable to parse config file {path}: {exc}") from exc
    # safe_load can return None for empty files; normalize to empty dict
    if loaded is None:
        return {}
    return loaded


def apply_env_overrides(config: Config, environ: Mapping[str, str] | None = None) -> Config:
    """Return a copy of ``config`` with RECURRENCE_LITE_* variables applied.

    Recognized variables: RECURRENCE_LITE_MAX_INSTANCES,
    RECURRENCE_LITE_DEFAULT_TIMEZONE, RECURRENCE_LITE_RECURRENCE_HORIZON_YEARS,
    RECURRENCE_LITE_STRICT_IMPORT and RECURRENCE_LITE_LOG_LEVEL.
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for name in ("max_instances", "default_timezone", "recurrence_horizon_years", "strict_import", "log_level"):
        value = env.get(ENV_PREFIX + name.upper())
        if value is not None and value != "":
            overrides[name] = value

    if not overrides:
        return config

    logger.debug("Applying environment overrides: %s", sorted(overrides))
    merged = {
        "max_instances": config.max_instances,
        "default_timezone": config.default_timezone,
        "recurrence_horizon_years": config.recurrence_horizon_years,
        "strict_import": config.strict_import,
        "log_level": config.log_level,
        **overrides,
    }
    return Config.from_dict(merged)


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML file and return a Config instance.

    Args:
        path: Optional path to the config file. If not provided the default is
              ./recurrence_lite.yaml (relative to current working dir).

    Returns:
        Config dataclass instance with values from file (or defaults).

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises LiteConfigError.
    - If the file is not valid YAML: raises LiteConfigError.
    """
    p = Path(path) if path else Path.cwd() / "recurrence_lite.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        cfg = Config()
        logger.debug("Default Config in use: %s", cfg)
        return cfg

    raw = _load_yaml(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise LiteConfigError("Config file must contain a mapping at top level")
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
