"""Configuration loading for the scan and heatmap commands.

Example config file (scan.yaml):

    universe: "indices"        # or an explicit list under `symbols`
    lookback: 63
    display_days: 30
    date_range:                # Optional
      start: "2024-01-01"
      end: "2025-01-01"
    data_source: "csv_dir"
    source_params:
      directory: "./bars"
    thresholds:
      hot: 3
      cold: 15
      regime_majority: 0.6
      rejection_mild: 2
      rejection_notable: 5
      recent_rows: 10
    sanity:
      stale_tolerance_days: 3
    concurrency:
      max_workers: 5
      timeout_seconds: null
    divergences:
      max_results: 3
    logging:
      level: "INFO"
"""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from hilo.exceptions import ConfigError
from hilo.types import DateRange, ScanConfig, SignalConfig, Symbol
from hilo.universes import get_universe

# Valid bar source types
VALID_DATA_SOURCES = frozenset(["csv", "csv_dir", "synthetic"])

# Valid log levels
VALID_LOG_LEVELS = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])

# YAML threshold keys mapped to SignalConfig fields
THRESHOLD_FIELDS = {
    "hot": "hot_threshold",
    "cold": "cold_threshold",
    "regime_majority": "regime_majority",
    "rejection_mild": "rejection_mild",
    "rejection_notable": "rejection_notable",
    "recent_rows": "recent_rows",
    "high_confidence_ratio": "high_confidence_ratio",
}


def _parse_date(value: str | dt.date) -> dt.date:
    """Parse a YYYY-MM-DD string or pass through date objects.

    :param value: Date string, date or datetime.
    :returns: Calendar date.
    :raises ConfigError: If parsing fails.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value))
    except ValueError as e:
        raise ConfigError(f"Invalid date format: {value}") from e


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def _parse_symbols(raw_config: dict[str, Any]) -> list[Symbol]:
    if "symbols" in raw_config:
        raw_symbols = raw_config["symbols"]
        if not isinstance(raw_symbols, list) or len(raw_symbols) == 0:
            raise ConfigError("'symbols' must be a non-empty list")
        return [Symbol(str(s)) for s in raw_symbols]
    if "universe" in raw_config:
        return list(get_universe(str(raw_config["universe"])).symbols)
    raise ConfigError("Missing required field: symbols (or universe)")


def _parse_signal_config(raw_thresholds: dict[str, Any]) -> SignalConfig:
    unknown = set(raw_thresholds) - set(THRESHOLD_FIELDS)
    if unknown:
        raise ConfigError(f"Unknown threshold(s): {sorted(unknown)}")
    try:
        return SignalConfig(
            **{THRESHOLD_FIELDS[key]: value for key, value in raw_thresholds.items()}
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid thresholds: {e}") from e


def load_scan_config(config_path: str | Path) -> ScanConfig:
    """Parse and validate a scan configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated ScanConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    config_path = Path(config_path)

    # Read and parse YAML
    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")

    symbols = _parse_symbols(raw_config)

    # Parse date_range (optional)
    date_range: DateRange | None = None
    if raw_config.get("date_range") is not None:
        raw_date_range = raw_config["date_range"]
        if not isinstance(raw_date_range, dict):
            raise ConfigError("'date_range' must be a mapping with 'start' and 'end'")
        if "start" not in raw_date_range or "end" not in raw_date_range:
            raise ConfigError("'date_range' must contain 'start' and 'end'")
        start = _parse_date(raw_date_range["start"])
        end = _parse_date(raw_date_range["end"])
        if start >= end:
            raise ConfigError("'date_range.start' must be before 'date_range.end'")
        date_range = DateRange(start=start, end=end)

    # Parse data_source
    data_source = raw_config.get("data_source", "csv_dir")
    if data_source not in VALID_DATA_SOURCES:
        raise ConfigError(
            f"Invalid data_source '{data_source}'. "
            f"Valid options: {sorted(VALID_DATA_SOURCES)}"
        )

    source_params = raw_config.get("source_params", {}) or {}
    if not isinstance(source_params, dict):
        raise ConfigError("'source_params' must be a mapping")

    signals = _parse_signal_config(_section(raw_config, "thresholds"))
    sanity = _section(raw_config, "sanity")
    concurrency = _section(raw_config, "concurrency")
    divergences = _section(raw_config, "divergences")

    # Parse logging (optional)
    log_level = str(_section(raw_config, "logging").get("level", "INFO")).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{log_level}'. "
            f"Valid options: {sorted(VALID_LOG_LEVELS)}"
        )

    try:
        return ScanConfig(
            symbols=symbols,
            lookback=raw_config.get("lookback", 63),
            display_days=raw_config.get("display_days"),
            date_range=date_range,
            data_source=data_source,
            source_params=source_params,
            signals=signals,
            stale_tolerance_days=sanity.get("stale_tolerance_days", 3),
            max_workers=concurrency.get("max_workers", 5),
            timeout_seconds=concurrency.get("timeout_seconds"),
            max_divergences=divergences.get("max_results", 3),
            log_level=log_level,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid scan configuration: {e}") from e
