"""Hierarchical configuration with loading and validation.

Implements a configuration system with the following precedence:
1. Default values (lowest priority)
2. JSON configuration files
3. Environment variables
4. Command-line arguments (highest priority)

Configuration is deep-merged across all sources, allowing partial overrides
at any level of the configuration hierarchy.
"""
from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from loguru import logger

from core.error_handler import RetryPolicy
from core.exceptions import ConfigurationError

MEASURE_TYPES = ("TL", "FL", "DW", "PCL", "LBFL")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class SessionConfig:
    """Session lifecycle configuration.

    Attributes:
        settle_delay_seconds: Wait before the first post-end re-fetch
        settle_max_attempts: Number of post-end re-fetches
        settle_backoff: Delay multiplier between re-fetches
        settle_max_delay_seconds: Cap on any single settle delay
        tick_interval_seconds: Session timer period
        request_timeout_seconds: Timeout for each store/aggregator call
    """
    settle_delay_seconds: float = 0.5
    settle_max_attempts: int = 1
    settle_backoff: float = 2.0
    settle_max_delay_seconds: float = 5.0
    tick_interval_seconds: float = 1.0
    request_timeout_seconds: float = 10.0

    def __post_init__(self):
        if self.settle_max_attempts < 1:
            raise ConfigurationError(f"Invalid settle_max_attempts: {self.settle_max_attempts}")
        if self.settle_delay_seconds < 0 or self.settle_max_delay_seconds < 0:
            raise ConfigurationError("Settle delays must not be negative")
        if self.settle_backoff < 1.0:
            raise ConfigurationError(f"Invalid settle_backoff: {self.settle_backoff}")
        if self.tick_interval_seconds <= 0:
            raise ConfigurationError(f"Invalid tick_interval_seconds: {self.tick_interval_seconds}")
        if self.request_timeout_seconds <= 0:
            raise ConfigurationError(f"Invalid request_timeout_seconds: {self.request_timeout_seconds}")

    @property
    def settle_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.settle_max_attempts,
            initial_delay=self.settle_delay_seconds,
            backoff=self.settle_backoff,
            max_delay=self.settle_max_delay_seconds,
        )


@dataclass(frozen=True)
class WeightConfig:
    """Weight estimation defaults.

    Attributes:
        default_measure_type: Measurement type preselected for new catches
        default_sex: Sex tag used for sex-variant formulas when none is chosen
    """
    default_measure_type: str = "TL"
    default_sex: str = "F"

    def __post_init__(self):
        if self.default_measure_type not in MEASURE_TYPES:
            raise ConfigurationError(f"Invalid default_measure_type: {self.default_measure_type}")
        if self.default_sex not in ("F", "M"):
            raise ConfigurationError(f"Invalid default_sex: {self.default_sex}")


@dataclass(frozen=True)
class StorageConfig:
    """Output locations.

    Attributes:
        catch_log_path: Excel workbook mirroring logged catches
        run_log_dir: Directory for per-run log files
        report_dir: Directory for exported reports
        excel_mirror_enabled: Mirror each logged catch to the workbook
    """
    catch_log_path: str = "logs/catches/catches.xlsx"
    run_log_dir: str = "logs/runs"
    report_dir: str = "reports/output"
    excel_mirror_enabled: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration.

    Attributes:
        session: Session lifecycle settings
        weight: Weight estimation defaults
        storage: Output locations
        formulas_data: Length-weight formula rows loaded from JSON
        debug: Debug mode flag
        log_level: Logging verbosity level
    """
    session: SessionConfig
    weight: WeightConfig
    storage: StorageConfig

    # Loaded from JSON files
    formulas_data: List[Dict[str, Any]] = field(default_factory=list)

    debug: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")


class ConfigLoader:
    """Centralized configuration loader with validation and hierarchy."""

    def __init__(self, config_dir: Path = Path("config")):
        self.config_dir = Path(config_dir)

    def load(self, argv: List[str]) -> Tuple[AppConfig, List[str]]:
        """Load configuration with proper hierarchy: defaults → files → env → CLI.

        Args:
            argv: Command-line arguments to parse

        Returns:
            Tuple of (AppConfig instance, unknown CLI arguments)
        """
        config_dict = self._get_defaults()
        self._deep_update(config_dict, self._load_json_configs())
        self._deep_update(config_dict, self._load_env_overrides())
        cli_overrides, unknown_args = self._parse_cli_args(argv)
        self._deep_update(config_dict, cli_overrides)
        return self._build_config(config_dict), unknown_args

    def _get_defaults(self) -> Dict[str, Any]:
        return {
            "session": {
                "settle_delay_seconds": 0.5,
                "settle_max_attempts": 1,
                "settle_backoff": 2.0,
                "settle_max_delay_seconds": 5.0,
                "tick_interval_seconds": 1.0,
                "request_timeout_seconds": 10.0,
            },
            "weight": {
                "default_measure_type": "TL",
                "default_sex": "F",
            },
            "storage": {
                "catch_log_path": "logs/catches/catches.xlsx",
                "run_log_dir": "logs/runs",
                "report_dir": "reports/output",
                "excel_mirror_enabled": True,
            },
            "debug": False,
            "log_level": "INFO",
        }

    def _load_json_configs(self) -> Dict[str, Any]:
        """Load ``settings.json`` overrides and the ``formulas.json`` table.

        Missing files are skipped; unreadable ones are logged and ignored.
        """
        data: Dict[str, Any] = {}

        settings = self._read_json(self.config_dir / "settings.json")
        if isinstance(settings, dict):
            data.update(settings)

        formulas = self._read_json(self.config_dir / "formulas.json")
        if isinstance(formulas, dict):
            formulas = formulas.get("formulas", [])
        data["formulas_data"] = formulas if isinstance(formulas, list) else []
        return data

    @staticmethod
    def _read_json(path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load {path.name}: {e}")
            return None

    def _load_env_overrides(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables.

        Supported environment variables:
        - FISHLOG_SETTLE_DELAY: Seconds before the post-end re-fetch
        - FISHLOG_SETTLE_ATTEMPTS: Number of post-end re-fetches
        - FISHLOG_REQUEST_TIMEOUT: Per-call collaborator timeout
        - FISHLOG_CATCH_LOG: Excel catch log path
        - DEBUG: Enable debug mode
        - LOG_LEVEL: Set logging level
        """
        overrides: Dict[str, Any] = {}
        session = {}

        settle_delay = self._env_number("FISHLOG_SETTLE_DELAY", float)
        if settle_delay is not None:
            session["settle_delay_seconds"] = settle_delay
        settle_attempts = self._env_number("FISHLOG_SETTLE_ATTEMPTS", int)
        if settle_attempts is not None:
            session["settle_max_attempts"] = settle_attempts
        timeout = self._env_number("FISHLOG_REQUEST_TIMEOUT", float)
        if timeout is not None:
            session["request_timeout_seconds"] = timeout
        if session:
            overrides["session"] = session

        catch_log = os.getenv("FISHLOG_CATCH_LOG")
        if catch_log:
            overrides["storage"] = {"catch_log_path": catch_log}

        if self._env_bool("DEBUG"):
            overrides["debug"] = True

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            overrides["log_level"] = log_level.upper()

        return overrides

    def _parse_cli_args(self, argv: List[str]) -> Tuple[Dict[str, Any], List[str]]:
        """Parse CLI arguments.

        Returns:
            Tuple of (overrides dictionary, unknown arguments)
        """
        parser = argparse.ArgumentParser(description="Fish log", add_help=False)
        parser.add_argument("--settle-delay", type=float, help="Seconds to wait before re-fetching an ended session")
        parser.add_argument("--settle-attempts", type=int, help="Number of re-fetches after ending a session")
        parser.add_argument("--catch-log", help="Excel catch log path")
        parser.add_argument("--debug", action="store_true", help="Enable debug mode")
        parser.add_argument("--log-level", choices=list(LOG_LEVELS), help="Set logging level")

        known, unknown = parser.parse_known_args(argv)

        overrides: Dict[str, Any] = {}
        if known.settle_delay is not None:
            overrides.setdefault("session", {})["settle_delay_seconds"] = known.settle_delay
        if known.settle_attempts is not None:
            overrides.setdefault("session", {})["settle_max_attempts"] = known.settle_attempts
        if known.catch_log:
            overrides.setdefault("storage", {})["catch_log_path"] = known.catch_log
        if known.debug:
            overrides["debug"] = True
        if known.log_level:
            overrides["log_level"] = known.log_level

        return overrides, unknown

    def _build_config(self, config_dict: Dict[str, Any]) -> AppConfig:
        """Build and validate the final configuration object.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        try:
            return AppConfig(
                session=SessionConfig(**config_dict.get("session", {})),
                weight=WeightConfig(**config_dict.get("weight", {})),
                storage=StorageConfig(**config_dict.get("storage", {})),
                formulas_data=config_dict.get("formulas_data", []),
                debug=config_dict.get("debug", False),
                log_level=config_dict.get("log_level", "INFO"),
            )
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

    @staticmethod
    def _env_bool(name: str, default: bool = False) -> bool:
        """Parse boolean from environment variable ("1", "true", "yes", "y", "on")."""
        val = os.getenv(name)
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "y", "on"}

    @staticmethod
    def _env_number(name: str, cast):
        val = os.getenv(name)
        if val is None or not val.strip():
            return None
        try:
            return cast(val)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be a number, got {val!r}") from e

    @staticmethod
    def _deep_update(target: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Recursively update mapping 'target' with 'updates' without clobbering nested dicts."""
        for key, new_val in updates.items():
            if isinstance(new_val, dict) and isinstance(target.get(key), dict):
                ConfigLoader._deep_update(target[key], new_val)
            else:
                target[key] = new_val


def parse_app_args(argv: List[str]) -> Tuple[AppConfig, List[str]]:
    """Parse application configuration from all sources."""
    return ConfigLoader().load(argv)


__all__ = ["AppConfig", "SessionConfig", "WeightConfig", "StorageConfig", "ConfigLoader", "parse_app_args"]
