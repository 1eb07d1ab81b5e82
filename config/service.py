"""Configuration service facade for simplified configuration access.

Implements the Facade pattern to provide a clean, simple interface
to the configuration dataclasses.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from config.config import AppConfig, ConfigLoader
from core.error_handler import RetryPolicy


class ConfigurationService:
    """Facade for application configuration management.

    Example:
        config_service = ConfigurationService(config)
        policy = config_service.settle_policy  # Instead of config.session.settle_policy
    """

    def __init__(self, config: AppConfig):
        self._config = config

    # Session configuration shortcuts
    @property
    def settle_policy(self) -> RetryPolicy:
        """Bounded wait-and-refetch schedule used after ending a session."""
        return self._config.session.settle_policy

    @property
    def tick_interval(self) -> float:
        return self._config.session.tick_interval_seconds

    @property
    def request_timeout(self) -> float:
        return self._config.session.request_timeout_seconds

    # Weight configuration
    @property
    def default_measure_type(self) -> str:
        return self._config.weight.default_measure_type

    @property
    def default_sex(self) -> str:
        return self._config.weight.default_sex

    # Storage configuration
    @property
    def catch_log_path(self) -> str:
        return self._config.storage.catch_log_path

    @property
    def run_log_dir(self) -> str:
        return self._config.storage.run_log_dir

    @property
    def report_dir(self) -> str:
        return self._config.storage.report_dir

    @property
    def excel_mirror_enabled(self) -> bool:
        return self._config.storage.excel_mirror_enabled

    # General configuration
    @property
    def debug(self) -> bool:
        return self._config.debug

    @property
    def log_level(self) -> str:
        return "DEBUG" if self._config.debug else self._config.log_level

    def get_formula_rows(self) -> List[Dict[str, Any]]:
        """Length-weight formula rows loaded from ``formulas.json``."""
        return list(self._config.formulas_data)

    @property
    def raw_config(self) -> AppConfig:
        return self._config

    def to_dict(self) -> Dict[str, Any]:
        """Configuration summary for the run log."""
        policy = self.settle_policy
        return {
            "session": {
                "settle_attempts": policy.max_attempts,
                "settle_delay": policy.initial_delay,
                "tick_interval": self.tick_interval,
                "request_timeout": self.request_timeout,
            },
            "weight": {
                "default_measure_type": self.default_measure_type,
                "default_sex": self.default_sex,
                "formulas": len(self._config.formulas_data),
            },
            "storage": {
                "catch_log_path": self.catch_log_path,
                "run_log_dir": self.run_log_dir,
                "report_dir": self.report_dir,
                "excel_mirror_enabled": self.excel_mirror_enabled,
            },
            "debug": self.debug,
            "log_level": self.log_level,
        }


class ConfigurationServiceFactory:
    """Factory for creating ConfigurationService instances."""

    @staticmethod
    def create_from_args(
        args: List[str], config_dir: Optional[Path] = None
    ) -> tuple[ConfigurationService, List[str]]:
        loader = ConfigLoader(config_dir) if config_dir else ConfigLoader()
        config, unknown_args = loader.load(args)
        return ConfigurationService(config), unknown_args

    @staticmethod
    def create_from_config(config: AppConfig) -> ConfigurationService:
        return ConfigurationService(config)

    @staticmethod
    def create_default() -> ConfigurationService:
        config, _ = ConfigLoader().load([])
        return ConfigurationService(config)
