"""Application initialization and setup."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from app.services import CleanupService, ExceptionHandlerService
from app.use_cases import (
    CatchSummaryUseCase,
    ClearSessionUseCase,
    EndSessionUseCase,
    EstimateWeightUseCase,
    GridStatisticsUseCase,
    LogCatchUseCase,
    SessionHistoryUseCase,
    StartSessionUseCase,
)
from config.service import ConfigurationService
from core.clock import Clock
from core.container import Container
from logger.excel_logger import ExcelCatchLogger
from logger.run_logger import RunLogger
from reports.grid_report import GridReportGenerator
from sessions.registry import SessionRegistry
from storage.memory import InMemoryStatsAggregator, InMemoryStore
from weights.resolver import FormulaResolver


class Application:
    """Main application class that handles initialization and lifecycle.

    Wires the store, statistics aggregator, formula resolver, session
    registry and loggers through a ``Container`` and tears them down again
    in reverse order on ``aclose``.

    Attributes:
        config: Configuration facade
        container: Lazily-built services
        cleanup_service: Manages synchronous cleanup handlers
        exception_handler: Global exception handling
    """

    def __init__(
        self,
        config: ConfigurationService,
        clock: Optional[Clock] = None,
        run_logger: Optional[RunLogger] = None,
        install_handlers: bool = True,
    ):
        """Initialize application with dependencies.

        Args:
            config: Configuration service
            clock: Time source shared by sessions and catches
            run_logger: Run log file; none is written if not provided
            install_handlers: Whether to install global exception and atexit hooks
        """
        self.config = config
        self.clock = clock or Clock()
        self.run_logger = run_logger
        self.container = Container()
        self._register_services()

        self.cleanup_service = CleanupService()
        self.exception_handler = ExceptionHandlerService(self.run_logger)
        if install_handlers:
            self.exception_handler.install()
            self.cleanup_service.install_atexit()

        if self.run_logger is not None:
            self.cleanup_service.register(self.run_logger.log_end, "run_logger")

    def _register_services(self) -> None:
        c = self.container
        c.register("clock", self.clock)
        c.register_factory("store", lambda _: self._create_store())
        c.register_factory("aggregator", lambda c: InMemoryStatsAggregator(c.get("store")))
        c.register_factory("resolver", lambda c: FormulaResolver(c.get("store")))
        c.register_factory(
            "registry",
            lambda c: SessionRegistry(
                c.get("store"),
                c.get("aggregator"),
                clock=c.get("clock"),
                settle_policy=self.config.settle_policy,
                tick_interval=self.config.tick_interval,
                request_timeout=self.config.request_timeout,
            ),
        )
        c.register_factory(
            "excel_logger",
            lambda _: ExcelCatchLogger(self.config.catch_log_path) if self.config.excel_mirror_enabled else None,
        )

    def _create_store(self) -> InMemoryStore:
        store = InMemoryStore()
        loaded = store.load_formula_rows(self.config.get_formula_rows())
        logger.debug(f"[store] loaded {loaded} weight formulas")
        return store

    # ---------- Services ----------
    @property
    def store(self) -> InMemoryStore:
        return self.container.get("store")

    @property
    def registry(self) -> SessionRegistry:
        return self.container.get("registry")

    @property
    def excel_logger(self) -> Optional[ExcelCatchLogger]:
        return self.container.get("excel_logger")

    # ---------- Use cases ----------
    def start_session(self) -> StartSessionUseCase:
        return StartSessionUseCase(self.registry)

    def end_session(self) -> EndSessionUseCase:
        return EndSessionUseCase(self.registry)

    def clear_session(self) -> ClearSessionUseCase:
        return ClearSessionUseCase(self.registry)

    def log_catch(self) -> LogCatchUseCase:
        return LogCatchUseCase(self.store, self.registry, self.excel_logger, self.clock)

    def estimate_weight(self) -> EstimateWeightUseCase:
        return EstimateWeightUseCase(self.container.get("resolver"), self.config.default_sex)

    def grid_statistics(self) -> GridStatisticsUseCase:
        return GridStatisticsUseCase(self.store)

    def session_history(self) -> SessionHistoryUseCase:
        return SessionHistoryUseCase(self.store)

    def catch_summary(self) -> CatchSummaryUseCase:
        return CatchSummaryUseCase(self.store)

    def grid_report(self, data_path: Optional[Path] = None) -> GridReportGenerator:
        return GridReportGenerator(data_path or Path(self.config.catch_log_path))

    # ---------- Lifecycle ----------
    def log_session_info(self) -> None:
        """Log the effective configuration to the run log."""
        if self.run_logger is None:
            return
        self.run_logger.log_kv(
            "APP",
            {"python": sys.version.split(" ")[0], "formulas": len(self.config.get_formula_rows())},
        )
        self.run_logger.log_kv("CONFIG", self.config.to_dict())

    def cleanup(self) -> None:
        """Execute cleanup through the cleanup service."""
        self.cleanup_service.cleanup()

    async def aclose(self) -> None:
        """Stop session timers and pending aggregation, then run cleanup."""
        await self.container.aclose()
        self.cleanup()
        self.exception_handler.uninstall()

    async def __aenter__(self) -> "Application":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
