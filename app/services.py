"""Services for application infrastructure management.

This module implements the Service Layer pattern to separate infrastructure
concerns (exception handling, cleanup) from application logic.
"""
from __future__ import annotations

import asyncio
import atexit
import sys
import threading
import traceback
from typing import Callable, List, Optional, Tuple

from loguru import logger

from core.error_handler import handle_exceptions


class ExceptionHandlerService:
    """Service for managing global exception handling.

    Captures uncaught exceptions from the main thread, worker threads, and
    background asyncio tasks (such as fire-and-forget aggregation requests),
    logging them before the default handling runs.

    Attributes:
        run_logger: Optional run logger for persistent error tracking
    """

    def __init__(self, run_logger=None):
        self.run_logger = run_logger
        self._original_excepthook = sys.excepthook
        self._original_thread_excepthook = threading.excepthook

    def _record(self, text: str) -> None:
        if self.run_logger is not None:
            self.run_logger.log_error(f"Uncaught exception:\n{text}")
        else:
            logger.error("Uncaught exception:\n{}", text)

    def install(self) -> None:
        """Install global exception handlers for main and worker threads."""
        def excepthook(exc_type, exc_value, exc_traceback):
            try:
                self._record("".join(traceback.format_exception(exc_type, exc_value, exc_traceback)))
            finally:
                self._original_excepthook(exc_type, exc_value, exc_traceback)

        def thread_excepthook(args: threading.ExceptHookArgs) -> None:
            excepthook(args.exc_type, args.exc_value, args.exc_traceback)

        sys.excepthook = excepthook
        threading.excepthook = thread_excepthook

    def install_asyncio(self, loop: asyncio.AbstractEventLoop) -> None:
        """Log exceptions from tasks nobody awaited."""
        def handler(event_loop, context):
            exc = context.get("exception")
            if exc is not None:
                self._record("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            else:
                logger.error(f"Event loop error: {context.get('message')}")

        loop.set_exception_handler(handler)

    def uninstall(self) -> None:
        """Restore original exception handlers."""
        sys.excepthook = self._original_excepthook
        threading.excepthook = self._original_thread_excepthook


class CleanupService:
    """Service for managing application cleanup.

    Maintains a registry of cleanup handlers and ensures they are executed
    exactly once in registration order during application shutdown.
    """

    def __init__(self):
        self._cleanup_handlers: List[Tuple[Callable[[], None], str]] = []
        self._cleaned_up = False

    def register(self, handler: Callable[[], None], name: str = "") -> None:
        self._cleanup_handlers.append((handler, name))

    @property
    def cleaned_up(self) -> bool:
        return self._cleaned_up

    @handle_exceptions(message="Cleanup failed")
    def cleanup(self) -> None:
        """Execute all registered cleanup handlers.

        Failures in individual handlers are logged but don't prevent
        subsequent handlers from running. Calling again has no effect.
        """
        if self._cleaned_up:
            return

        self._cleaned_up = True
        logger.debug("Starting cleanup...")

        for handler, name in self._cleanup_handlers:
            try:
                logger.debug(f"Cleaning up: {name or handler.__name__}")
                handler()
            except Exception as e:
                logger.warning(f"Cleanup handler {name} failed: {e}")

    def install_atexit(self) -> None:
        """Register cleanup to run at interpreter exit."""
        atexit.register(self.cleanup)


def configure_logging(level: str = "INFO", sink=None) -> Optional[int]:
    """Replace loguru's default stderr sink with one at ``level``."""
    logger.remove()
    return logger.add(sink or sys.stderr, level=level, format="{time:HH:mm:ss} | {level: <7} | {message}")
