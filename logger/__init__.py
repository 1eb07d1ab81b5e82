"""File-backed logs: the Excel catch log and the per-run log file."""
from __future__ import annotations

from .excel_logger import CATCH_LOG_HEADER, ExcelCatchLogger
from .run_logger import RunLogger

__all__ = ["CATCH_LOG_HEADER", "ExcelCatchLogger", "RunLogger"]
