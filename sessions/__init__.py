"""Fishing session lifecycle, timer, and derived statistics."""
from __future__ import annotations

from .manager import SessionLifecycleManager, SessionPhase, SettledSession
from .registry import SessionRegistry
from .stats import calculate_session_stats, describe_session, format_duration_minutes, format_elapsed
from .timer import SessionTimer, elapsed_seconds

__all__ = [
    "SessionLifecycleManager",
    "SessionPhase",
    "SettledSession",
    "SessionRegistry",
    "calculate_session_stats",
    "describe_session",
    "format_duration_minutes",
    "format_elapsed",
    "SessionTimer",
    "elapsed_seconds",
]
