"""Persistence and statistics collaborators."""
from __future__ import annotations

from .base import CatchFilter, SessionStore, StatsAggregator
from .memory import InMemoryStatsAggregator, InMemoryStore

__all__ = [
    "CatchFilter",
    "SessionStore",
    "StatsAggregator",
    "InMemoryStatsAggregator",
    "InMemoryStore",
]
