"""Collaborator interfaces consumed by the session core.

A backing store only has to implement these coroutines to reproduce the
application's behaviour; no wire or file format is implied.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.catch import Catch, NewCatch
from models.formula import MeasureType, WeightFormula
from models.session import FishingSession


@dataclass(frozen=True)
class CatchFilter:
    """Optional constraints for ``SessionStore.fetch_catches``.

    Attributes:
        session_id: Only catches linked to this session
        grid_only: Only catches carrying a grid reference
        since: Only catches landed at or after this moment
    """
    session_id: Optional[str] = None
    grid_only: bool = False
    since: Optional[datetime] = None

    def matches(self, catch: Catch) -> bool:
        if self.session_id is not None and catch.session_id != self.session_id:
            return False
        if self.grid_only and not catch.grid_reference:
            return False
        if self.since is not None and catch.caught_at < self.since:
            return False
        return True


class SessionStore(ABC):
    """Persistence collaborator for sessions, catches, and formulas."""

    @abstractmethod
    async def create_session(self, owner_id: str, fields: Dict[str, Any]) -> FishingSession:
        """Insert an active session; raise ``SessionConflictError`` if one exists."""

    @abstractmethod
    async def update_session(
        self,
        session_id: str,
        patch: Dict[str, Any],
        expected_active: Optional[bool] = None,
    ) -> FishingSession:
        """Apply ``patch``; when ``expected_active`` is given, only if it still holds."""

    @abstractmethod
    async def fetch_session(self, session_id: str) -> Optional[FishingSession]:
        ...

    @abstractmethod
    async def fetch_active_session(self, owner_id: str) -> Optional[FishingSession]:
        ...

    @abstractmethod
    async def fetch_sessions(self, owner_id: str) -> List[FishingSession]:
        """All of an owner's sessions, newest first."""

    @abstractmethod
    async def insert_catch(self, new_catch: NewCatch) -> Catch:
        ...

    @abstractmethod
    async def fetch_catches(self, owner_id: str, catch_filter: Optional[CatchFilter] = None) -> List[Catch]:
        ...

    @abstractmethod
    async def fetch_formula(
        self, catalogue_name: str, measure_type: Optional[MeasureType] = None
    ) -> Optional[WeightFormula]:
        """Exact ``(name, measure_type)`` row, or the first row for ``name`` when no type is given."""


class StatsAggregator(ABC):
    """External statistics aggregator.

    ``aggregate`` only requests the computation; completion time is
    unspecified and nothing is returned.
    """

    @abstractmethod
    async def aggregate(self, session_id: str) -> None:
        ...
