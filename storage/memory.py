"""In-process reference implementations of the store and aggregator.

Used by the command-line tools and the test-suite. All state lives in
dictionaries guarded by an ``asyncio.Lock``; records handed out are frozen
dataclasses, so callers cannot mutate stored rows.
"""
from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger

from core.exceptions import (
    AggregatorError,
    ForeignKeyError,
    SessionConflictError,
    SessionNotFoundError,
    ValidationError,
)
from models.catch import Catch, NewCatch
from models.formula import MeasureType, WeightFormula
from models.session import FishingSession, SessionDetails
from sessions.stats import calculate_session_stats
from storage.base import CatchFilter, SessionStore, StatsAggregator

_DETAIL_FIELDS = set(SessionDetails.__dataclass_fields__)


class InMemoryStore(SessionStore):
    """Dictionary-backed session store.

    ``create_session`` checks for an existing active session and inserts
    the new one under the same lock, so one owner can never end up with
    two active sessions.
    """

    def __init__(self, formulas: Iterable[WeightFormula] = ()):
        self._lock = asyncio.Lock()
        self._sessions: Dict[str, FishingSession] = {}
        self._catches: Dict[str, Catch] = {}
        self._formulas: Dict[Tuple[str, MeasureType], WeightFormula] = {}
        self.load_formulas(formulas)

    # ---------- Formulas ----------
    def load_formulas(self, formulas: Iterable[WeightFormula]) -> int:
        count = 0
        for formula in formulas:
            self._formulas[formula.key] = formula
            count += 1
        return count

    def load_formula_rows(self, rows: Iterable[Dict[str, Any]]) -> int:
        """Load raw catalogue rows, skipping malformed ones."""
        loaded = 0
        for row in rows:
            try:
                formula = WeightFormula.from_row(row)
            except ValidationError as e:
                logger.warning(f"[store] skipping formula row {row.get('catalogue_name')!r}: {e}")
                continue
            self._formulas[formula.key] = formula
            loaded += 1
        return loaded

    async def fetch_formula(
        self, catalogue_name: str, measure_type: Optional[MeasureType] = None
    ) -> Optional[WeightFormula]:
        if measure_type is not None:
            return self._formulas.get((catalogue_name, MeasureType.parse(measure_type)))
        for mtype in MeasureType:
            formula = self._formulas.get((catalogue_name, mtype))
            if formula is not None:
                return formula
        return None

    # ---------- Sessions ----------
    async def create_session(self, owner_id: str, fields: Dict[str, Any]) -> FishingSession:
        async with self._lock:
            for existing in self._sessions.values():
                if existing.owner_id == owner_id and existing.is_active:
                    raise SessionConflictError(
                        f"Owner {owner_id} already has active session {existing.id}"
                    )
            details = SessionDetails.from_mapping({k: v for k, v in fields.items() if k in _DETAIL_FIELDS})
            session = FishingSession(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                start_time=fields["start_time"],
                is_active=True,
                session_date=fields.get("session_date"),
                details=details,
            )
            self._sessions[session.id] = session
            return session

    async def update_session(
        self,
        session_id: str,
        patch: Dict[str, Any],
        expected_active: Optional[bool] = None,
    ) -> FishingSession:
        async with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFoundError(f"Session {session_id} not found")
            if expected_active is not None and current.is_active != expected_active:
                raise SessionConflictError(
                    f"Session {session_id} is_active={current.is_active}, expected {expected_active}"
                )
            updated = current.apply(patch)
            self._sessions[session_id] = updated
            return updated

    async def fetch_session(self, session_id: str) -> Optional[FishingSession]:
        return self._sessions.get(session_id)

    async def fetch_active_session(self, owner_id: str) -> Optional[FishingSession]:
        active = [s for s in self._sessions.values() if s.owner_id == owner_id and s.is_active]
        if not active:
            return None
        return max(active, key=lambda s: s.start_time)

    async def fetch_sessions(self, owner_id: str) -> List[FishingSession]:
        owned = [s for s in self._sessions.values() if s.owner_id == owner_id]
        return sorted(owned, key=lambda s: s.start_time, reverse=True)

    # ---------- Catches ----------
    async def insert_catch(self, new_catch: NewCatch) -> Catch:
        async with self._lock:
            if new_catch.session_id is not None and new_catch.session_id not in self._sessions:
                raise ForeignKeyError(
                    f"insert violates foreign key constraint: session {new_catch.session_id} does not exist"
                )
            stored = Catch.from_new(str(uuid.uuid4()), new_catch)
            self._catches[stored.id] = stored
            return stored

    async def fetch_catches(self, owner_id: str, catch_filter: Optional[CatchFilter] = None) -> List[Catch]:
        catch_filter = catch_filter or CatchFilter()
        rows = [c for c in self._catches.values() if c.owner_id == owner_id and catch_filter.matches(c)]
        return sorted(rows, key=lambda c: c.caught_at, reverse=True)


class InMemoryStatsAggregator(StatsAggregator):
    """Background aggregator publishing session statistics into a store.

    Each ``aggregate`` call schedules a task that waits ``lag_seconds`` and
    then patches the session with ``calculate_session_stats``. The call
    itself returns immediately.
    """

    def __init__(self, store: SessionStore, lag_seconds: float = 0.0):
        self.store = store
        self.lag_seconds = lag_seconds
        self._tasks: Set[asyncio.Task] = set()

    async def aggregate(self, session_id: str) -> None:
        session = await self.store.fetch_session(session_id)
        if session is None:
            raise AggregatorError(f"Cannot aggregate unknown session {session_id}")
        task = asyncio.get_running_loop().create_task(self._settle(session_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _settle(self, session_id: str) -> None:
        if self.lag_seconds > 0:
            await asyncio.sleep(self.lag_seconds)
        session = await self.store.fetch_session(session_id)
        if session is None:
            logger.warning(f"[stats] session {session_id} vanished before aggregation")
            return
        catches = await self.store.fetch_catches(session.owner_id, CatchFilter(session_id=session_id))
        patch = calculate_session_stats(session, catches)
        await self.store.update_session(session_id, patch)
        logger.info(
            f"[stats] session {session_id}: {patch['total_catches']} catches, "
            f"{patch['total_weight_kg']:.2f} kg in {patch['duration_minutes']} min"
        )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled aggregation to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
