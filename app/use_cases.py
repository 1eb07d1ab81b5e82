"""Use cases for fish log business logic.

Implements the use case layer following Clean Architecture principles,
encapsulating business rules and orchestrating data flow between
the presentation layer and the session core, store, and loggers.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from core.clock import Clock
from core.exceptions import FishLogException, ForeignKeyError, LoggingError, StoreError
from core.result import Failure, Result, Success
from grid.aggregator import GridStatistic, aggregate_by_grid
from models.catch import Catch, NewCatch, WeightSource
from models.session import FishingSession, SessionDetails
from reports.catch_summary import RECENT_CATCHES, CatchSummary, summarize_catches
from sessions.manager import SettledSession
from sessions.registry import SessionRegistry
from sessions.stats import describe_session
from storage.base import CatchFilter, SessionStore
from weights.resolver import FormulaResolver, WeightEstimate


class StartSessionUseCase:
    """Starts a fishing session for an owner."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def execute(
        self, owner_id: str, details: Union[SessionDetails, Dict[str, Any], None] = None
    ) -> Result[FishingSession, FishLogException]:
        return await self.registry.manager_for(owner_id).start(details)


class EndSessionUseCase:
    """Ends a session and returns it with whatever statistics have settled."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def execute(
        self, owner_id: str, session_id: Optional[str] = None
    ) -> Result[SettledSession, FishLogException]:
        result = await self.registry.manager_for(owner_id).end(session_id)
        if result.is_success():
            logger.info(f"[session] {describe_session(result.unwrap().session)}")
            if not result.unwrap().settled:
                logger.info("[session] statistics not settled yet; re-fetch later from the sessions list")
        return result


class ClearSessionUseCase:
    """Drops a stuck local session reference without ending it in the store."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def execute(self, owner_id: str) -> Result[bool, FishLogException]:
        manager = self.registry.manager_for(owner_id)
        had_session = manager.has_active_session
        manager.clear()
        return Success(had_session)


class LogCatchUseCase:
    """Validates and stores a catch, linking it to the owner's active session.

    If the store rejects the session link (the session no longer exists),
    the catch is stored without a session rather than lost.
    """

    def __init__(
        self,
        store: SessionStore,
        registry: SessionRegistry,
        excel_logger=None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.registry = registry
        self.excel_logger = excel_logger
        self.clock = clock or registry.clock

    async def execute(
        self,
        owner_id: str,
        species_id: str,
        length_cm: Optional[float] = None,
        length_type: str = "TL",
        weight_kg: Optional[float] = None,
        weight_source: Union[WeightSource, str] = WeightSource.MANUAL,
        grid_reference: Optional[str] = None,
        caught_at: Optional[datetime] = None,
        released: bool = False,
        notes: Optional[str] = None,
        species_name: Optional[str] = None,
    ) -> Result[Catch, FishLogException]:
        """Log a catch.

        Returns:
            Result containing the stored Catch, or the validation/store error
        """
        active = self.registry.manager_for(owner_id).active_session
        if grid_reference is None and active is not None:
            grid_reference = active.grid_reference

        try:
            new_catch = NewCatch(
                owner_id=owner_id,
                species_id=species_id,
                caught_at=caught_at or self.clock.now(),
                weight_kg=weight_kg,
                length_cm=length_cm,
                length_type=length_type,
                grid_reference=grid_reference,
                session_id=active.id if active else None,
                released=released,
                weight_source=weight_source,
                notes=notes,
            )
        except FishLogException as e:
            logger.warning(f"[catch] rejected: {e}")
            return Failure(e)

        try:
            stored = await self._insert(new_catch)
        except FishLogException as e:
            logger.error(f"[catch] failed to store catch: {e}")
            return Failure(e)
        except Exception as e:
            logger.error(f"[catch] failed to store catch: {e}")
            return Failure(StoreError(f"Failed to store catch: {e}"))

        logger.info(
            f"[catch] {species_name or stored.species_id} length={stored.length_cm} "
            f"weight={stored.weight_kg} grid={stored.grid_reference} session={stored.session_id}"
        )
        self._mirror(stored, species_name)
        return Success(stored)

    async def _insert(self, new_catch: NewCatch) -> Catch:
        try:
            return await self.store.insert_catch(new_catch)
        except ForeignKeyError:
            if new_catch.session_id is None:
                raise
            logger.warning(
                f"[catch] session link {new_catch.session_id} rejected; logging catch without a session"
            )
            return await self.store.insert_catch(new_catch.without_session())

    def _mirror(self, stored: Catch, species_name: Optional[str]) -> None:
        if self.excel_logger is None:
            return
        try:
            self.excel_logger.log_catch(stored, species_name)
        except LoggingError as e:
            # The catch is already stored; the workbook is only a mirror
            logger.warning(f"[excel] {e}")


class EstimateWeightUseCase:
    """Estimates a weight from a length. Never fails: no formula means no estimate."""

    def __init__(self, resolver: FormulaResolver, default_sex: str = "F"):
        self.resolver = resolver
        self.default_sex = default_sex

    async def execute(
        self,
        length_cm: Any,
        species_name: str,
        measure_type: Any = "TL",
        sex: Optional[str] = None,
    ) -> WeightEstimate:
        return await self.resolver.resolve_weight(length_cm, species_name, measure_type, sex or self.default_sex)


class GridStatisticsUseCase:
    """Per-grid performance over all of an owner's grid-tagged catches."""

    def __init__(self, store: SessionStore):
        self.store = store

    async def execute(self, owner_id: str) -> Result[List[GridStatistic], FishLogException]:
        try:
            catches = await self.store.fetch_catches(owner_id, CatchFilter(grid_only=True))
        except FishLogException as e:
            logger.error(f"[grid] failed to load catches for {owner_id}: {e}")
            return Failure(e)
        return Success(aggregate_by_grid(catches))


class SessionHistoryUseCase:
    """The owner's sessions, newest first, with whatever statistics have settled."""

    def __init__(self, store: SessionStore):
        self.store = store

    async def execute(self, owner_id: str) -> Result[List[FishingSession], FishLogException]:
        try:
            sessions = await self.store.fetch_sessions(owner_id)
        except FishLogException as e:
            logger.error(f"[session] failed to load history for {owner_id}: {e}")
            return Failure(e)
        except Exception as e:
            logger.error(f"[session] failed to load history for {owner_id}: {e}")
            return Failure(StoreError(f"Failed to load sessions: {e}"))
        pending = sum(1 for s in sessions if not s.is_active and not s.is_settled)
        if pending:
            logger.debug(f"[session] {pending} ended session(s) for {owner_id} still awaiting statistics")
        return Success(sessions)


class CatchSummaryUseCase:
    """Dashboard figures: total catches, distinct species and the latest catches."""

    def __init__(self, store: SessionStore, recent: int = RECENT_CATCHES):
        self.store = store
        self.recent = recent

    async def execute(self, owner_id: str) -> Result[CatchSummary, FishLogException]:
        try:
            catches = await self.store.fetch_catches(owner_id)
        except FishLogException as e:
            logger.error(f"[catch] failed to load catches for {owner_id}: {e}")
            return Failure(e)
        except Exception as e:
            logger.error(f"[catch] failed to load catches for {owner_id}: {e}")
            return Failure(StoreError(f"Failed to load catches: {e}"))
        return Success(summarize_catches(catches, self.recent))
