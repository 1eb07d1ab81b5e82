"""Fishing session lifecycle for a single owner.

States::

    NO_SESSION --start--> ACTIVE --end--> SETTLING --> SETTLED --take--> NO_SESSION

Ending a session writes ``end_time``/``is_active`` to the store, asks the
statistics aggregator to publish derived fields, then performs a bounded
settle: wait, re-fetch, and stop after the configured number of attempts.
A session whose statistics are not yet visible is still returned; the
caller may re-fetch it later with ``refresh_session``.

Side-effecting operations return a ``Result`` and never raise for
collaborator failures.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from loguru import logger

from core.clock import Clock
from core.error_handler import RetryPolicy, poll_until, with_timeout
from core.exceptions import (
    FishLogException,
    SessionConflictError,
    SessionNotFoundError,
    StoreError,
)
from core.result import Failure, Result, Success
from models.session import FishingSession, SessionDetails
from sessions.stats import format_elapsed
from sessions.timer import SessionTimer, elapsed_seconds
from storage.base import SessionStore, StatsAggregator

T = TypeVar("T")


class SessionPhase(str, Enum):
    NO_SESSION = "no_session"
    ACTIVE = "active"
    SETTLING = "settling"
    SETTLED = "settled"


@dataclass(frozen=True)
class SettledSession:
    """Outcome of ending a session.

    Attributes:
        session: Latest stored row after the settle wait
        settled: Whether the derived statistics were visible in time
        attempts: Number of re-fetches performed
    """
    session: FishingSession
    settled: bool
    attempts: int


class SessionLifecycleManager:
    """Tracks and drives the active fishing session of one owner."""

    def __init__(
        self,
        owner_id: str,
        store: SessionStore,
        aggregator: StatsAggregator,
        clock: Optional[Clock] = None,
        settle_policy: Optional[RetryPolicy] = None,
        tick_interval: float = 1.0,
        request_timeout: Optional[float] = None,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        self.owner_id = owner_id
        self.store = store
        self.aggregator = aggregator
        self.clock = clock or Clock()
        self.settle_policy = settle_policy or RetryPolicy()
        self.tick_interval = tick_interval
        self.request_timeout = request_timeout
        self.on_tick = on_tick

        self._phase = SessionPhase.NO_SESSION
        self._active: Optional[FishingSession] = None
        self._timer: Optional[SessionTimer] = None
        self._last_ended: Optional[SettledSession] = None

    # ---------- State ----------
    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def active_session(self) -> Optional[FishingSession]:
        return self._active

    @property
    def has_active_session(self) -> bool:
        return self._active is not None

    @property
    def last_ended(self) -> Optional[SettledSession]:
        return self._last_ended

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and self._timer.running

    def tick(self) -> int:
        """Elapsed seconds of the active session, derived from its stored start."""
        if self._active is None:
            return 0
        if self._timer is not None:
            return self._timer.tick()
        return elapsed_seconds(self._active.start_time, self.clock.now())

    @property
    def elapsed_seconds(self) -> int:
        return self.tick()

    # ---------- Operations ----------
    async def load(self) -> Result[Optional[FishingSession], FishLogException]:
        """Adopt the owner's stored active session, e.g. after a restart."""
        outcome = await self._guard(self.store.fetch_active_session(self.owner_id), "fetch active session")
        if outcome.is_failure():
            return outcome
        session = outcome.unwrap()
        if session is not None and self._phase in (SessionPhase.NO_SESSION, SessionPhase.SETTLED):
            self._activate(session)
            logger.info(f"[session] resumed {session.id} for {self.owner_id} ({self.tick()}s elapsed)")
        return Success(session)

    async def start(
        self, details: Union[SessionDetails, Dict[str, Any], None] = None
    ) -> Result[FishingSession, FishLogException]:
        """Start a new session with the caller's conditions."""
        if self._phase in (SessionPhase.ACTIVE, SessionPhase.SETTLING):
            current = self._active.id if self._active else "?"
            return Failure(SessionConflictError(f"Session {current} is still {self._phase.value}"))

        try:
            if details is None:
                details = SessionDetails()
            elif not isinstance(details, SessionDetails):
                details = SessionDetails.from_mapping(details)
        except FishLogException as e:
            return Failure(e)

        existing = await self._guard(self.store.fetch_active_session(self.owner_id), "fetch active session")
        if existing.is_failure():
            return existing
        if existing.unwrap() is not None:
            logger.warning(f"[session] {self.owner_id} already has active session {existing.unwrap().id}")
            return Failure(SessionConflictError(f"Session {existing.unwrap().id} is already active"))

        now = self.clock.now()
        fields = details.to_fields()
        fields.update(start_time=now, session_date=now.date())
        created = await self._guard(self.store.create_session(self.owner_id, fields), "create session")
        if created.is_failure():
            logger.error(f"[session] start failed for {self.owner_id}: {created.error}")
            return created

        session = created.unwrap()
        self._last_ended = None
        self._activate(session)
        logger.info(f"[session] started {session.id} for {self.owner_id} at {now.isoformat()}")
        return Success(session)

    async def end(self, session_id: Optional[str] = None) -> Result[SettledSession, FishLogException]:
        """End a session and wait (bounded) for its statistics to settle."""
        if self._phase is SessionPhase.SETTLING:
            return Failure(SessionConflictError("A session is already being ended"))

        target_id = session_id or (self._active.id if self._active else None)
        if target_id is None:
            return Failure(SessionNotFoundError(f"No active session for {self.owner_id}"))

        fetched = await self._guard(self.store.fetch_session(target_id), "fetch session")
        if fetched.is_failure():
            return fetched
        stored = fetched.unwrap()
        if stored is None or stored.owner_id != self.owner_id:
            return Failure(SessionNotFoundError(f"Session {target_id} not found"))
        if not stored.is_active:
            if self._active is not None and self._active.id == target_id:
                # Ended elsewhere; our local reference is stale
                self._deactivate()
            return Failure(SessionConflictError(f"Session {target_id} has already ended"))

        was_local = self._active is not None and self._active.id == target_id
        if self._active is not None and not was_local:
            return Failure(SessionConflictError(
                f"Session {self._active.id} is the active session, not {target_id}"
            ))
        previous_phase = self._phase
        self._phase = SessionPhase.SETTLING
        self._stop_timer()

        ended = await self._guard(
            self.store.update_session(
                target_id,
                {"end_time": self.clock.now(), "is_active": False},
                expected_active=True,
            ),
            "end session",
        )
        if ended.is_failure():
            logger.error(f"[session] end failed for {target_id}: {ended.error}")
            self._phase = previous_phase
            if was_local:
                self._start_timer()
            return ended

        ended_session = ended.unwrap()
        requested = await self._guard(self.aggregator.aggregate(target_id), "aggregate stats")
        if requested.is_failure():
            logger.error(f"[session] stats aggregation request failed for {target_id}: {requested.error}")

        settled = await self._settle(ended_session)
        self._active = None
        self._last_ended = settled
        self._phase = SessionPhase.SETTLED
        length = elapsed_seconds(ended_session.start_time, ended_session.end_time or self.clock.now())
        logger.info(
            f"[session] ended {target_id} after {format_elapsed(length)}: "
            f"settled={settled.settled} after {settled.attempts} fetch(es)"
        )
        return Success(settled)

    def take_last_ended(self) -> Optional[SettledSession]:
        """Hand the settled session to the caller once, then return to NO_SESSION."""
        settled, self._last_ended = self._last_ended, None
        if self._phase is SessionPhase.SETTLED:
            self._phase = SessionPhase.NO_SESSION
        return settled

    def clear(self) -> None:
        """Forget the local active session without touching the stored row."""
        if self._active is not None:
            logger.warning(f"[session] clearing local reference to {self._active.id}; stored row unchanged")
        self._deactivate()

    async def refresh_session(self, session_id: str) -> Result[FishingSession, FishLogException]:
        """Re-fetch a session, e.g. to pick up statistics that settled late."""
        fetched = await self._guard(self.store.fetch_session(session_id), "fetch session")
        if fetched.is_failure():
            return fetched
        session = fetched.unwrap()
        if session is None or session.owner_id != self.owner_id:
            return Failure(SessionNotFoundError(f"Session {session_id} not found"))
        if self._last_ended is not None and self._last_ended.session.id == session_id:
            self._last_ended = SettledSession(session, session.is_settled, self._last_ended.attempts)
        return Success(session)

    async def aclose(self) -> None:
        """Tear down: stop the timer. Stored sessions stay as they are."""
        timer, self._timer = self._timer, None
        if timer is not None:
            await timer.aclose()

    async def __aenter__(self) -> "SessionLifecycleManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ---------- Internals ----------
    async def _settle(self, ended: FishingSession) -> SettledSession:
        try:
            outcome = await poll_until(
                lambda: self._call(self.store.fetch_session(ended.id), "refetch session"),
                lambda s: s.is_settled,
                self.settle_policy,
            )
        except FishLogException as e:
            logger.warning(f"[session] settle re-fetch failed for {ended.id}: {e}")
            return SettledSession(ended, ended.is_settled, 0)
        except Exception as e:
            logger.warning(f"[session] settle re-fetch failed for {ended.id}: {type(e).__name__}: {e}")
            return SettledSession(ended, ended.is_settled, 0)
        latest = outcome.value or ended
        return SettledSession(latest, outcome.satisfied, outcome.attempts)

    async def _call(self, awaitable: Awaitable[T], operation: str) -> T:
        return await with_timeout(awaitable, self.request_timeout, operation)

    async def _guard(self, awaitable: Awaitable[T], operation: str) -> Result[T, FishLogException]:
        try:
            return Success(await self._call(awaitable, operation))
        except FishLogException as e:
            return Failure(e)
        except Exception as e:
            return Failure(StoreError(f"{operation} failed: {e}"))

    def _activate(self, session: FishingSession) -> None:
        self._stop_timer()
        self._active = session
        self._phase = SessionPhase.ACTIVE
        self._start_timer()

    def _deactivate(self) -> None:
        self._stop_timer()
        self._active = None
        if self._phase is SessionPhase.ACTIVE:
            self._phase = SessionPhase.NO_SESSION

    def _start_timer(self) -> None:
        if self._active is None:
            return
        self._timer = SessionTimer(
            self._active.start_time,
            clock=self.clock,
            interval=self.tick_interval,
            on_tick=self.on_tick,
        )
        self._timer.start()

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
