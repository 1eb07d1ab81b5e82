"""Per-owner session managers.

Each authenticated owner gets their own ``SessionLifecycleManager``; there is
no process-wide "current session".
"""
from __future__ import annotations

from typing import Callable, Dict, Optional

from loguru import logger

from core.clock import Clock
from core.error_handler import RetryPolicy
from sessions.manager import SessionLifecycleManager
from storage.base import SessionStore, StatsAggregator


class SessionRegistry:
    """Creates and owns one session manager per owner id."""

    def __init__(
        self,
        store: SessionStore,
        aggregator: StatsAggregator,
        clock: Optional[Clock] = None,
        settle_policy: Optional[RetryPolicy] = None,
        tick_interval: float = 1.0,
        request_timeout: Optional[float] = None,
        on_tick_factory: Optional[Callable[[str], Callable[[int], None]]] = None,
    ):
        self.store = store
        self.aggregator = aggregator
        self.clock = clock or Clock()
        self.settle_policy = settle_policy or RetryPolicy()
        self.tick_interval = tick_interval
        self.request_timeout = request_timeout
        self.on_tick_factory = on_tick_factory
        self._managers: Dict[str, SessionLifecycleManager] = {}

    def manager_for(self, owner_id: str) -> SessionLifecycleManager:
        manager = self._managers.get(owner_id)
        if manager is None:
            manager = SessionLifecycleManager(
                owner_id,
                self.store,
                self.aggregator,
                clock=self.clock,
                settle_policy=self.settle_policy,
                tick_interval=self.tick_interval,
                request_timeout=self.request_timeout,
                on_tick=self.on_tick_factory(owner_id) if self.on_tick_factory else None,
            )
            self._managers[owner_id] = manager
        return manager

    def __contains__(self, owner_id: str) -> bool:
        return owner_id in self._managers

    def __len__(self) -> int:
        return len(self._managers)

    async def release(self, owner_id: str) -> None:
        """Drop an owner's manager (e.g. on sign-out), stopping its timer."""
        manager = self._managers.pop(owner_id, None)
        if manager is not None:
            await manager.aclose()

    async def aclose(self) -> None:
        for owner_id in list(self._managers):
            await self.release(owner_id)
        logger.debug("[session] registry closed")
