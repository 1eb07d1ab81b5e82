"""Dependency Injection Container for managing application dependencies."""
from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List

from loguru import logger


class Container:
    """Simple DI container for dependency management.

    Factories are resolved lazily and cached, so every service behaves as a
    singleton for the lifetime of the container. ``aclose`` tears down the
    resolved services in reverse creation order.
    """

    def __init__(self):
        self._services: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[["Container"], Any]] = {}
        self._resolved_order: List[str] = []

    def register(self, name: str, service: Any) -> None:
        """Register a ready-made service instance."""
        self._services[name] = service
        self._resolved_order.append(name)

    def register_factory(self, name: str, factory: Callable[["Container"], Any]) -> None:
        """Register a factory receiving the container, called on first ``get``."""
        self._factories[name] = factory

    def get(self, name: str) -> Any:
        """Get a service by name."""
        if name in self._services:
            return self._services[name]

        if name in self._factories:
            instance = self._factories[name](self)
            self._services[name] = instance
            self._resolved_order.append(name)
            return instance

        raise KeyError(f"Service '{name}' not found in container")

    def has(self, name: str) -> bool:
        """Check if a service is registered."""
        return name in self._services or name in self._factories

    async def aclose(self) -> None:
        """Close resolved services exposing ``close``/``aclose``, newest first."""
        for name in reversed(self._resolved_order):
            service = self._services.get(name)
            closer = getattr(service, "aclose", None) or getattr(service, "close", None)
            if closer is None:
                continue
            try:
                outcome = closer()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.warning(f"Closing service {name} failed: {e}")
        self._resolved_order.clear()

    def clear(self) -> None:
        """Clear all registrations (useful for testing)."""
        self._services.clear()
        self._factories.clear()
        self._resolved_order.clear()
