"""Core infrastructure components for dependency injection and application foundation."""
from __future__ import annotations

from .clock import Clock, FixedClock
from .container import Container
from .exceptions import (
    FishLogException,
    ValidationError,
    NotFoundError,
    SessionNotFoundError,
    ConflictError,
    SessionConflictError,
    UpstreamFailure,
    StoreError,
    ForeignKeyError,
    AggregatorError,
    RequestTimeoutError,
    LoggingError,
    ConfigurationError,
)
from .result import Result, Success, Failure

__all__ = [
    "Clock",
    "FixedClock",
    "Container",
    "FishLogException",
    "ValidationError",
    "NotFoundError",
    "SessionNotFoundError",
    "ConflictError",
    "SessionConflictError",
    "UpstreamFailure",
    "StoreError",
    "ForeignKeyError",
    "AggregatorError",
    "RequestTimeoutError",
    "LoggingError",
    "ConfigurationError",
    "Result",
    "Success",
    "Failure",
]
