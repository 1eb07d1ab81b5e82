"""Custom exception hierarchy for the application."""
from __future__ import annotations


class FishLogException(Exception):
    """Base exception for all fish log errors."""
    pass


class ValidationError(FishLogException):
    """Raised when a value fails domain validation."""
    pass


class NotFoundError(FishLogException):
    """Raised when a requested record does not exist."""
    pass


class SessionNotFoundError(NotFoundError):
    """Raised when a fishing session cannot be found for the owner."""
    pass


class ConflictError(FishLogException):
    """Raised when an operation conflicts with the current record state."""
    pass


class SessionConflictError(ConflictError):
    """Raised when a session is already active, or no longer active."""
    pass


class UpstreamFailure(FishLogException):
    """Raised when an external collaborator is unreachable or rejects a call."""
    pass


class StoreError(UpstreamFailure):
    """Raised when the persistence store rejects a read or write."""
    pass


class ForeignKeyError(StoreError):
    """Raised when a write references a row that does not exist."""
    pass


class AggregatorError(UpstreamFailure):
    """Raised when the statistics aggregator rejects a request."""
    pass


class RequestTimeoutError(UpstreamFailure):
    """Raised when a collaborator call exceeds the request timeout."""
    pass


class LoggingError(FishLogException):
    """Raised when logging operations fail."""
    pass


class ConfigurationError(FishLogException):
    """Raised when configuration is invalid or missing."""
    pass
