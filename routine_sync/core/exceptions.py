"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class RoutineSyncError(Exception):
    """Base exception for routine-sync."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(RoutineSyncError):
    """Resource not found."""

    pass


class ValidationError(RoutineSyncError):
    """Validation error."""

    pass


class InvalidIntervalError(ValidationError):
    """Interval with end <= start, out of bounds, or a duplicate id."""

    pass


class InfrastructureError(RoutineSyncError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class StoreUnavailableError(InfrastructureError):
    """Read, write or subscribe failure at the document store boundary."""

    pass


class PartialWindowFailure(RoutineSyncError):
    """One or more dates of a seed pass failed; the others completed."""

    def __init__(self, message: str, results: list, failures: dict[str, Exception]):
        super().__init__(
            message,
            details={date_iso: str(exc) for date_iso, exc in failures.items()},
        )
        self.results = results
        self.failures = failures
