"""
Error taxonomy for the map core.

- Invalid input (malformed bounds, bad zoom/offset) is rejected before any
  store access and leaves previous state untouched.
- Store failures are transient: callers log them and keep showing the
  last-known-good data.
- Cancellation of superseded queries is not an error and has no type here.
"""
from enum import Enum


class ErrorSeverity(Enum):
    """How a failure should be surfaced to the map session."""
    LOW = "low"          # rejected input, nothing changed
    MEDIUM = "medium"    # refresh failed, stale data still displayed


class MapCoreError(Exception):
    """Base class for all errors raised by the map core."""

    severity: ErrorSeverity = ErrorSeverity.MEDIUM


class InvalidBoundsError(MapCoreError, ValueError):
    """Bounds are malformed (e.g. south > north or coordinates out of range)."""

    severity = ErrorSeverity.LOW


class InvalidQueryError(MapCoreError, ValueError):
    """Query arguments other than bounds are out of range."""

    severity = ErrorSeverity.LOW


class StoreUnavailableError(MapCoreError):
    """The restaurant store could not answer a query."""

    def __init__(self, operation: str, cause: Exception = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Store operation '{operation}' failed{detail}")
