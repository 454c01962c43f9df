from __future__ import annotations


class GeocoinError(ValueError):
    """Base class for domain errors; subclasses ``ValueError`` so content callers keep working."""


class MalformedRecord(GeocoinError):
    """Raised when a delimited record cannot be parsed."""


class MalformedMemento(MalformedRecord):
    """Raised when a coin record does not hold exactly three integer fields."""


class InvalidPersistedValue(GeocoinError):
    """Raised when a persisted key does not match its expected shape."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason


class EmptyStack(GeocoinError):
    """Raised by a transfer whose source stack holds no coins."""

    def __init__(self, source: str) -> None:
        super().__init__(f"{source} has no coins")
        self.source = source


class MovementLocked(GeocoinError):
    """Raised when manual movement is attempted while sensor tracking is active."""


class NoCacheHere(GeocoinError):
    """Raised when an intent targets a cell where no cache spawned."""
