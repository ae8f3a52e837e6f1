"""Exceptions raised by the ranking engine and its persistence boundary."""

from typing import Optional


class ShelfRankError(Exception):
    """Base class for all shelfrank errors."""


class InvalidStateTransitionError(ShelfRankError, RuntimeError):
    """A ranking operation was called on a state that cannot accept it."""


class PersistenceWriteError(ShelfRankError):
    """A score write did not reach the store."""


class IntegrityMismatchError(ShelfRankError):
    """The score read back after a write differs from the computed score."""

    def __init__(self, book_id: str, expected: float, actual: Optional[float]) -> None:
        self.book_id = book_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Score mismatch for book {book_id}: expected {expected}, got {actual}"
        )


class DegenerateInputError(ShelfRankError, ValueError):
    """A position or score is not fit to be persisted."""


class InsertionInProgressError(ShelfRankError):
    """Another insertion already owns this (user, tier)."""


class ScorePrecisionError(ShelfRankError):
    """Scores in a tier cannot be kept distinct at the configured precision."""
