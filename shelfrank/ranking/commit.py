"""Persist a completed ranking with batch-then-single fallback and read-back."""

import logging
import math
from typing import Optional, Sequence

import pendulum

from ..exceptions import DegenerateInputError, IntegrityMismatchError, PersistenceWriteError
from .models import CommitOutcome, RankedBook, RankingResult
from .persistence import RankingPersistence
from .tiers import SCORE_PRECISION, round_score


def validate_result(result: RankingResult) -> None:
    """Reject positions and scores that must never reach storage."""
    position = result.position
    if isinstance(position, float) and math.isnan(position):
        raise DegenerateInputError("Position is NaN")
    if position < 0 or position >= len(result.books):
        raise DegenerateInputError(f"Invalid position: {position}")

    books = [result.inserted_book] + list(result.updated_tier_books or [])
    for book in books:
        if not book.id or not book.id.strip():
            raise DegenerateInputError("Book ID is empty")
        if not math.isfinite(book.score):
            raise DegenerateInputError(f"Invalid score for book {book.id}: {book.score}")
    if not math.isfinite(result.score):
        raise DegenerateInputError(f"Invalid score: {result.score}")


class RankingCommitter:
    """Write a RankingResult through a RankingPersistence."""

    def __init__(
        self,
        persistence: RankingPersistence,
        precision: int = SCORE_PRECISION,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.persistence = persistence
        self.precision = precision
        self.logger = logger or logging.getLogger(__name__)

    def verify(self, user_id: str, books: Sequence[RankedBook]) -> None:
        stored = self.persistence.read_scores(user_id, [book.id for book in books])
        for book in books:
            actual = stored.get(book.id)
            if actual is None or round_score(actual, self.precision) != round_score(book.score, self.precision):
                raise IntegrityMismatchError(book.id, book.score, actual)

    def commit(self, user_id: str, result: RankingResult) -> CommitOutcome:
        """
        Persist the new book's score and any redistribution.

        A failed batch falls back to writing only the new book. Single-row
        failures and read-back mismatches propagate; the result itself is
        left untouched so the caller can retry.

        Raises:
            DegenerateInputError: If the result holds an unusable position or score
            PersistenceWriteError: If the new book's score could not be written
            IntegrityMismatchError: If a stored score differs from the computed one
        """
        validate_result(result)
        tier = result.tier
        inserted = result.inserted_book

        if result.updated_tier_books:
            batch = result.updated_tier_books
            try:
                self.persistence.upsert_scores_batch(user_id, tier, batch)
            except PersistenceWriteError as e:
                self.logger.warning(
                    "Batch update of %d %s books failed; writing %s alone: %s",
                    len(batch),
                    tier.value,
                    inserted.id,
                    e,
                )
            else:
                self.verify(user_id, batch)
                self.logger.info(
                    "Saved %s at %.3f with %d redistributed %s books",
                    inserted.id,
                    inserted.score,
                    len(batch),
                    tier.value,
                )
                return CommitOutcome(
                    user_id=user_id,
                    tier=tier,
                    book_id=inserted.id,
                    score=inserted.score,
                    batch_applied=True,
                    rows_written=len(batch),
                    committed_at=pendulum.now("UTC"),
                )

        self.persistence.upsert_score(user_id, tier, inserted)
        self.verify(user_id, [inserted])
        self.logger.info("Saved %s at %.3f in %s tier", inserted.id, inserted.score, tier.value)
        return CommitOutcome(
            user_id=user_id,
            tier=tier,
            book_id=inserted.id,
            score=inserted.score,
            fallback_used=result.redistributed,
            rows_written=1,
            committed_at=pendulum.now("UTC"),
        )
