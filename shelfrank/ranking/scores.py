"""Score assignment for insertion points and tier redistribution."""

import logging
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from ..exceptions import ScorePrecisionError
from .models import RankedBook
from .tiers import SCORE_PRECISION, Tier, TierModel, round_score

EXTENSION_STEP = 0.1

Side = Literal["before", "after"]


class Placement(BaseModel):
    """Where the new book goes and what it scores."""

    position: int = Field(..., description="Index in the post-insertion tier")
    score: float = Field(..., description="Rounded score for the new book")
    baseline: Optional[List[RankedBook]] = Field(
        None, description="Redistributed existing books, when a redistribution was needed"
    )


def redistribute_scores(
    books: Sequence[RankedBook],
    tier: Tier,
    precision: int = SCORE_PRECISION,
) -> List[RankedBook]:
    """
    Space scores evenly over the tier interval, keeping the given order.

    The first book lands on the tier's upper bound and the last stays one
    step above the lower bound: score_i = min + span * (n - i) / n.
    """
    if not books:
        return []

    bounds = TierModel.bounds(tier)
    n = len(books)
    if n == 1:
        return [books[0].with_score(round_score(bounds.max, precision))]

    return [
        book.with_score(round_score(bounds.min + bounds.span * (n - index) / n, precision))
        for index, book in enumerate(books)
    ]


def has_adjacent_duplicates(books: Sequence[RankedBook], precision: int = SCORE_PRECISION) -> bool:
    """Check whether any two neighbours share a score at the given precision."""
    return any(
        round_score(upper.score, precision) <= round_score(lower.score, precision)
        for upper, lower in zip(books, books[1:])
    )


class ScoreResolver:
    """Turn an insertion index into a score."""

    def __init__(
        self,
        step: float = EXTENSION_STEP,
        precision: int = SCORE_PRECISION,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize score resolver.

        Args:
            step: Distance above the top / below the bottom for extensions
            precision: Decimal places scores are rounded to
            logger: Logger for redistribution events
        """
        self.step = step
        self.precision = precision
        self.logger = logger or logging.getLogger(__name__)

    def _round(self, score: float) -> float:
        return round_score(score, self.precision)

    def before(self, books: Sequence[RankedBook], i: int) -> float:
        """Score for a book going directly above books[i]."""
        if i == 0:
            return self._round(books[0].score + self.step)
        return self._round((books[i - 1].score + books[i].score) / 2)

    def after(self, books: Sequence[RankedBook], i: int) -> float:
        """Score for a book going directly below books[i]."""
        if i == len(books) - 1:
            return self._round(books[-1].score - self.step)
        return self._round((books[i].score + books[i + 1].score) / 2)

    def collides(self, books: Sequence[RankedBook], position: int, score: float) -> bool:
        """Check whether score fails to sit strictly between its neighbours."""
        if position > 0 and score >= self._round(books[position - 1].score):
            return True
        if position < len(books) and score <= self._round(books[position].score):
            return True
        return False

    def redistribute(self, books: Sequence[RankedBook], tier: Tier) -> List[RankedBook]:
        return redistribute_scores(books, tier, self.precision)

    def _score_at(self, books: Sequence[RankedBook], ref_index: int, side: Side) -> float:
        if side == "before":
            return self.before(books, ref_index)
        return self.after(books, ref_index)

    def place(
        self,
        books: Sequence[RankedBook],
        tier: Tier,
        ref_index: int,
        side: Side,
        new_book: Optional[RankedBook] = None,
    ) -> Placement:
        """
        Resolve the score for an insertion next to books[ref_index].

        If the score would round onto a neighbour, the tier is redistributed
        and the insertion re-run against the new baseline.

        Args:
            books: Existing tier books, score descending
            tier: Tier the books belong to
            ref_index: Index of the last compared book
            side: Whether the new book goes before or after it
            new_book: New book, used only if it has to join the redistribution

        Returns:
            Placement with the position, the score and any redistributed baseline
        """
        position = ref_index if side == "before" else ref_index + 1
        score = self._score_at(books, ref_index, side)
        if not self.collides(books, position, score):
            return Placement(position=position, score=score)

        self.logger.info(
            "Score %.3f collides with a neighbour at position %d in %s tier; redistributing %d books",
            score,
            position,
            Tier(tier).value,
            len(books),
        )
        baseline = self.redistribute(books, tier)
        score = self._score_at(baseline, ref_index, side)
        if not self.collides(baseline, position, score):
            return Placement(position=position, score=score, baseline=baseline)

        # Baseline spacing is below precision; spread the new book with the rest.
        placeholder = new_book or RankedBook(id="__pending__", title="", score=0.0)
        merged = list(books[:position]) + [placeholder] + list(books[position:])
        spread = self.redistribute(merged, tier)
        if has_adjacent_duplicates(spread, self.precision):
            raise ScorePrecisionError(
                f"{len(spread)} books do not fit in the {Tier(tier).value} tier at "
                f"{self.precision} decimal places"
            )
        return Placement(
            position=position,
            score=spread[position].score,
            baseline=spread[:position] + spread[position + 1:],
        )
