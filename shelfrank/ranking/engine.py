"""Binary search insertion driven by "which did you prefer?" answers."""

import logging
from typing import Iterable, Optional

from ..exceptions import DegenerateInputError, InvalidStateTransitionError
from .models import (
    BookMeta,
    ComparisonChoice,
    ComparisonPair,
    ComparisonState,
    RankedBook,
    RankingResult,
    RankingState,
)
from .scores import ScoreResolver, Side
from .store import RankedBookStore
from .tiers import Tier, TierModel


def _meta(book: BookMeta) -> BookMeta:
    return BookMeta(
        id=book.id,
        title=book.title,
        authors=list(book.authors),
        cover_url=book.cover_url,
    )


class ComparisonEngine:
    """
    Place a new book into a ranked tier with O(log n) comparisons.

    States move Idle -> Comparing -> Complete. Every call returns a new
    RankingState; nothing here performs I/O, so an abandoned insertion is
    cancelled by simply dropping its state.
    """

    def __init__(
        self,
        resolver: Optional[ScoreResolver] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize comparison engine.

        Args:
            resolver: Score resolver (defaults to 0.1 step, 3 decimal places)
            logger: Logger for state transitions
        """
        self.logger = logger or logging.getLogger(__name__)
        self.resolver = resolver or ScoreResolver(logger=self.logger)

    def start_insertion(
        self,
        existing_tier_books: Iterable[RankedBook],
        new_book: BookMeta,
        tier: Tier,
    ) -> RankingState:
        """
        Begin inserting new_book into a tier.

        Args:
            existing_tier_books: Books already ranked in the tier, any order
            new_book: Book to place
            tier: Tier being ranked

        Returns:
            A Complete state for an empty tier, otherwise a Comparing state
            whose first opponent is the middle book
        """
        tier = Tier(tier)
        meta = _meta(new_book)
        store = RankedBookStore.initialize(existing_tier_books, tier, self.resolver.precision)

        if any(book.id == meta.id for book in store):
            raise DegenerateInputError(f"Book {meta.id} is already ranked in the {tier.value} tier")

        if not store:
            score = round(TierModel.default_score(tier), self.resolver.precision)
            inserted = RankedBook(**meta.model_dump(), score=score)
            self.logger.debug("Empty %s tier; %s gets default score %.3f", tier.value, meta.id, score)
            return RankingState(
                tier=tier,
                books=[inserted],
                comparison=ComparisonState(
                    book_a=meta,
                    is_complete=True,
                    final_position=0,
                    final_score=score,
                ),
            )

        left = 0
        right = len(store) - 1
        middle = (left + right) // 2
        self.logger.debug(
            "Inserting %s into %s tier of %d books; first opponent %s",
            meta.id,
            tier.value,
            len(store),
            store[middle].id,
        )
        return RankingState(
            tier=tier,
            books=store.books,
            repaired=store.repaired,
            comparison=ComparisonState(
                book_a=meta,
                book_b=store[middle],
                left=left,
                right=right,
                middle=middle,
            ),
        )

    def process_comparison(self, state: RankingState, user_prefers_new_book: bool) -> RankingState:
        """
        Apply one answer to the search.

        The tier is score descending, so preferring the new book moves the
        search towards lower indices. Calling this on a Complete state
        returns it unchanged.
        """
        comparison = state.comparison
        if comparison is None:
            raise InvalidStateTransitionError("process_comparison called before start_insertion")
        if comparison.is_complete:
            return state
        if comparison.book_b is None:
            raise InvalidStateTransitionError("Comparing state has no opponent")

        books = state.books
        left, right, middle = comparison.left, comparison.right, comparison.middle
        history = comparison.history + [
            ComparisonChoice(opponent_id=comparison.book_b.id, preferred_new=user_prefers_new_book)
        ]

        if user_prefers_new_book:
            if middle == 0:
                return self._complete(state, history, 0, "before")
            right = middle - 1
            if left > right:
                return self._complete(state, history, middle, "before")
        else:
            if middle == len(books) - 1:
                return self._complete(state, history, len(books) - 1, "after")
            left = middle + 1
            if left > right:
                return self._complete(state, history, middle, "after")

        middle = (left + right) // 2
        return state.model_copy(
            update={
                "comparison": comparison.model_copy(
                    update={
                        "book_b": books[middle],
                        "left": left,
                        "right": right,
                        "middle": middle,
                        "history": history,
                    }
                )
            }
        )

    def _complete(
        self,
        state: RankingState,
        history: list,
        ref_index: int,
        side: Side,
    ) -> RankingState:
        comparison = state.comparison
        pending = RankedBook(**comparison.book_a.model_dump(), score=0.0)
        placement = self.resolver.place(state.books, state.tier, ref_index, side, new_book=pending)

        baseline = placement.baseline if placement.baseline is not None else state.books
        inserted = pending.with_score(placement.score)
        position = placement.position
        books = list(baseline[:position]) + [inserted] + list(baseline[position:])

        updated = None
        if placement.baseline is not None or state.repaired:
            updated = books

        self.logger.debug(
            "Placed %s at %d in %s tier with score %.3f after %d comparisons%s",
            inserted.id,
            position,
            state.tier.value,
            placement.score,
            len(history),
            " (tier redistributed)" if updated else "",
        )
        return state.model_copy(
            update={
                "books": books,
                "updated_tier_books": updated,
                "comparison": comparison.model_copy(
                    update={
                        "book_b": None,
                        "left": position,
                        "right": position,
                        "middle": position,
                        "is_complete": True,
                        "final_position": position,
                        "final_score": placement.score,
                        "history": history,
                    }
                ),
            }
        )

    def get_current_comparison(self, state: RankingState) -> Optional[ComparisonPair]:
        """Books to show next, or None once complete."""
        comparison = state.comparison
        if comparison is None or comparison.is_complete or comparison.book_b is None:
            return None
        return ComparisonPair(book_a=comparison.book_a, book_b=comparison.book_b)

    def get_result(self, state: RankingState) -> Optional[RankingResult]:
        """Final placement, or None while comparisons remain."""
        comparison = state.comparison
        if comparison is None or not comparison.is_complete or comparison.final_position is None:
            return None

        inserted = state.books[comparison.final_position]
        if inserted.id != comparison.book_a.id:
            raise InvalidStateTransitionError(
                f"Book at position {comparison.final_position} is {inserted.id}, "
                f"expected {comparison.book_a.id}"
            )

        return RankingResult(
            tier=state.tier,
            books=list(state.books),
            inserted_book=inserted,
            position=comparison.final_position,
            score=inserted.score,
            updated_tier_books=list(state.updated_tier_books) if state.updated_tier_books else None,
            history=list(comparison.history),
        )
