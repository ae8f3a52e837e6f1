"""Shelf ranker that ties the engine, persistence and exclusivity together."""

import logging
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..config import RankingConfig
from ..exceptions import DegenerateInputError, InvalidStateTransitionError
from .commit import RankingCommitter
from .engine import ComparisonEngine
from .locks import InsertionToken, TierLockRegistry
from .models import BookMeta, CommitOutcome, ComparisonPair, RankedBook, RankingResult, RankingState
from .persistence import RankingPersistence
from .scores import ScoreResolver
from .tiers import Tier, format_score, score_style

console = Console()

shared_locks = TierLockRegistry()


class RankingSession:
    """One in-flight insertion owned by a single caller."""

    def __init__(
        self,
        ranker: "ShelfRanker",
        user_id: str,
        token: InsertionToken,
        state: RankingState,
    ) -> None:
        self.ranker = ranker
        self.user_id = user_id
        self.token = token
        self.state = state
        self.outcome: Optional[CommitOutcome] = None
        self.closed = False

    @property
    def is_complete(self) -> bool:
        return self.state.comparison is not None and self.state.comparison.is_complete

    def current_comparison(self) -> Optional[ComparisonPair]:
        return self.ranker.engine.get_current_comparison(self.state)

    def choose(self, prefers_new: bool) -> RankingState:
        """Record the user's answer to the current comparison."""
        if self.closed:
            raise InvalidStateTransitionError("Session has been closed")
        self.state = self.ranker.engine.process_comparison(self.state, prefers_new)
        return self.state

    def result(self) -> Optional[RankingResult]:
        return self.ranker.engine.get_result(self.state)

    def commit(self) -> CommitOutcome:
        """
        Persist the result and release the tier.

        On failure the token is kept and the result preserved, so calling
        commit() again retries the write without new comparisons.
        """
        if self.outcome is not None:
            return self.outcome
        if self.closed:
            raise InvalidStateTransitionError("Session has been discarded")

        result = self.result()
        if result is None:
            raise InvalidStateTransitionError("Cannot commit before comparisons are complete")

        self.outcome = self.ranker.committer.commit(self.user_id, result)
        self._close()
        return self.outcome

    def discard(self) -> None:
        """Abandon the insertion. Nothing has been written."""
        if not self.closed:
            self.ranker.logger.debug(
                "Discarding insertion of %s into %s tier",
                self.state.comparison.book_a.id if self.state.comparison else "?",
                self.state.tier.value,
            )
        self._close()

    def _close(self) -> None:
        if not self.closed:
            self.ranker.locks.release(self.token)
            self.closed = True

    def __enter__(self) -> "RankingSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.discard()


class ShelfRanker:
    """Rank books into a user's tiers."""

    def __init__(
        self,
        persistence: RankingPersistence,
        engine: Optional[ComparisonEngine] = None,
        committer: Optional[RankingCommitter] = None,
        locks: Optional[TierLockRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize shelf ranker.

        Args:
            persistence: Score storage
            engine: Comparison engine (default settings if omitted)
            committer: Result writer (built over persistence if omitted)
            locks: Exclusivity registry (a private one if omitted; from_config uses shared_locks)
            logger: Logger for ranking events
        """
        self.logger = logger or logging.getLogger(__name__)
        self.persistence = persistence
        self.engine = engine or ComparisonEngine(logger=self.logger)
        self.committer = committer or RankingCommitter(
            persistence, precision=self.engine.resolver.precision, logger=self.logger
        )
        self.locks = locks or TierLockRegistry()

    @classmethod
    def from_config(
        cls,
        persistence: RankingPersistence,
        config: RankingConfig,
        locks: Optional[TierLockRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "ShelfRanker":
        """Build a ranker from config. Rankers built here share the process-wide lock registry."""
        logger = logger or logging.getLogger(__name__)
        resolver = ScoreResolver(
            step=config.extension_step, precision=config.score_precision, logger=logger
        )
        return cls(
            persistence,
            engine=ComparisonEngine(resolver=resolver, logger=logger),
            locks=locks or shared_locks,
            logger=logger,
        )

    @property
    def resolver(self) -> ScoreResolver:
        return self.engine.resolver

    def begin(self, user_id: str, tier: Tier, book: BookMeta) -> RankingSession:
        """
        Start ranking a book into a tier.

        Takes the (user, tier) token, loads the tier and returns a session
        in its first comparison, or already complete for an empty tier.

        Raises:
            InsertionInProgressError: If the tier is already being ranked
        """
        tier = Tier(tier)
        token = self.locks.acquire(user_id, tier)
        try:
            existing = [b for b in self.persistence.load_tier(user_id, tier) if b.id != book.id]
            state = self.engine.start_insertion(existing, book, tier)
        except Exception:
            self.locks.release(token)
            raise
        return RankingSession(self, user_id, token, state)

    def _write_tier(self, user_id: str, tier: Tier, books: Sequence[RankedBook]) -> None:
        if not books:
            return
        self.persistence.upsert_scores_batch(user_id, tier, books)
        self.committer.verify(user_id, books)

    def redistribute_tier(self, user_id: str, tier: Tier) -> List[RankedBook]:
        """Space a tier's scores evenly and save them."""
        tier = Tier(tier)
        token = self.locks.acquire(user_id, tier)
        try:
            books = self.resolver.redistribute(self.persistence.load_tier(user_id, tier), tier)
            self._write_tier(user_id, tier, books)
        finally:
            self.locks.release(token)
        self.logger.info("Redistributed %d books in %s tier for %s", len(books), tier.value, user_id)
        return books

    def remove_book(
        self,
        user_id: str,
        tier: Tier,
        book_id: str,
        redistribute: bool = True,
    ) -> List[RankedBook]:
        """
        Remove a book from a tier.

        Returns:
            Remaining tier books, redistributed if requested
        """
        tier = Tier(tier)
        token = self.locks.acquire(user_id, tier)
        try:
            self.persistence.delete_book(user_id, book_id)
            books = self.persistence.load_tier(user_id, tier)
            if redistribute:
                books = self.resolver.redistribute(books, tier)
                self._write_tier(user_id, tier, books)
        finally:
            self.locks.release(token)
        self.logger.info("Removed %s from %s tier for %s", book_id, tier.value, user_id)
        return books

    def reorder_tier(self, user_id: str, tier: Tier, ordered_ids: Sequence[str]) -> List[RankedBook]:
        """
        Apply a manual order to a tier.

        Raises:
            DegenerateInputError: If ordered_ids is not exactly the tier's books
        """
        tier = Tier(tier)
        token = self.locks.acquire(user_id, tier)
        try:
            by_id = {book.id: book for book in self.persistence.load_tier(user_id, tier)}
            if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(by_id):
                raise DegenerateInputError(
                    f"Reorder must list each of the {len(by_id)} {tier.value} books exactly once"
                )
            books = self.resolver.redistribute([by_id[book_id] for book_id in ordered_ids], tier)
            self._write_tier(user_id, tier, books)
        finally:
            self.locks.release(token)
        return books


def print_tier_summary(tier: Tier, books: Sequence[RankedBook], highlight: Optional[str] = None) -> None:
    """Print a tier as a table."""
    tier = Tier(tier)
    table = Table(title=f"{tier.value.capitalize()} ({len(books)} books)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Authors", style="magenta")
    table.add_column("Score", justify="right")

    for i, book in enumerate(books, 1):
        style = score_style(book.score)
        title = f"[bold]{book.title}[/bold]" if book.id == highlight else book.title
        table.add_row(
            str(i),
            title,
            ", ".join(book.authors),
            f"[{style}]{format_score(book.score)}[/{style}]",
        )

    console.print(table)
