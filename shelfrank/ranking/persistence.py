"""Storage contract the ranking core writes through."""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Sequence, Tuple

from ..exceptions import PersistenceWriteError
from .models import RankedBook
from .tiers import Tier


class RankingPersistence(ABC):
    """Abstract store of per-book scores, keyed by user and tier."""

    @abstractmethod
    def load_tier(self, user_id: str, tier: Tier) -> List[RankedBook]:
        """
        Load the books a user has ranked in a tier.

        Returns:
            Books with a score, highest score first
        """
        pass

    @abstractmethod
    def upsert_score(self, user_id: str, tier: Tier, book: RankedBook) -> None:
        """
        Write exactly one book's score.

        Raises:
            PersistenceWriteError: If the row was not written
        """
        pass

    @abstractmethod
    def upsert_scores_batch(self, user_id: str, tier: Tier, books: Sequence[RankedBook]) -> None:
        """
        Write every book's score, or none of them.

        Raises:
            PersistenceWriteError: If the batch was not applied
        """
        pass

    @abstractmethod
    def read_scores(self, user_id: str, book_ids: Iterable[str]) -> Dict[str, float]:
        """Read stored scores back; missing books are absent from the result."""
        pass

    @abstractmethod
    def delete_book(self, user_id: str, book_id: str) -> None:
        """Remove a book from the user's shelf."""
        pass


class InMemoryRankingPersistence(RankingPersistence):
    """Dictionary-backed persistence for tests and embedding."""

    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str], Tuple[Tier, RankedBook]] = {}

    def seed(self, user_id: str, tier: Tier, books: Iterable[RankedBook]) -> None:
        for book in books:
            self._rows[(user_id, book.id)] = (Tier(tier), book)

    def load_tier(self, user_id: str, tier: Tier) -> List[RankedBook]:
        books = [
            book
            for (owner, _), (row_tier, book) in self._rows.items()
            if owner == user_id and row_tier == Tier(tier)
        ]
        return sorted(books, key=lambda book: book.score, reverse=True)

    def upsert_score(self, user_id: str, tier: Tier, book: RankedBook) -> None:
        self._rows[(user_id, book.id)] = (Tier(tier), book)

    def upsert_scores_batch(self, user_id: str, tier: Tier, books: Sequence[RankedBook]) -> None:
        for book in books:
            existing = self._rows.get((user_id, book.id))
            if existing is not None and existing[0] != Tier(tier):
                raise PersistenceWriteError(
                    f"Book {book.id} belongs to the {existing[0].value} tier, not {Tier(tier).value}"
                )
        for book in books:
            self._rows[(user_id, book.id)] = (Tier(tier), book)

    def read_scores(self, user_id: str, book_ids: Iterable[str]) -> Dict[str, float]:
        scores = {}
        for book_id in book_ids:
            row = self._rows.get((user_id, book_id))
            if row is not None:
                scores[book_id] = row[1].score
        return scores

    def delete_book(self, user_id: str, book_id: str) -> None:
        self._rows.pop((user_id, book_id), None)
