"""Score-descending sequence of one user's books within one tier."""

import logging
from typing import Iterable, Iterator, List, Sequence

from .models import RankedBook
from .scores import has_adjacent_duplicates, redistribute_scores
from .tiers import SCORE_PRECISION, Tier

logger = logging.getLogger(__name__)


class RankedBookStore(Sequence[RankedBook]):
    """
    In-memory ordered tier the comparison engine searches.

    The store never touches persistence; callers load books into it and
    save what the engine returns.
    """

    def __init__(self, books: Iterable[RankedBook], tier: Tier, repaired: bool = False) -> None:
        self._books: List[RankedBook] = list(books)
        self.tier = Tier(tier)
        self.repaired = repaired

    @classmethod
    def initialize(
        cls,
        existing_books: Iterable[RankedBook],
        tier: Tier,
        precision: int = SCORE_PRECISION,
    ) -> "RankedBookStore":
        """
        Build a store from unordered books.

        Books are sorted by score, highest first. Equal neighbouring scores
        are repaired by redistributing the whole tier.
        """
        books = sorted(existing_books, key=lambda book: book.score, reverse=True)
        if has_adjacent_duplicates(books, precision):
            logger.warning(
                "Duplicate scores in %s tier (%d books); redistributing",
                Tier(tier).value,
                len(books),
            )
            return cls(redistribute_scores(books, tier, precision), tier, repaired=True)
        return cls(books, tier)

    def __getitem__(self, index):
        return self._books[index]

    def __len__(self) -> int:
        return len(self._books)

    def __iter__(self) -> Iterator[RankedBook]:
        return iter(self._books)

    @property
    def books(self) -> List[RankedBook]:
        return list(self._books)

    @property
    def scores(self) -> List[float]:
        return [book.score for book in self._books]

    def index_of(self, book_id: str) -> int:
        for index, book in enumerate(self._books):
            if book.id == book_id:
                return index
        raise KeyError(book_id)

    def inserted(self, position: int, book: RankedBook) -> "RankedBookStore":
        """Return a new store with book placed at position."""
        books = list(self._books)
        books.insert(position, book)
        return RankedBookStore(books, self.tier, repaired=self.repaired)

    def is_strictly_descending(self) -> bool:
        return all(upper.score > lower.score for upper, lower in zip(self._books, self._books[1:]))
