from typing import List

import pytest

from shelfrank.exceptions import PersistenceWriteError
from shelfrank.ranking import (
    BookMeta,
    ComparisonEngine,
    InMemoryRankingPersistence,
    RankedBook,
    ShelfRanker,
    Tier,
)


def make_book(book_id: str, score: float, title: str = "") -> RankedBook:
    return RankedBook(id=book_id, title=title or f"Book {book_id}", authors=["Anon"], score=score)


def new_book(book_id: str = "D") -> BookMeta:
    return BookMeta(id=book_id, title=f"Book {book_id}", authors=["New Author"])


@pytest.fixture
def engine() -> ComparisonEngine:
    return ComparisonEngine()


@pytest.fixture
def liked_books() -> List[RankedBook]:
    return [make_book("A", 10.0), make_book("B", 8.0), make_book("C", 7.0)]


@pytest.fixture
def persistence(liked_books) -> InMemoryRankingPersistence:
    store = InMemoryRankingPersistence()
    store.seed("u1", Tier.LIKED, liked_books)
    return store


@pytest.fixture
def ranker(persistence) -> ShelfRanker:
    return ShelfRanker(persistence)


class FlakyPersistence(InMemoryRankingPersistence):
    """In-memory persistence with switchable failures."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_batch = False
        self.fail_single = False
        self.corrupt = False
        self.batch_calls = 0
        self.single_calls = 0

    def upsert_scores_batch(self, user_id, tier, books) -> None:
        self.batch_calls += 1
        if self.fail_batch:
            raise PersistenceWriteError("batch rejected")
        super().upsert_scores_batch(user_id, tier, books)

    def upsert_score(self, user_id, tier, book) -> None:
        self.single_calls += 1
        if self.fail_single:
            raise PersistenceWriteError("connection lost")
        if self.corrupt:
            book = book.with_score(book.score + 0.5)
        super().upsert_score(user_id, tier, book)
