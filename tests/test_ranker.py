import logging

import pytest

from shelfrank.config import RankingConfig
from shelfrank.exceptions import (
    DegenerateInputError,
    InsertionInProgressError,
    InvalidStateTransitionError,
    PersistenceWriteError,
)
from shelfrank.ranking import InMemoryRankingPersistence, ShelfRanker, Tier, TierLockRegistry, shared_locks

from .conftest import FlakyPersistence, new_book


def _answer_all(session, prefers_new: bool) -> None:
    while session.current_comparison() is not None:
        session.choose(prefers_new)


def test_session_round_trip_reloads_same_order(ranker, persistence) -> None:
    session = ranker.begin("u1", Tier.LIKED, new_book())
    assert ranker.locks.is_held("u1", Tier.LIKED)

    _answer_all(session, True)
    outcome = session.commit()

    assert outcome.score == 10.1
    assert not ranker.locks.is_held("u1", Tier.LIKED)
    reloaded = persistence.load_tier("u1", Tier.LIKED)
    assert [(b.id, b.score) for b in reloaded] == [(b.id, b.score) for b in session.result().books]


def test_second_insertion_into_same_tier_is_refused(ranker) -> None:
    session = ranker.begin("u1", Tier.LIKED, new_book("D"))

    with pytest.raises(InsertionInProgressError):
        ranker.begin("u1", Tier.LIKED, new_book("E"))

    other_tier = ranker.begin("u1", Tier.FINE, new_book("E"))
    other_user = ranker.begin("u2", Tier.LIKED, new_book("E"))
    assert other_tier.is_complete
    assert other_user.is_complete

    session.discard()
    ranker.begin("u1", Tier.LIKED, new_book("E"))


def test_leaving_context_discards_without_writing(ranker, persistence) -> None:
    with ranker.begin("u1", Tier.LIKED, new_book()) as session:
        session.choose(True)

    assert session.closed
    assert not ranker.locks.is_held("u1", Tier.LIKED)
    assert [b.id for b in persistence.load_tier("u1", Tier.LIKED)] == ["A", "B", "C"]
    with pytest.raises(InvalidStateTransitionError):
        session.choose(True)
    with pytest.raises(InvalidStateTransitionError):
        session.commit()


def test_commit_before_complete_raises(ranker) -> None:
    session = ranker.begin("u1", Tier.LIKED, new_book())

    with pytest.raises(InvalidStateTransitionError):
        session.commit()
    assert ranker.locks.is_held("u1", Tier.LIKED)


def test_failed_commit_keeps_token_for_retry(liked_books) -> None:
    persistence = FlakyPersistence()
    persistence.seed("u1", Tier.LIKED, liked_books)
    persistence.fail_single = True
    ranker = ShelfRanker(persistence)
    session = ranker.begin("u1", Tier.LIKED, new_book())
    _answer_all(session, False)

    with pytest.raises(PersistenceWriteError):
        session.commit()
    assert ranker.locks.is_held("u1", Tier.LIKED)

    persistence.fail_single = False
    outcome = session.commit()
    assert outcome.score == 6.9
    assert session.commit() is outcome
    assert persistence.single_calls == 2
    assert not ranker.locks.is_held("u1", Tier.LIKED)


def test_reranking_excludes_the_books_own_row(ranker) -> None:
    session = ranker.begin("u1", Tier.LIKED, new_book("B"))

    assert [b.id for b in session.state.books] == ["A", "C"]
    _answer_all(session, False)
    assert session.commit().score == 6.9


def test_failed_begin_releases_token(ranker) -> None:
    class Broken(Exception):
        pass

    def explode(user_id, tier):
        raise Broken()

    ranker.persistence.load_tier = explode
    with pytest.raises(Broken):
        ranker.begin("u1", Tier.LIKED, new_book())
    assert not ranker.locks.is_held("u1", Tier.LIKED)


def test_remove_book_redistributes_remaining(ranker, persistence) -> None:
    remaining = ranker.remove_book("u1", Tier.LIKED, "B")

    assert [(b.id, b.score) for b in remaining] == [("A", 10.0), ("C", 8.25)]
    assert persistence.read_scores("u1", ["A", "B", "C"]) == {"A": 10.0, "C": 8.25}
    assert not ranker.locks.is_held("u1", Tier.LIKED)


def test_remove_book_without_redistribution(ranker, persistence) -> None:
    remaining = ranker.remove_book("u1", Tier.LIKED, "A", redistribute=False)

    assert [(b.id, b.score) for b in remaining] == [("B", 8.0), ("C", 7.0)]


def test_redistribute_tier(ranker, persistence) -> None:
    books = ranker.redistribute_tier("u1", Tier.LIKED)

    assert [b.score for b in books] == [10.0, 8.833, 7.667]
    assert [b.id for b in persistence.load_tier("u1", Tier.LIKED)] == ["A", "B", "C"]


def test_reorder_tier(ranker, persistence) -> None:
    books = ranker.reorder_tier("u1", Tier.LIKED, ["C", "A", "B"])

    assert [(b.id, b.score) for b in books] == [("C", 10.0), ("A", 8.833), ("B", 7.667)]
    assert [b.id for b in persistence.load_tier("u1", Tier.LIKED)] == ["C", "A", "B"]


@pytest.mark.parametrize("order", [["A", "B"], ["A", "B", "B"], ["A", "B", "C", "X"]])
def test_reorder_tier_requires_exact_membership(ranker, order) -> None:
    with pytest.raises(DegenerateInputError):
        ranker.reorder_tier("u1", Tier.LIKED, order)
    assert not ranker.locks.is_held("u1", Tier.LIKED)


def test_maintenance_refused_while_insertion_in_flight(ranker) -> None:
    ranker.begin("u1", Tier.LIKED, new_book())

    with pytest.raises(InsertionInProgressError):
        ranker.redistribute_tier("u1", Tier.LIKED)


def test_from_config_uses_extension_step(persistence) -> None:
    locks = TierLockRegistry()
    ranker = ShelfRanker.from_config(persistence, RankingConfig(extension_step=0.5), locks=locks)
    session = ranker.begin("u1", Tier.LIKED, new_book())
    _answer_all(session, True)

    assert session.result().score == 10.5
    assert ranker.locks is locks


def test_rankers_from_config_share_exclusivity(persistence) -> None:
    first = ShelfRanker.from_config(persistence, RankingConfig())
    second = ShelfRanker.from_config(InMemoryRankingPersistence(), RankingConfig())
    session = first.begin("u1", Tier.LIKED, new_book())
    try:
        assert first.locks is shared_locks
        with pytest.raises(InsertionInProgressError):
            second.begin("u1", Tier.LIKED, new_book("E"))
    finally:
        session.discard()

    assert not shared_locks.is_held("u1", Tier.LIKED)


def test_from_config_passes_logger_through(persistence) -> None:
    logger = logging.getLogger("shelfrank.test")

    ranker = ShelfRanker.from_config(persistence, RankingConfig(), locks=TierLockRegistry(), logger=logger)

    assert ranker.logger is logger
    assert ranker.engine.logger is logger
    assert ranker.resolver.logger is logger
    assert ranker.committer.logger is logger
