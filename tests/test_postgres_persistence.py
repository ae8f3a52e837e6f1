from decimal import Decimal
from unittest.mock import MagicMock

import psycopg
import pytest

from shelfrank.db import BookStats, ComparisonLog, PostgresRankingPersistence, advisory_tier_lock
from shelfrank.exceptions import InsertionInProgressError, PersistenceWriteError
from shelfrank.ranking import ComparisonChoice, Tier

from .conftest import make_book


@pytest.fixture
def conn() -> MagicMock:
    return MagicMock()


@pytest.fixture
def cursor(conn) -> MagicMock:
    return conn.cursor.return_value.__enter__.return_value


def test_load_tier_converts_numeric_scores(conn, cursor) -> None:
    cursor.fetchall.return_value = [
        {"id": "a", "title": "A", "authors": ["X"], "cover_url": None, "rank_score": Decimal("9.500")},
        {"id": "b", "title": "B", "authors": None, "cover_url": "http://c", "rank_score": Decimal("7.125")},
    ]

    books = PostgresRankingPersistence(conn).load_tier("u1", Tier.LIKED)

    assert [(b.id, b.score) for b in books] == [("a", 9.5), ("b", 7.125)]
    assert books[1].authors == []
    assert cursor.execute.call_args.args[1] == ("u1", "liked")


def test_upsert_score_commits(conn, cursor) -> None:
    cursor.fetchone.return_value = {"id": "a"}

    PostgresRankingPersistence(conn).upsert_score("u1", Tier.FINE, make_book("a", 5.5))

    params = cursor.execute.call_args.args[1]
    assert params[0] == "a"
    assert params[1] == "u1"
    assert params[-2:] == ("fine", 5.5)
    conn.commit.assert_called_once()


def test_upsert_score_on_another_users_row_fails(conn, cursor) -> None:
    cursor.fetchone.return_value = None

    with pytest.raises(PersistenceWriteError):
        PostgresRankingPersistence(conn).upsert_score("u1", Tier.FINE, make_book("a", 5.5))
    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()


def test_database_error_becomes_write_error(conn, cursor) -> None:
    cursor.execute.side_effect = psycopg.OperationalError("server closed the connection")

    with pytest.raises(PersistenceWriteError):
        PostgresRankingPersistence(conn).upsert_score("u1", Tier.FINE, make_book("a", 5.5))
    conn.rollback.assert_called_once()


def test_batch_updates_every_row(conn, cursor) -> None:
    cursor.fetchall.return_value = [{"id": "a"}, {"id": "b"}]
    books = [make_book("a", 10.0), make_book("b", 8.25)]

    PostgresRankingPersistence(conn).upsert_scores_batch("u1", Tier.LIKED, books)

    rows = cursor.executemany.call_args.args[1]
    assert rows == [(10.0, "a", "u1"), (8.25, "b", "u1")]
    conn.commit.assert_called_once()


def test_batch_with_foreign_rows_writes_nothing(conn, cursor) -> None:
    cursor.fetchall.return_value = [{"id": "a"}]
    books = [make_book("a", 10.0), make_book("b", 8.25)]

    with pytest.raises(PersistenceWriteError):
        PostgresRankingPersistence(conn).upsert_scores_batch("u1", Tier.LIKED, books)
    cursor.executemany.assert_not_called()
    conn.rollback.assert_called_once()


def test_empty_batch_is_a_no_op(conn) -> None:
    PostgresRankingPersistence(conn).upsert_scores_batch("u1", Tier.LIKED, [])

    conn.cursor.assert_not_called()


def test_read_scores_skips_unranked_rows(conn, cursor) -> None:
    cursor.fetchall.return_value = [
        {"id": "a", "rank_score": Decimal("9.125")},
        {"id": "b", "rank_score": None},
    ]

    assert PostgresRankingPersistence(conn).read_scores("u1", ["a", "b", "c"]) == {"a": 9.125}


def test_advisory_lock_refused(conn, cursor) -> None:
    cursor.fetchone.return_value = {"locked": False}

    with pytest.raises(InsertionInProgressError):
        with advisory_tier_lock(conn, "u1", Tier.LIKED):
            pass


def test_advisory_lock_released_after_block(conn, cursor) -> None:
    cursor.fetchone.return_value = {"locked": True}

    with advisory_tier_lock(conn, "u1", Tier.LIKED):
        pass

    statements = [call.args[0] for call in cursor.execute.call_args_list]
    assert "pg_try_advisory_lock" in statements[0]
    assert "pg_advisory_unlock" in statements[-1]


def test_record_choices_maps_winners_and_losers(conn, cursor) -> None:
    history = [
        ComparisonChoice(opponent_id="b", preferred_new=True),
        ComparisonChoice(opponent_id="a", preferred_new=False),
    ]

    written = ComparisonLog().record_choices(conn, "u1", "new", history, is_onboarding=True)

    rows = cursor.executemany.call_args.args[1]
    assert written == 2
    assert [row[:4] for row in rows] == [("u1", "new", "b", True), ("u1", "a", "new", True)]
    conn.commit.assert_called_once()


def test_record_choices_without_history(conn) -> None:
    assert ComparisonLog().record_choices(conn, "u1", "new", []) == 0
    conn.cursor.assert_not_called()


def test_get_user_comparisons_filters_onboarding(conn, cursor) -> None:
    cursor.fetchall.return_value = [
        {
            "id": "c1",
            "user_id": "u1",
            "winner_book_id": "a",
            "loser_book_id": "b",
            "is_onboarding": True,
            "created_at": None,
            "updated_at": None,
        }
    ]

    records = ComparisonLog().get_user_comparisons(conn, "u1", limit=5, is_onboarding=True)

    assert [(r.winner_book_id, r.loser_book_id) for r in records] == [("a", "b")]
    assert cursor.execute.call_args.args[1] == ["u1", True, 5]


def test_community_score(conn, cursor) -> None:
    cursor.fetchone.return_value = {"average_score": Decimal("8.12345"), "rank_count": 3}

    assert BookStats().community_score(conn, "Dune") == {"average_score": 8.123, "rank_count": 3}


def test_community_score_for_unranked_title(conn, cursor) -> None:
    cursor.fetchone.return_value = {"average_score": None, "rank_count": 0}

    assert BookStats().community_score(conn, "Unknown") == {"average_score": None, "rank_count": 0}
