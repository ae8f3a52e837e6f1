"""Shelf storage and the Postgres ranking persistence adapter."""

from contextlib import contextmanager
from typing import Dict, Generator, Iterable, List, Optional, Sequence

import psycopg
from psycopg import Connection

from ..exceptions import InsertionInProgressError, PersistenceWriteError
from ..models import UserBook
from ..ranking.models import RankedBook
from ..ranking.persistence import RankingPersistence
from ..ranking.tiers import Tier, round_score


class PostgresRankingPersistence(RankingPersistence):
    """RankingPersistence over the user_books table."""

    def __init__(self, conn: Connection) -> None:
        """Initialize with an open connection using dict rows."""
        self.conn = conn

    def load_tier(self, user_id: str, tier: Tier) -> List[RankedBook]:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, title, authors, cover_url, rank_score
                FROM user_books
                WHERE user_id = %s AND tier = %s AND rank_score IS NOT NULL
                ORDER BY rank_score DESC
                """,
                (user_id, Tier(tier).value),
            )
            rows = cur.fetchall()

        return [
            RankedBook(
                id=row["id"],
                title=row["title"],
                authors=list(row["authors"] or []),
                cover_url=row["cover_url"],
                score=float(row["rank_score"]),
            )
            for row in rows
        ]

    def upsert_score(self, user_id: str, tier: Tier, book: RankedBook) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO user_books (id, user_id, title, authors, cover_url, tier, rank_score)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO UPDATE SET
                        tier = EXCLUDED.tier,
                        rank_score = EXCLUDED.rank_score
                    WHERE user_books.user_id = EXCLUDED.user_id
                    RETURNING id
                    """,
                    (
                        book.id,
                        user_id,
                        book.title,
                        book.authors,
                        book.cover_url,
                        Tier(tier).value,
                        book.score,
                    ),
                )
                if cur.fetchone() is None:
                    raise PersistenceWriteError(f"Book {book.id} belongs to another user")
            self.conn.commit()
        except psycopg.Error as e:
            self.conn.rollback()
            raise PersistenceWriteError(f"Failed to save score for book {book.id}: {e}") from e
        except PersistenceWriteError:
            self.conn.rollback()
            raise

    def upsert_scores_batch(self, user_id: str, tier: Tier, books: Sequence[RankedBook]) -> None:
        if not books:
            return

        ids = [book.id for book in books]
        try:
            with self.conn.cursor() as cur:
                # Verify all books belong to this user and tier
                cur.execute(
                    """
                    SELECT id FROM user_books
                    WHERE user_id = %s AND tier = %s AND id = ANY(%s)
                    """,
                    (user_id, Tier(tier).value, ids),
                )
                found = {row["id"] for row in cur.fetchall()}
                missing = set(ids) - found
                if missing:
                    raise PersistenceWriteError(
                        f"{len(missing)} books do not belong to user {user_id} in the {Tier(tier).value} tier"
                    )

                cur.executemany(
                    """
                    UPDATE user_books
                    SET rank_score = %s
                    WHERE id = %s AND user_id = %s
                    """,
                    [(book.score, book.id, user_id) for book in books],
                )
            self.conn.commit()
        except psycopg.Error as e:
            self.conn.rollback()
            raise PersistenceWriteError(f"Batch update failed: {e}") from e
        except PersistenceWriteError:
            self.conn.rollback()
            raise

    def read_scores(self, user_id: str, book_ids: Iterable[str]) -> Dict[str, float]:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, rank_score FROM user_books
                WHERE user_id = %s AND id = ANY(%s)
                """,
                (user_id, list(book_ids)),
            )
            rows = cur.fetchall()
        return {row["id"]: float(row["rank_score"]) for row in rows if row["rank_score"] is not None}

    def delete_book(self, user_id: str, book_id: str) -> None:
        with self.conn.cursor() as cur:
            cur.execute(
                "DELETE FROM user_books WHERE id = %s AND user_id = %s",
                (book_id, user_id),
            )
        self.conn.commit()


@contextmanager
def advisory_tier_lock(conn: Connection, user_id: str, tier: Tier) -> Generator[None, None, None]:
    """
    Hold a session-level advisory lock on (user, tier) across processes.

    Raises:
        InsertionInProgressError: If another session holds the lock
    """
    key = f"shelfrank:{user_id}:{Tier(tier).value}"
    with conn.cursor() as cur:
        cur.execute("SELECT pg_try_advisory_lock(hashtext(%s)) AS locked", (key,))
        locked = cur.fetchone()["locked"]
    conn.commit()
    if not locked:
        raise InsertionInProgressError(
            f"Another session is ranking the {Tier(tier).value} tier for user {user_id}"
        )
    try:
        yield
    finally:
        with conn.cursor() as cur:
            cur.execute("SELECT pg_advisory_unlock(hashtext(%s))", (key,))
        conn.commit()


class ShelfStorage:
    """Read and add shelf entries."""

    def add_book(
        self,
        conn: Connection,
        user_id: str,
        title: str,
        tier: Tier,
        authors: Optional[List[str]] = None,
        cover_url: Optional[str] = None,
    ) -> UserBook:
        """Add a rated but not yet ranked book to the shelf."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO user_books (user_id, title, authors, cover_url, tier)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING *
                """,
                (user_id, title, authors or [], cover_url, Tier(tier).value),
            )
            row = cur.fetchone()
        conn.commit()
        return UserBook(**row)

    def set_tier(self, conn: Connection, user_id: str, book_id: str, tier: Tier) -> None:
        """Move a book to another tier. Its old score no longer applies."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE user_books
                SET tier = %s, rank_score = NULL
                WHERE id = %s AND user_id = %s
                """,
                (Tier(tier).value, book_id, user_id),
            )
        conn.commit()

    def get_book(self, conn: Connection, user_id: str, book_id: str) -> Optional[UserBook]:
        """Get a shelf entry by ID."""
        with conn.cursor() as cur:
            cur.execute(
                "SELECT * FROM user_books WHERE id = %s AND user_id = %s",
                (book_id, user_id),
            )
            row = cur.fetchone()
        return UserBook(**row) if row else None

    def get_shelf(
        self,
        conn: Connection,
        user_id: str,
        tier: Optional[Tier] = None,
    ) -> List[UserBook]:
        """Get a user's books, ranked ones first by score within each tier."""
        query = "SELECT * FROM user_books WHERE user_id = %s"
        params: list = [user_id]
        if tier is not None:
            query += " AND tier = %s"
            params.append(Tier(tier).value)
        query += " ORDER BY tier, rank_score DESC NULLS LAST, created_at"

        with conn.cursor() as cur:
            cur.execute(query, params)
            return [UserBook(**row) for row in cur.fetchall()]


class BookStats:
    """Cross-user aggregates over ranked scores."""

    def community_score(self, conn: Connection, title: str) -> Dict[str, Optional[float]]:
        """
        Average score a title received across users.

        Returns:
            Dict with average_score (None when nobody ranked it) and rank_count
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT AVG(rank_score) AS average_score, COUNT(DISTINCT user_id) AS rank_count
                FROM user_books
                WHERE lower(title) = lower(%s) AND rank_score IS NOT NULL
                """,
                (title,),
            )
            row = cur.fetchone()

        average = row["average_score"]
        return {
            "average_score": round_score(float(average)) if average is not None else None,
            "rank_count": int(row["rank_count"] or 0),
        }
