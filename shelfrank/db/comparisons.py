"""Comparison log in database."""

from typing import List, Optional, Sequence

import pendulum
from psycopg import Connection

from ..models import ComparisonRecord
from ..ranking.models import ComparisonChoice


class ComparisonLog:
    """Durable log of head-to-head answers. The ranking engine never reads it."""

    def record_choices(
        self,
        conn: Connection,
        user_id: str,
        new_book_id: str,
        history: Sequence[ComparisonChoice],
        is_onboarding: bool = False,
    ) -> int:
        """
        Write one row per answer given while ranking new_book_id.

        Returns:
            Number of rows written
        """
        if not history:
            return 0

        now = pendulum.now("UTC")
        rows = []
        for choice in history:
            if choice.preferred_new:
                winner, loser = new_book_id, choice.opponent_id
            else:
                winner, loser = choice.opponent_id, new_book_id
            rows.append((user_id, winner, loser, is_onboarding, now))

        with conn.cursor() as cur:
            cur.executemany(
                """
                INSERT INTO comparisons (user_id, winner_book_id, loser_book_id, is_onboarding, created_at)
                VALUES (%s, %s, %s, %s, %s)
                """,
                rows,
            )
        conn.commit()
        return len(rows)

    def get_user_comparisons(
        self,
        conn: Connection,
        user_id: str,
        limit: int = 50,
        is_onboarding: Optional[bool] = None,
    ) -> List[ComparisonRecord]:
        """Get a user's most recent comparisons."""
        query = "SELECT * FROM comparisons WHERE user_id = %s"
        params: list = [user_id]
        if is_onboarding is not None:
            query += " AND is_onboarding = %s"
            params.append(is_onboarding)
        query += " ORDER BY created_at DESC LIMIT %s"
        params.append(limit)

        with conn.cursor() as cur:
            cur.execute(query, params)
            return [ComparisonRecord(**row) for row in cur.fetchall()]
