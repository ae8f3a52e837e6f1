"""Shelf entry model: one book on one user's shelf."""

from typing import List, Optional

from pydantic import Field

from ..ranking.models import RankedBook
from ..ranking.tiers import Tier
from .base import DBModel


class UserBook(DBModel):
    """Row of the user_books table."""

    user_id: str = Field(..., description="Owner of the shelf entry")
    title: str = Field(..., description="Book title")
    authors: List[str] = Field(default_factory=list, description="Author names")
    cover_url: Optional[str] = Field(None, description="Cover image URL")
    tier: Optional[Tier] = Field(None, description="Rating tier, if rated")
    rank_score: Optional[float] = Field(None, description="Score within the tier, if ranked")

    def to_ranked_book(self) -> RankedBook:
        """Convert a ranked row to the engine's type."""
        if self.id is None or self.rank_score is None:
            raise ValueError(f"Shelf entry {self.id} has no rank_score")
        return RankedBook(
            id=self.id,
            title=self.title,
            authors=self.authors,
            cover_url=self.cover_url,
            score=float(self.rank_score),
        )
