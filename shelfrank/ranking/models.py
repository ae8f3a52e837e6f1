"""Ranking models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .tiers import Tier


class BookMeta(BaseModel):
    """Book metadata before it has a score."""

    id: str = Field(..., description="Shelf entry ID", min_length=1)
    title: str = Field(..., description="Book title")
    authors: List[str] = Field(default_factory=list, description="Author names")
    cover_url: Optional[str] = Field(None, description="Cover image URL")


class RankedBook(BookMeta):
    """Book with its score inside a tier."""

    score: float = Field(..., description="Ranking score")

    def with_score(self, score: float) -> "RankedBook":
        return self.model_copy(update={"score": score})


class ComparisonPhase(str, Enum):
    """Lifecycle of one insertion."""

    IDLE = "idle"
    COMPARING = "comparing"
    COMPLETE = "complete"


class ComparisonChoice(BaseModel):
    """One answer given by the user."""

    opponent_id: str = Field(..., description="Existing book the new book was shown against")
    preferred_new: bool = Field(..., description="Whether the user preferred the new book")


class ComparisonState(BaseModel):
    """Binary search state for one insertion."""

    book_a: BookMeta = Field(..., description="The new book, score pending")
    book_b: Optional[RankedBook] = Field(None, description="Current comparison target")
    left: int = Field(0, description="Lower search bound (inclusive)")
    right: int = Field(0, description="Upper search bound (inclusive)")
    middle: int = Field(0, description="Index of the current comparison target")
    is_complete: bool = Field(False, description="Whether the search has converged")
    final_position: Optional[int] = Field(None, description="Index in the post-insertion tier")
    final_score: Optional[float] = Field(None, description="Score assigned to the new book")
    history: List[ComparisonChoice] = Field(default_factory=list, description="Answers so far")


class RankingState(BaseModel):
    """Tier snapshot plus the insertion in progress."""

    tier: Tier = Field(..., description="Tier being ranked")
    books: List[RankedBook] = Field(
        default_factory=list,
        description="Tier books, score descending; includes the new book once complete",
    )
    comparison: Optional[ComparisonState] = Field(None, description="Insertion in progress")
    updated_tier_books: Optional[List[RankedBook]] = Field(
        None, description="Whole tier when scores other than the new book's changed"
    )
    repaired: bool = Field(False, description="Whether loading had to redistribute duplicate scores")

    @property
    def phase(self) -> ComparisonPhase:
        if self.comparison is None:
            return ComparisonPhase.IDLE
        if self.comparison.is_complete:
            return ComparisonPhase.COMPLETE
        return ComparisonPhase.COMPARING


class ComparisonPair(BaseModel):
    """The two books to show the user."""

    book_a: BookMeta = Field(..., description="The new book")
    book_b: RankedBook = Field(..., description="The existing book")


class RankingResult(BaseModel):
    """Outcome of a completed insertion."""

    tier: Tier = Field(..., description="Tier the book was ranked in")
    books: List[RankedBook] = Field(..., description="Post-insertion tier, score descending")
    inserted_book: RankedBook = Field(..., description="The new book with its score")
    position: int = Field(..., description="0-based index of the new book")
    score: float = Field(..., description="Score of the new book")
    updated_tier_books: Optional[List[RankedBook]] = Field(
        None, description="Every tier row to rewrite when a redistribution happened"
    )
    history: List[ComparisonChoice] = Field(default_factory=list, description="Answers given")

    @property
    def redistributed(self) -> bool:
        return bool(self.updated_tier_books)


class CommitOutcome(BaseModel):
    """What a commit actually wrote."""

    user_id: str = Field(..., description="Owner of the tier")
    tier: Tier = Field(..., description="Tier written")
    book_id: str = Field(..., description="Newly ranked book")
    score: float = Field(..., description="Score stored for the new book")
    batch_applied: bool = Field(False, description="Whether the redistribution batch was written")
    fallback_used: bool = Field(False, description="Whether the batch failed and only the new book was written")
    rows_written: int = Field(0, description="Rows updated")
    committed_at: datetime = Field(..., description="When the commit finished")
