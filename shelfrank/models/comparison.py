"""Head-to-head comparison log model."""

from pydantic import Field

from .base import DBModel


class ComparisonRecord(DBModel):
    """A single "which did you prefer?" answer."""

    user_id: str = Field(..., description="User who answered")
    winner_book_id: str = Field(..., description="Preferred shelf entry")
    loser_book_id: str = Field(..., description="Other shelf entry")
    is_onboarding: bool = Field(False, description="Whether recorded during onboarding")
