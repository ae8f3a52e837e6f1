"""Tier buckets and their score ranges."""

import math
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class Tier(str, Enum):
    """Ordinal bucket a book is rated into before fine-grained ranking."""

    LIKED = "liked"
    FINE = "fine"
    DISLIKED = "disliked"


class TierBounds(BaseModel):
    """Closed score interval for a tier."""

    min: float = Field(..., description="Lower edge (shared with the tier below)")
    max: float = Field(..., description="Upper edge (shared with the tier above)")

    @property
    def span(self) -> float:
        return self.max - self.min

    def contains(self, score: float) -> bool:
        return self.min <= score <= self.max


SCORE_PRECISION = 3

TIER_BOUNDS: Dict[Tier, TierBounds] = {
    Tier.LIKED: TierBounds(min=6.5, max=10.0),
    Tier.FINE: TierBounds(min=3.5, max=6.5),
    Tier.DISLIKED: TierBounds(min=0.0, max=3.5),
}

# Score given to the first book in an otherwise empty tier.
DEFAULT_SCORES: Dict[Tier, float] = {
    Tier.LIKED: 10.0,
    Tier.FINE: 6.0,
    Tier.DISLIKED: 4.0,
}


def round_score(score: float, precision: int = SCORE_PRECISION) -> float:
    """Round a score to the persisted precision."""
    return round(score, precision)


def tier_for_score(score: float) -> Tier:
    """
    Map a score back to the tier that owns it.

    Shared edges belong to the lower tier (6.5 is fine, 3.5 is disliked).
    """
    if score > TIER_BOUNDS[Tier.FINE].max:
        return Tier.LIKED
    if score > TIER_BOUNDS[Tier.DISLIKED].max:
        return Tier.FINE
    return Tier.DISLIKED


def format_score(score: Optional[float]) -> str:
    """Format a score for display with one decimal place."""
    if score is None or math.isnan(score):
        return "N/A"
    return f"{score:.1f}"


def score_style(score: Optional[float]) -> str:
    """Rich style for a score: green above 7, yellow above 3.5, red below."""
    if score is None:
        return "dim"
    if score > 7:
        return "green"
    if score > 3.5:
        return "yellow"
    return "red"


class TierModel:
    """Lookup helpers over the tier tables."""

    @staticmethod
    def bounds(tier: Tier) -> TierBounds:
        return TIER_BOUNDS[Tier(tier)]

    @staticmethod
    def default_score(tier: Tier) -> float:
        return DEFAULT_SCORES[Tier(tier)]
