"""Pairwise-comparison ranking of books within tiers."""

from .commit import RankingCommitter, validate_result
from .engine import ComparisonEngine
from .locks import InsertionToken, TierLockRegistry
from .models import (
    BookMeta,
    CommitOutcome,
    ComparisonChoice,
    ComparisonPair,
    ComparisonPhase,
    ComparisonState,
    RankedBook,
    RankingResult,
    RankingState,
)
from .persistence import InMemoryRankingPersistence, RankingPersistence
from .ranker import RankingSession, ShelfRanker, print_tier_summary, shared_locks
from .scores import Placement, ScoreResolver, redistribute_scores
from .store import RankedBookStore
from .tiers import DEFAULT_SCORES, TIER_BOUNDS, Tier, TierBounds, TierModel, round_score, tier_for_score

__all__ = [
    "BookMeta",
    "CommitOutcome",
    "ComparisonChoice",
    "ComparisonEngine",
    "ComparisonPair",
    "ComparisonPhase",
    "ComparisonState",
    "DEFAULT_SCORES",
    "InMemoryRankingPersistence",
    "InsertionToken",
    "Placement",
    "RankedBook",
    "RankedBookStore",
    "RankingCommitter",
    "RankingPersistence",
    "RankingResult",
    "RankingSession",
    "RankingState",
    "ScoreResolver",
    "ShelfRanker",
    "TIER_BOUNDS",
    "Tier",
    "TierBounds",
    "TierLockRegistry",
    "TierModel",
    "print_tier_summary",
    "redistribute_scores",
    "round_score",
    "shared_locks",
    "tier_for_score",
    "validate_result",
]
