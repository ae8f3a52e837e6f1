"""Database management for shelfrank."""

from .books import BookStats, PostgresRankingPersistence, ShelfStorage, advisory_tier_lock
from .comparisons import ComparisonLog
from .connection import build_conninfo, close_pools, get_connection, get_connection_pool
from .init import init_database, validate_connection

__all__ = [
    "BookStats",
    "ComparisonLog",
    "PostgresRankingPersistence",
    "ShelfStorage",
    "advisory_tier_lock",
    "build_conninfo",
    "close_pools",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "validate_connection",
]
