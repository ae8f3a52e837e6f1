"""Database row models for shelfrank."""

from .comparison import ComparisonRecord
from .user_book import UserBook

__all__ = ["ComparisonRecord", "UserBook"]
