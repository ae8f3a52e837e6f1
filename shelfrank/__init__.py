"""Shelfrank - pairwise-comparison ranking for personal book shelves."""

__version__ = "0.1.0"
