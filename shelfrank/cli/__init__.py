"""Command line interface for shelfrank."""
