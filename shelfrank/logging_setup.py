"""Logging configuration for the shelfrank CLI."""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["console", "configure_logging"]

LOG_LEVEL_ENV = "SHELFRANK_LOG_LEVEL"

console = Console(stderr=True)


def _resolve_level(level_name: Optional[str]) -> int:
    """Environment wins over the configured level."""
    name = os.getenv(LOG_LEVEL_ENV) or level_name or "INFO"
    return getattr(logging, name.upper(), logging.INFO)


def configure_logging(level_name: Optional[str] = None) -> None:
    """Install a single Rich handler on the root logger."""
    root_logger = logging.getLogger()

    managed = None
    for handler in root_logger.handlers:
        if isinstance(handler, RichHandler) and getattr(handler, "_shelfrank_managed", False):
            managed = handler
            break

    if managed is None:
        root_logger.handlers.clear()
        handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._shelfrank_managed = True
        root_logger.addHandler(handler)

    root_logger.setLevel(_resolve_level(level_name))
    logging.captureWarnings(True)
