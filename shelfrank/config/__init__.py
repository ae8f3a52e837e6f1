"""Configuration management for shelfrank."""

from .loader import Config, load_config, save_config
from .models import ConfigModel, PostgresConfig, RankingConfig

__all__ = [
    "Config",
    "ConfigModel",
    "PostgresConfig",
    "RankingConfig",
    "load_config",
    "save_config",
]
