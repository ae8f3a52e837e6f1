"""Configuration models."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("shelfrank", description="Database name")
    user: str = Field("shelfrank_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")


class RankingConfig(BaseModel):
    """Ranking configuration."""

    score_precision: int = Field(
        3,
        description="Decimal places scores are rounded to; rank_score is NUMERIC(6,3)",
        ge=1,
        le=3,
    )
    extension_step: float = Field(
        0.1,
        description="Score distance when placing above the best or below the worst book",
        gt=0.0,
        le=1.0,
    )
    redistribute_on_remove: bool = Field(
        True, description="Respace a tier after a book is removed from it"
    )

    @field_validator("extension_step")
    @classmethod
    def validate_step(cls, v: float, info) -> float:
        """Step must survive rounding to the stored precision."""
        precision = info.data.get("score_precision", 3)
        if round(v, precision) != v:
            raise ValueError(f"extension_step {v} has more than {precision} decimal places")
        return v


class ConfigModel(BaseModel):
    """Main configuration model."""

    log_level: str = Field("INFO", description="Logging level")
    default_user: Optional[str] = Field(None, description="User ID used when --user is omitted")
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level
