"""Configuration loading and validation."""

from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator


class SupabaseConfig(BaseModel):
    """Supabase (PostgREST) assessment source configuration."""

    url: str = Field(pattern=r"^https?://")
    key_env: str = "SUPABASE_SERVICE_KEY"
    table: str = "work_readiness"
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0, le=10)
    page_size: int = Field(default=1000, ge=1, le=10000)


class StreakConfig(BaseModel):
    """Streak calculation configuration."""

    collapse_same_day: bool = Field(
        default=True,
        description="Treat several submissions on one date as a single day for the longest streak",
    )


class TrendConfig(BaseModel):
    """Trend window configuration."""

    weeks_back: int = Field(default=4, ge=1, le=52)


class Config(BaseModel):
    """Root configuration model."""

    timezone: str = "UTC"
    supabase: SupabaseConfig | None = None
    streaks: StreakConfig = Field(default_factory=StreakConfig)
    trends: TrendConfig = Field(default_factory=TrendConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate that timezone is a known IANA zone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            msg = f"Unknown timezone '{v}'"
            raise ValueError(msg) from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone used to turn submission instants into calendar dates."""
        return ZoneInfo(self.timezone)


def load_config(path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValidationError: If the config is invalid.
    """
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open() as f:
        raw_config: dict[str, Any] = yaml.safe_load(f) or {}

    return Config.model_validate(raw_config)
