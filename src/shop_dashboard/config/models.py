"""
Configuration models for the shop dashboard engine.

These models define the structure and validation for the dashboard's
config.json file. Banner settings may additionally be overridden at runtime
through the shared key-value store (see ``pending.ledger``).
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class AnalyticsConfig(BaseModel):
    """Configuration for period statistics and leaderboards."""

    timezone: str | None = Field(
        None,
        description="IANA time zone for calendar boundaries (None = system local time)",
    )
    leaderboard_size: int = Field(
        5, gt=0, description="Number of rows kept in the product/customer leaderboards"
    )
    walk_in_label: str = Field(
        "Walk-in Customer",
        min_length=1,
        description="Label used for sales without a customer name",
    )
    other_category_label: str = Field(
        "Other",
        min_length=1,
        description="Category label for line items whose product cannot be resolved",
    )
    recent_sales_limit: int = Field(
        5, gt=0, description="Number of sales shown in the recent sales list"
    )
    activity_feed_limit: int = Field(
        10, gt=0, description="Number of entries kept in the activity feed"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        """Validate that the time zone name is known to the zoneinfo database."""
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {v}")
        return v

    def tzinfo(self):
        """Return the configured tzinfo, or the system local zone."""
        if self.timezone:
            return ZoneInfo(self.timezone)
        return datetime.now().astimezone().tzinfo


class BannerConfig(BaseModel):
    """Configuration for the held-sale banner dismiss/snooze policy."""

    allow_banner_dismissal: bool = Field(
        True, description="Whether users may hide the banner at all"
    )
    banner_dismissal_duration_ms: int = Field(
        DAY_MS,
        ge=0,
        description="How long a dismissal is honoured (0 = until a new held sale appears)",
    )
    snooze_duration_ms: int = Field(
        HOUR_MS, gt=0, description="How long a snooze hides the banner"
    )
    tick_interval_seconds: float = Field(
        60.0, gt=0.0, description="Interval of the expiry re-evaluation tick"
    )


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: str = Field("INFO", description="Root log level")
    quiet_loggers: list[str] = Field(
        default_factory=lambda: ["asyncio"],
        description="Loggers capped at WARNING",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


class DashboardConfig(BaseModel):
    """Main configuration model for the dashboard engine."""

    analytics: AnalyticsConfig = Field(
        default_factory=AnalyticsConfig,
        description="Period statistics and leaderboard configuration",
    )
    banner: BannerConfig = Field(
        default_factory=BannerConfig,
        description="Held-sale banner policy",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    store_path: str | None = Field(
        None,
        description="Path of the JSON file backing the shared key-value store (None = in-memory)",
    )

    @classmethod
    def from_file(cls, file_path: str | Path) -> "DashboardConfig":
        """
        Load configuration from a JSON file.

        Args:
            file_path: Path to the configuration JSON file

        Returns:
            DashboardConfig instance

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the JSON is invalid or doesn't match the schema
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        try:
            with path.open("r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}")

        return cls(**data)

    def to_file(self, file_path: str | Path) -> None:
        """
        Save configuration to a JSON file.

        Args:
            file_path: Path where to save the configuration file
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            json.dump(self.model_dump(), f, indent=2)
