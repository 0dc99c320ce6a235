"""
Feed configuration: swipe gesture thresholds/durations, feed horizons and
log output.

Loads and validates config/feed_config.yaml. Every field has a default, so
a missing section falls back to the built-in values.
"""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from config.exceptions import ConfigurationError


class SwipeSettings(BaseModel):
    """Swipe gesture configuration.

    Attributes:
        threshold_px: Horizontal offset that must be exceeded to commit
        max_offscreen_px: Offset the card slides to when exiting
        tap_slop_px: Movement under which the gesture still counts as a tap
        snap_ms: Snap-back animation duration
        slide_ms: Exit phase 1 (horizontal slide) duration
        collapse_delay_ms: Pause between slide and collapse
        collapse_ms: Exit phase 2 (height collapse) duration
    """

    threshold_px: float = Field(default=150, gt=0, description="Commit threshold (px)")
    max_offscreen_px: float = Field(default=500, gt=0, description="Exit slide offset (px)")
    tap_slop_px: float = Field(default=5, ge=0, description="Tap tolerance (px)")
    snap_ms: int = Field(default=500, ge=0, description="Snap-back duration (ms)")
    slide_ms: int = Field(default=400, ge=0, description="Slide phase duration (ms)")
    collapse_delay_ms: int = Field(default=0, ge=0, description="Delay before collapse (ms)")
    collapse_ms: int = Field(default=400, ge=0, description="Collapse phase duration (ms)")

    @model_validator(mode="after")
    def offscreen_beyond_threshold(self) -> "SwipeSettings":
        if self.max_offscreen_px <= self.threshold_px:
            raise ValueError("max_offscreen_px must be greater than threshold_px")
        return self


class FeedSettings(BaseModel):
    """Feed horizon configuration.

    Attributes:
        multi_day_hours: Span at which an event renders as multi-day
        week_span_days: Days after today covered by WEEK / This Week
    """

    multi_day_hours: int = Field(default=24, ge=1, description="Multi-day boundary (hours)")
    week_span_days: int = Field(default=7, ge=1, description="Week horizon (days)")


class LoggingSettings(BaseModel):
    """structlog output used when the host app has not configured logging.

    LOG_LEVEL and LOG_FORMAT override these at startup.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"


class FeedConfig(BaseModel):
    """Root feed configuration."""

    swipe: SwipeSettings = Field(default_factory=SwipeSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "FeedConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to feed_config.yaml

        Returns:
            FeedConfig instance with validated settings

        Raises:
            FileNotFoundError: If the YAML file doesn't exist
            ConfigurationError: If the YAML is invalid or validation fails
        """
        yaml_path = Path(path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Feed config file not found: {path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError(f"Feed config must be a mapping: {path}")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid feed config {path}: {e}") from e


def load_feed_config(config_path: str | None = None) -> FeedConfig:
    """
    Load the feed configuration.

    Args:
        config_path: Path to the YAML (default: $INVITES_FEED_CONFIG, then
            config/feed_config.yaml at the repo root)

    Returns:
        Validated FeedConfig
    """
    if config_path is None:
        config_path = os.getenv("INVITES_FEED_CONFIG")

    if config_path is None:
        repo_root = Path(__file__).parent.parent.parent.parent
        default_path = repo_root / "config" / "feed_config.yaml"
        if not default_path.exists():
            return FeedConfig()
        return FeedConfig.from_yaml(default_path)

    return FeedConfig.from_yaml(config_path)


# Singleton instance (lazy loaded)
_feed_config: FeedConfig | None = None


def get_feed_config() -> FeedConfig:
    """
    Return the singleton feed configuration.

    Returns:
        FeedConfig loaded and validated
    """
    global _feed_config

    if _feed_config is None:
        _feed_config = load_feed_config()

    return _feed_config
