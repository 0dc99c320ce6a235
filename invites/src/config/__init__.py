"""Feed configuration module."""

from invites.src.config.feed_config import (
    FeedConfig,
    FeedSettings,
    SwipeSettings,
    get_feed_config,
    load_feed_config,
)

__all__ = [
    "FeedConfig",
    "FeedSettings",
    "SwipeSettings",
    "get_feed_config",
    "load_feed_config",
]
