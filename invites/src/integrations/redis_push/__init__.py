"""Redis pub/sub push transport."""

from .transport import FEED_CHANNEL, RedisPushTransport, event_channel, parse_notification

__all__ = [
    "FEED_CHANNEL",
    "RedisPushTransport",
    "event_channel",
    "parse_notification",
]
