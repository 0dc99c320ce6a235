"""Live synchronization layer for the invites feed."""

from .collection import LocalFeedCollection
from .feed_sync import FeedSynchronizer
from .interfaces import EventRepository, PushTransport, ViewerSession

__all__ = [
    "LocalFeedCollection",
    "FeedSynchronizer",
    "EventRepository",
    "PushTransport",
    "ViewerSession",
]
