"""
Feed module - classification, temporal grouping and itinerary times.
"""

from invites.src.feed.classifier import FeedCriteria, bucket_of, classify_events
from invites.src.feed.grouper import EventGroup, group_events
from invites.src.feed.itinerary import EventDateTime, build_event_datetime, event_datetime
from invites.src.feed.state import FeedFilterState

__all__ = [
    "FeedCriteria",
    "bucket_of",
    "classify_events",
    "EventGroup",
    "group_events",
    "EventDateTime",
    "build_event_datetime",
    "event_datetime",
    "FeedFilterState",
]
