"""
Viewer-local feed filter state.

Holds the dismissed-set and the filter selections for one feed session.
Nothing here is persisted; a caller that wants dismissals to survive a
session writes them through on its own.
"""

from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional

import structlog

from invites.src.config.feed_config import get_feed_config
from invites.src.feed.classifier import CATEGORY_ALL, FeedCriteria, classify_events
from invites.src.feed.grouper import EventGroup, group_events
from invites.src.models.event import Bucket, Event, TimeFilter

logger = structlog.get_logger(__name__)


class FeedFilterState:
    """Dismissed-set plus the active bucket and filters."""

    def __init__(
        self,
        dismissed_ids: Iterable[str] = (),
        week_span_days: Optional[int] = None,
    ):
        """
        Args:
            dismissed_ids: Initially dismissed event ids
            week_span_days: WEEK / "This Week" horizon (default: feed config)
        """
        self._dismissed: set[str] = set(dismissed_ids)
        if week_span_days is None:
            week_span_days = get_feed_config().feed.week_span_days
        self.week_span_days = week_span_days
        self.bucket = Bucket.ALL
        self.search = ""
        self.category = CATEGORY_ALL
        self.time_filter = TimeFilter.ALL
        self.open_seats_only = False

    @property
    def dismissed_ids(self) -> FrozenSet[str]:
        return frozenset(self._dismissed)

    def is_dismissed(self, event_id: str) -> bool:
        return event_id in self._dismissed

    def dismiss(self, event_id: str) -> None:
        self._dismissed.add(event_id)
        logger.debug("event_dismissed", event_id=event_id)

    def restore(self, event_id: str) -> None:
        self._dismissed.discard(event_id)
        logger.debug("event_restored", event_id=event_id)

    def clear_filters(self) -> None:
        """Reset bucket and filters to defaults. Dismissals are kept."""
        self.bucket = Bucket.ALL
        self.search = ""
        self.category = CATEGORY_ALL
        self.time_filter = TimeFilter.ALL
        self.open_seats_only = False

    def criteria(self) -> FeedCriteria:
        return FeedCriteria(
            bucket=self.bucket,
            search=self.search,
            category=self.category,
            open_seats_only=self.open_seats_only,
            time_filter=self.time_filter,
        )

    def filter_events(
        self, events: Iterable[Event], viewer_id: Optional[str], now: datetime
    ) -> List[Event]:
        return classify_events(
            events,
            viewer_id,
            now,
            self.criteria(),
            self.dismissed_ids,
            week_span_days=self.week_span_days,
        )

    def build_sections(
        self, events: Iterable[Event], viewer_id: Optional[str], now: datetime
    ) -> List[EventGroup]:
        """Classify a snapshot then group it for display."""
        filtered = self.filter_events(events, viewer_id, now)
        return group_events(filtered, self.bucket, now, self.week_span_days)
