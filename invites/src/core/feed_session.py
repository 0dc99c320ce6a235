"""
Feed session - one visit to the feed view.

Wires the live synchronization layer, the viewer-local filter state and the
swipe cards together:

    repository/transport -> FeedSynchronizer -> snapshot
    snapshot + viewer + now -> FeedFilterState -> sections
    SwipeCard commit -> join / leave (repository) or hide (dismissed-set)

Created on feed entry, closed on navigation away.
"""

from datetime import datetime, tzinfo
from typing import Callable, List, Optional

import structlog

from config.logging import ensure_logging
from invites.src.config.feed_config import FeedSettings, SwipeSettings, get_feed_config
from invites.src.feed.grouper import EventGroup
from invites.src.feed.itinerary import EventDateTime, event_datetime
from invites.src.feed.state import FeedFilterState
from invites.src.models.event import Event
from invites.src.swipe.scheduler import Scheduler
from invites.src.swipe.state_machine import SwipeAction, SwipeCard
from invites.src.sync.feed_sync import FeedSynchronizer

logger = structlog.get_logger(__name__)


def local_now() -> datetime:
    """Current instant as an aware datetime in the local timezone."""
    return datetime.now().astimezone()


class FeedSession:
    """Feed view model for the current viewer."""

    def __init__(
        self,
        synchronizer: FeedSynchronizer,
        filter_state: Optional[FeedFilterState] = None,
        scheduler: Optional[Scheduler] = None,
        swipe_settings: Optional[SwipeSettings] = None,
        feed_settings: Optional[FeedSettings] = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.synchronizer = synchronizer
        self.feed_settings = feed_settings or get_feed_config().feed
        self.filters = filter_state or FeedFilterState(
            week_span_days=self.feed_settings.week_span_days
        )
        self.scheduler = scheduler
        self.swipe_settings = swipe_settings
        self.clock = clock

    @property
    def viewer_id(self) -> Optional[str]:
        return self.synchronizer.session.current_viewer()

    async def open(self) -> None:
        log_settings = get_feed_config().logging
        ensure_logging(log_settings.level, log_settings.format)
        await self.synchronizer.start()

    async def close(self) -> None:
        await self.synchronizer.stop()

    def visible_events(self, now: Optional[datetime] = None) -> List[Event]:
        return self.filters.filter_events(
            self.synchronizer.snapshot(), self.viewer_id, now or self.clock()
        )

    def sections(self, now: Optional[datetime] = None) -> List[EventGroup]:
        """Grouped sections for the current snapshot, bucket and filters."""
        return self.filters.build_sections(
            self.synchronizer.snapshot(), self.viewer_id, now or self.clock()
        )

    def date_time_for(self, event: Event, tz: Optional[tzinfo] = None) -> EventDateTime:
        """Date/time block of a card, rendered in tz (default: as stored)."""
        return event_datetime(event, tz, self.feed_settings.multi_day_hours)

    async def handle_swipe_action(self, action: SwipeAction, event_id: str) -> bool:
        """Apply a committed swipe. MutationError propagates to the card."""
        if action == SwipeAction.HIDE:
            self.filters.dismiss(event_id)
        elif action == SwipeAction.JOIN:
            await self.synchronizer.join(event_id)
        else:
            await self.synchronizer.leave(event_id)
        logger.info("swipe_action_applied", event_id=event_id, action=action.value)
        return True

    def card_for(self, event: Event) -> SwipeCard:
        """Swipe handler for one rendered card in the active bucket."""
        return SwipeCard(
            event_id=event.id,
            relationship=event.relationship_to(self.viewer_id),
            bucket=self.filters.bucket,
            on_action=self.handle_swipe_action,
            scheduler=self.scheduler,
            settings=self.swipe_settings,
        )
