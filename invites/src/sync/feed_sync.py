"""Live synchronization of the local feed collection."""

import asyncio
from typing import Awaitable, Callable, List, Optional

import structlog

from config.exceptions import MutationError, SyncError
from invites.src.models.event import Event
from invites.src.sync.collection import LocalFeedCollection
from invites.src.sync.interfaces import (
    EventRepository,
    PushTransport,
    Unsubscribe,
    ViewerSession,
)

logger = structlog.get_logger(__name__)


class FeedSynchronizer:
    """Keep a client-held feed consistent with the event repository.

    Handles:
    - Initial bulk load (deduplicated while in flight)
    - Global new-event announcements (refetch + upsert, prepend when new)
    - One per-event subscription for the open detail view (refetch + replace,
      delete removes)
    - Join/leave mutations followed by a refetch of the record

    Every notification triggers a refetch of the full record and a
    replace-by-id, so the last refetch to complete wins and replaying a
    notification is idempotent. A failed or empty refetch keeps the
    previous record.
    """

    def __init__(
        self,
        repository: EventRepository,
        transport: PushTransport,
        session: ViewerSession,
        collection: Optional[LocalFeedCollection] = None,
    ):
        """Initialize the synchronizer.

        Args:
            repository: Event repository (fetch/join/leave)
            transport: Push notification transport
            session: Current viewer provider
            collection: Local feed collection (created empty if None)
        """
        self.repository = repository
        self.transport = transport
        self.session = session
        self.collection = collection if collection is not None else LocalFeedCollection()

        self.loading = False
        self.detail_event_id: Optional[str] = None
        self.detail_event: Optional[Event] = None

        self._feed_unsubscribe: Optional[Unsubscribe] = None
        self._detail_unsubscribe: Optional[Unsubscribe] = None
        self._load_task: Optional[asyncio.Task] = None
        self._load_viewer: Optional[str] = None
        # Bumped by stop(); results of work started before are dropped
        self._generation = 0

    # ------------------------------------------------------------------
    # Feed lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the global subscription and run the initial load.

        With no viewer the feed stays empty and nothing is subscribed.
        """
        viewer_id = self.session.current_viewer()
        if not viewer_id:
            self.collection.clear()
            logger.info("feed_start_skipped_no_viewer")
            return

        if self._feed_unsubscribe is None:
            self._feed_unsubscribe = self.transport.subscribe_to_all(self.handle_announcement)
            logger.info("feed_subscribed", viewer_id=viewer_id)

        await self.load()

    async def load(self) -> None:
        """Bulk-fetch the feed for the current viewer.

        A second call for the same viewer while a load is in flight waits
        for that load instead of fetching again. On failure the previous
        collection is kept.
        """
        viewer_id = self.session.current_viewer()
        if not viewer_id:
            self.collection.clear()
            self._load_viewer = None
            return

        if (
            self._load_task is not None
            and not self._load_task.done()
            and self._load_viewer == viewer_id
        ):
            logger.debug("feed_load_deduplicated", viewer_id=viewer_id)
            await self._load_task
            return

        self._load_viewer = viewer_id
        self._load_task = asyncio.create_task(self._load(viewer_id, self._generation))
        await self._load_task

    async def _load(self, viewer_id: str, generation: int) -> None:
        self.loading = True
        try:
            events = await self.repository.fetch_all(viewer_id)
        except SyncError as e:
            logger.warning("feed_load_failed", viewer_id=viewer_id, error=str(e))
            return
        except Exception as e:
            logger.error(
                "feed_load_failed",
                viewer_id=viewer_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return
        finally:
            self.loading = False

        if generation != self._generation:
            logger.debug("feed_load_discarded", viewer_id=viewer_id)
            return

        self.collection.replace_all(events)
        logger.info("feed_loaded", viewer_id=viewer_id, events_count=len(self.collection))

    async def stop(self) -> None:
        """Leave the feed: unsubscribe everything and discard the collection."""
        self._generation += 1

        if self._feed_unsubscribe is not None:
            self._feed_unsubscribe()
            self._feed_unsubscribe = None

        self.close_detail()

        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
            try:
                await self._load_task
            except asyncio.CancelledError:
                pass
        self._load_task = None
        self._load_viewer = None

        self.collection.clear()
        logger.info("feed_stopped")

    def snapshot(self) -> List[Event]:
        """Read-only copy of the current feed for classification."""
        return self.collection.snapshot()

    # ------------------------------------------------------------------
    # Detail view (per-event subscription)
    # ------------------------------------------------------------------

    def open_detail(self, event_id: str, event: Optional[Event] = None) -> None:
        """Show one event and watch it.

        Any previous detail subscription, including one on the same id, is
        cancelled first so at most one live subscription exists.
        """
        self.close_detail()

        self.detail_event_id = event_id
        self.detail_event = event if event is not None else self.collection.get(event_id)
        self._detail_unsubscribe = self.transport.subscribe_to_event(
            event_id,
            self.handle_event_change,
            self.handle_event_delete,
        )
        logger.debug("detail_subscribed", event_id=event_id)

    def close_detail(self) -> None:
        if self._detail_unsubscribe is not None:
            self._detail_unsubscribe()
            self._detail_unsubscribe = None
            logger.debug("detail_unsubscribed", event_id=self.detail_event_id)
        self.detail_event_id = None
        self.detail_event = None

    # ------------------------------------------------------------------
    # Notification handlers
    # ------------------------------------------------------------------

    async def handle_announcement(self, event_id: str) -> None:
        """Global feed: a new or changed event was announced."""
        generation = self._generation
        event = await self._refetch(event_id)
        if event is None or generation != self._generation:
            return

        created = self.collection.upsert(event)
        if self.detail_event_id == event.id:
            self.detail_event = event
        logger.info("feed_event_upserted", event_id=event_id, created=created)

    async def handle_event_change(self, event_id: str) -> None:
        """Per-event subscription: the event was updated."""
        generation = self._generation
        event = await self._refetch(event_id)
        if event is None or generation != self._generation:
            return

        if self.detail_event_id == event.id:
            self.detail_event = event
        replaced = self.collection.replace(event)
        logger.info("feed_event_replaced", event_id=event_id, in_feed=replaced)

    async def handle_event_delete(self, event_id: str) -> None:
        """Per-event subscription: the event was deleted."""
        removed = self.collection.remove(event_id)
        if self.detail_event_id == event_id:
            self.close_detail()
        logger.info("feed_event_removed", event_id=event_id, was_present=removed)

    async def _refetch(self, event_id: str) -> Optional[Event]:
        """Fetch the full record; None (and logged) on failure.

        SyncError is the reachability failure repositories raise and logs a
        warning. Anything else is unexpected and logs an error with traceback.
        """
        try:
            event = await self.repository.fetch_by_id(event_id)
        except SyncError as e:
            logger.warning("event_refetch_failed", event_id=event_id, error=str(e))
            return None
        except Exception as e:
            logger.error(
                "event_refetch_failed",
                event_id=event_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return None

        if event is None:
            logger.info("event_refetch_empty", event_id=event_id)
        return event

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def join(self, event_id: str) -> Optional[Event]:
        """Join an event, then refresh its record.

        Raises:
            MutationError: No viewer, or the repository failed/refused
        """
        return await self._mutate("join", self.repository.join, event_id)

    async def leave(self, event_id: str) -> Optional[Event]:
        """Leave an event, then refresh its record.

        Raises:
            MutationError: No viewer, or the repository failed/refused
        """
        return await self._mutate("leave", self.repository.leave, event_id)

    async def _mutate(
        self,
        action: str,
        call: Callable[[str], Awaitable[bool]],
        event_id: str,
    ) -> Optional[Event]:
        viewer_id = self.session.current_viewer()
        if not viewer_id:
            raise MutationError(f"Cannot {action} event {event_id}: no viewer")

        log = logger.bind(action=action, event_id=event_id, viewer_id=viewer_id)

        try:
            success = await call(event_id)
        except Exception as e:
            log.error("event_mutation_failed", error=str(e))
            raise MutationError(f"{action} failed for event {event_id}: {e}") from e

        if not success:
            log.warning("event_mutation_rejected")
            raise MutationError(f"{action} rejected for event {event_id}")

        generation = self._generation
        event = await self._refetch(event_id)
        if event is not None and generation == self._generation:
            self.collection.replace(event)
            if self.detail_event_id == event_id:
                self.detail_event = event

        log.info("event_mutation_applied")
        return event
