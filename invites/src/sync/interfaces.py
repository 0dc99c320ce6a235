"""
Abstract collaborators of the live synchronization layer.

The feed core does not implement storage, push transport or sessions; it
talks to them through these interfaces:

- EventRepository: asynchronous CRUD + membership calls on invites
- PushTransport: per-event and global change notifications
- ViewerSession: identity of the current viewer, or None

Usage:
    synchronizer = FeedSynchronizer(repository, transport, session)
    await synchronizer.start()
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from invites.src.models.event import Event

# Notification callbacks receive the event id; the record is refetched.
EventIdCallback = Callable[[str], Awaitable[None]]
Unsubscribe = Callable[[], None]


class EventRepository(ABC):
    """Remote source of truth for invites."""

    @abstractmethod
    async def fetch_all(self, viewer_id: str) -> List[Event]:
        """Every event visible to the viewer.

        Raises:
            SyncError: The backend could not be reached
        """

    @abstractmethod
    async def fetch_by_id(self, event_id: str) -> Optional[Event]:
        """One event, None if it no longer exists or is not visible.

        Raises:
            SyncError: The backend could not be reached
        """

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> Optional[Event]:
        """Create an event and return the stored record."""

    @abstractmethod
    async def update(self, event_id: str, updates: Dict[str, Any]) -> Optional[Event]:
        """Apply a partial update and return the stored record."""

    @abstractmethod
    async def join(self, event_id: str) -> bool:
        """Add the current viewer to the attendees."""

    @abstractmethod
    async def leave(self, event_id: str) -> bool:
        """Remove the current viewer from the attendees."""

    @abstractmethod
    async def delete(self, event_id: str) -> bool:
        """Delete an event (host only)."""


class PushTransport(ABC):
    """Push notification channel for event changes."""

    @abstractmethod
    def subscribe_to_event(
        self,
        event_id: str,
        on_change: EventIdCallback,
        on_delete: EventIdCallback,
    ) -> Unsubscribe:
        """Watch one event. Returns a callable that cancels the subscription."""

    @abstractmethod
    def subscribe_to_all(self, on_new_or_changed: EventIdCallback) -> Unsubscribe:
        """Watch the global feed for new events."""


class ViewerSession(ABC):
    """Current viewer identity provider."""

    @abstractmethod
    def current_viewer(self) -> Optional[str]:
        """Viewer id, None when signed out."""
