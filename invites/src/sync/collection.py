"""Local feed collection: the client-held copy of the feed, keyed by event id."""

from typing import Dict, Iterable, List, Optional

from invites.src.models.event import Event


class LocalFeedCollection:
    """
    Most recently known record per event id.

    Owned and mutated only by the synchronization layer. Readers get
    snapshot() lists; replacing a record never touches earlier snapshots.
    All writes are replace-by-id, so re-applying the same record is a no-op.
    """

    def __init__(self, events: Iterable[Event] = ()):
        self._events: Dict[str, Event] = {}
        self.replace_all(events)

    def replace_all(self, events: Iterable[Event]) -> None:
        """Swap in a full fetch result (later duplicates win)."""
        self._events = {}
        for event in events:
            self._events[event.id] = event

    def upsert(self, event: Event) -> bool:
        """
        Replace in place when the id is known, otherwise prepend.

        Returns:
            True if the event was new
        """
        if event.id in self._events:
            self._events[event.id] = event
            return False
        self._events = {event.id: event, **self._events}
        return True

    def replace(self, event: Event) -> bool:
        """Replace an existing record; unknown ids are ignored."""
        if event.id not in self._events:
            return False
        self._events[event.id] = event
        return True

    def remove(self, event_id: str) -> bool:
        return self._events.pop(event_id, None) is not None

    def get(self, event_id: str) -> Optional[Event]:
        return self._events.get(event_id)

    def snapshot(self) -> List[Event]:
        return list(self._events.values())

    def ids(self) -> List[str]:
        return list(self._events)

    def clear(self) -> None:
        self._events = {}

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def __len__(self) -> int:
        return len(self._events)
