"""Redis pub/sub implementation of the push notification transport.

Channels:
    invites:event:<id>    changes to one event
    invites:events:all    feed-wide announcements

Payload (JSON): {"type": "INSERT" | "UPDATE" | "DELETE", "id": "<event id>"}
"""

import asyncio
import json
from typing import Dict, Optional, Set, Tuple

import redis.asyncio as aioredis
import structlog

from invites.src.sync.interfaces import EventIdCallback, PushTransport, Unsubscribe

logger = structlog.get_logger(__name__)

EVENT_CHANNEL_PREFIX = "invites:event:"
FEED_CHANNEL = "invites:events:all"

CHANGE_TYPES = {"INSERT", "UPDATE", "DELETE"}


def event_channel(event_id: str) -> str:
    return f"{EVENT_CHANNEL_PREFIX}{event_id}"


def parse_notification(data: object) -> Optional[Tuple[str, str]]:
    """Decode a pub/sub payload into (change_type, event_id).

    Returns:
        None when the payload is not a valid notification
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    if not isinstance(data, str):
        return None

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None

    if not isinstance(payload, dict):
        return None
    change_type = str(payload.get("type", "")).upper()
    event_id = payload.get("id")
    if change_type not in CHANGE_TYPES or not event_id:
        return None
    return change_type, str(event_id)


class RedisPushTransport(PushTransport):
    """Push transport over Redis pub/sub.

    At most one subscription per event id: subscribing again to the same id
    cancels the previous listener first. Callbacks run as background tasks
    so a slow refetch never blocks the listener.
    """

    def __init__(self, redis_client: aioredis.Redis):
        """
        Args:
            redis_client: Redis asyncio client
        """
        self.redis = redis_client
        self._event_listeners: Dict[str, asyncio.Task] = {}
        self._feed_listeners: Set[asyncio.Task] = set()
        self._callback_tasks: Set[asyncio.Task] = set()

    def subscribe_to_event(
        self,
        event_id: str,
        on_change: EventIdCallback,
        on_delete: EventIdCallback,
    ) -> Unsubscribe:
        existing = self._event_listeners.pop(event_id, None)
        if existing is not None:
            existing.cancel()
            logger.debug("event_subscription_replaced", event_id=event_id)

        async def dispatch(change_type: str, changed_id: str) -> None:
            if changed_id != event_id:
                return
            if change_type == "DELETE":
                self._spawn(on_delete(changed_id))
            else:
                self._spawn(on_change(changed_id))

        task = asyncio.create_task(self._listen(event_channel(event_id), dispatch))
        self._event_listeners[event_id] = task

        def unsubscribe() -> None:
            task.cancel()
            if self._event_listeners.get(event_id) is task:
                del self._event_listeners[event_id]

        return unsubscribe

    def subscribe_to_all(self, on_new_or_changed: EventIdCallback) -> Unsubscribe:
        async def dispatch(change_type: str, changed_id: str) -> None:
            if change_type == "DELETE":
                return
            self._spawn(on_new_or_changed(changed_id))

        task = asyncio.create_task(self._listen(FEED_CHANNEL, dispatch))
        self._feed_listeners.add(task)

        def unsubscribe() -> None:
            task.cancel()
            self._feed_listeners.discard(task)

        return unsubscribe

    async def publish(self, event_id: str, change_type: str) -> None:
        """Announce a change on the event channel and the feed channel."""
        change_type = change_type.upper()
        if change_type not in CHANGE_TYPES:
            raise ValueError(f"change_type must be one of {CHANGE_TYPES}, got '{change_type}'")

        payload = json.dumps({"type": change_type, "id": event_id})
        await self.redis.publish(event_channel(event_id), payload)
        await self.redis.publish(FEED_CHANNEL, payload)

    async def _listen(self, channel: str, dispatch) -> None:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        logger.info("push_channel_subscribed", channel=channel)

        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                parsed = parse_notification(message.get("data"))
                if parsed is None:
                    logger.warning("push_notification_invalid", channel=channel)
                    continue
                await dispatch(*parsed)
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            logger.info("push_channel_unsubscribed", channel=channel)

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._callback_tasks.add(task)
        task.add_done_callback(self._on_callback_done)

    def _on_callback_done(self, task: asyncio.Task) -> None:
        self._callback_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("push_callback_failed", error=str(error))

    def cleanup(self) -> None:
        """Cancel every listener and pending callback."""
        for task in self._event_listeners.values():
            task.cancel()
        self._event_listeners.clear()
        for task in self._feed_listeners:
            task.cancel()
        self._feed_listeners.clear()
        for task in self._callback_tasks:
            task.cancel()
        self._callback_tasks.clear()
