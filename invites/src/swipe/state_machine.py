"""
Swipe gesture state machine for feed cards.

Converts a horizontal drag on a card into JOIN / LEAVE / HIDE or a cancel.

States:
    IDLE -> DRAGGING -> SNAPPING_BACK -> IDLE
    IDLE -> DRAGGING -> EXITING -> COLLAPSING -> IDLE (collapsed)

Rules:
- Hosts cannot swipe their own card.
- Participants can only drag left (leave).
- Right past the threshold: JOIN (not attending). Left past the threshold:
  LEAVE when attending, HIDE otherwise. Anything else snaps back.
- The card exits (slide off, then collapse) only when the action removes it
  from the active view: HIDE always, JOIN under PENDING, LEAVE under
  ATTENDING. Otherwise the mutation runs immediately and the card snaps back.
- For exiting actions the mutation runs once, when the slide completes. The
  collapse phase is visual only.
- A failed mutation reverts the card to IDLE at offset 0, not collapsed.
"""

import asyncio
import inspect
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple, Union

import structlog

from config.exceptions import MutationError
from invites.src.config.feed_config import SwipeSettings, get_feed_config
from invites.src.models.event import Bucket, Relationship
from invites.src.swipe.scheduler import AsyncioScheduler, Scheduler, TimerHandle

logger = structlog.get_logger(__name__)


class SwipeState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    SNAPPING_BACK = "snapping_back"
    EXITING = "exiting"  # Phase 1: slide off screen
    COLLAPSING = "collapsing"  # Phase 2: height collapses


class SwipeAction(str, Enum):
    JOIN = "join"
    LEAVE = "leave"
    HIDE = "hide"


# Returns False (or raises) on failure; may be sync or async
ActionHandler = Callable[
    [SwipeAction, str], Union[Awaitable[Optional[bool]], Optional[bool]]
]


def exits_view(action: SwipeAction, bucket: Bucket) -> bool:
    """True when the action removes the card from the active view."""
    if action == SwipeAction.HIDE:
        return True
    if action == SwipeAction.JOIN:
        return bucket == Bucket.PENDING
    return bucket == Bucket.ATTENDING


class SwipeCard:
    """Swipe handler for one feed card."""

    def __init__(
        self,
        event_id: str,
        relationship: Relationship,
        bucket: Bucket,
        on_action: ActionHandler,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[SwipeSettings] = None,
    ):
        """
        Args:
            event_id: Event shown on the card
            relationship: Viewer relationship to the event
            bucket: Active feed bucket
            on_action: Mutation callback (join/leave/hide)
            scheduler: Animation timer source (default: asyncio loop)
            settings: Thresholds and durations (default: feed config)
        """
        self.event_id = event_id
        self.relationship = relationship
        self.bucket = bucket
        self.on_action = on_action
        self.scheduler = scheduler or AsyncioScheduler()
        self.settings = settings or get_feed_config().swipe

        self.state = SwipeState.IDLE
        self.offset_x = 0.0
        self.collapsed = False
        self.is_tap = True
        self.pending_action: Optional[SwipeAction] = None
        self.last_action: Optional[SwipeAction] = None
        self.last_error: Optional[BaseException] = None
        self.mutation_task: Optional[asyncio.Future] = None

        self._origin: Optional[Tuple[float, float]] = None
        self._timer: Optional[TimerHandle] = None

    @property
    def is_host(self) -> bool:
        return self.relationship == Relationship.HOST

    @property
    def is_attending(self) -> bool:
        return self.relationship == Relationship.PARTICIPANT

    def update_context(
        self,
        relationship: Optional[Relationship] = None,
        bucket: Optional[Bucket] = None,
    ) -> None:
        """Refresh the relationship/bucket after the event or view changed."""
        if relationship is not None:
            self.relationship = relationship
        if bucket is not None:
            self.bucket = bucket

    # ------------------------------------------------------------------
    # Gesture input
    # ------------------------------------------------------------------

    def drag_start(self, x: float, y: float = 0.0) -> bool:
        """Begin a drag. Returns False when the gesture is rejected."""
        if self.is_host:
            logger.debug("swipe_rejected_host", event_id=self.event_id)
            return False
        if self.state in (SwipeState.EXITING, SwipeState.COLLAPSING):
            return False
        if self.collapsed:
            return False

        self._cancel_timer()
        self._origin = (x, y)
        self.state = SwipeState.DRAGGING
        self.is_tap = True
        return True

    def drag_move(self, x: float, y: float = 0.0) -> None:
        if self.state != SwipeState.DRAGGING or self._origin is None:
            return

        delta_x = x - self._origin[0]
        delta_y = y - self._origin[1]

        slop = self.settings.tap_slop_px
        if abs(delta_x) > slop or abs(delta_y) > slop:
            self.is_tap = False

        # Mostly vertical: leave it to scrolling
        if abs(delta_x) <= abs(delta_y):
            return
        # Already attending: no rightward (join) drag
        if self.is_attending and delta_x > 0:
            return

        self.offset_x = delta_x

    def drag_end(self) -> Optional[SwipeAction]:
        """Finish the drag; returns the committed action or None on cancel."""
        if self.state != SwipeState.DRAGGING:
            return None
        self._origin = None

        threshold = self.settings.threshold_px
        if self.offset_x > threshold and not self.is_attending:
            action = SwipeAction.JOIN
        elif self.offset_x < -threshold:
            action = SwipeAction.LEAVE if self.is_attending else SwipeAction.HIDE
        else:
            self._snap_back()
            return None

        self._perform(action)
        return action

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _perform(self, action: SwipeAction) -> None:
        self.last_action = action
        self.last_error = None
        log = logger.bind(event_id=self.event_id, action=action.value, bucket=self.bucket.value)

        if exits_view(action, self.bucket):
            log.info("swipe_exit_started")
            self.pending_action = action
            self.state = SwipeState.EXITING
            offscreen = self.settings.max_offscreen_px
            self.offset_x = offscreen if action == SwipeAction.JOIN else -offscreen
            self._timer = self.scheduler.call_later(self.settings.slide_ms, self._on_slide_complete)
        else:
            log.info("swipe_action_immediate")
            self._dispatch(action)
            self._snap_back()

    def _snap_back(self) -> None:
        self.offset_x = 0.0
        self.state = SwipeState.SNAPPING_BACK
        self._timer = self.scheduler.call_later(self.settings.snap_ms, self._on_snap_complete)

    def _on_snap_complete(self) -> None:
        self._timer = None
        if self.state == SwipeState.SNAPPING_BACK:
            self.state = SwipeState.IDLE

    def _on_slide_complete(self) -> None:
        self._timer = None
        action = self.pending_action
        self.pending_action = None
        if self.state != SwipeState.EXITING or action is None:
            return

        self._dispatch(action)
        if self.state != SwipeState.EXITING:
            # Failed synchronously and already reverted
            return

        if self.settings.collapse_delay_ms:
            self._timer = self.scheduler.call_later(
                self.settings.collapse_delay_ms, self._begin_collapse
            )
        else:
            self._begin_collapse()

    def _begin_collapse(self) -> None:
        self._timer = None
        if self.state != SwipeState.EXITING:
            return
        self.state = SwipeState.COLLAPSING
        self._timer = self.scheduler.call_later(
            self.settings.collapse_ms, self._on_collapse_complete
        )

    def _on_collapse_complete(self) -> None:
        self._timer = None
        if self.state != SwipeState.COLLAPSING:
            return
        self.collapsed = True
        self.state = SwipeState.IDLE
        logger.debug("swipe_exit_completed", event_id=self.event_id)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _dispatch(self, action: SwipeAction) -> None:
        try:
            result = self.on_action(action, self.event_id)
        except Exception as e:
            self._on_mutation_failed(action, e)
            return

        if inspect.isawaitable(result):
            self.mutation_task = asyncio.ensure_future(self._await_mutation(action, result))
        elif result is False:
            self._on_mutation_failed(action, None)

    async def _await_mutation(self, action: SwipeAction, pending: Awaitable) -> None:
        try:
            result = await pending
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._on_mutation_failed(action, e)
            return

        if result is False:
            self._on_mutation_failed(action, None)

    def _on_mutation_failed(self, action: SwipeAction, error: Optional[BaseException]) -> None:
        self.last_error = error or MutationError(f"{action.value} refused for {self.event_id}")
        logger.warning(
            "swipe_mutation_failed",
            event_id=self.event_id,
            action=action.value,
            error=str(self.last_error),
        )

        if self.state in (SwipeState.EXITING, SwipeState.COLLAPSING) or self.collapsed:
            self._cancel_timer()
            self.pending_action = None
            self.offset_x = 0.0
            self.collapsed = False
            self.state = SwipeState.IDLE

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def dispose(self) -> None:
        """Card unmounted: stop animation timers.

        A committed exit whose slide has not finished still sends its
        mutation; the card ends collapsed.
        """
        self._cancel_timer()
        self._origin = None

        action = self.pending_action
        self.pending_action = None
        if self.state == SwipeState.EXITING and action is not None:
            logger.debug("swipe_disposed_mid_exit", event_id=self.event_id, action=action.value)
            self._dispatch(action)
        if self.state in (SwipeState.EXITING, SwipeState.COLLAPSING):
            self.collapsed = True
            self.state = SwipeState.IDLE
