"""
Unit tests - swipe gesture state machine.

Tests:
- Host cards reject drags
- Threshold (strict) and direction rules per relationship
- Exit path: slide -> mutation once -> collapse -> collapsed
- Immediate path: mutation now, snap back
- Cancel and mutation failure revert
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.exceptions import MutationError
from invites.src.models.event import Bucket, Relationship
from invites.src.swipe.state_machine import (
    SwipeAction,
    SwipeCard,
    SwipeState,
    exits_view,
)


@pytest.fixture
def on_action():
    return MagicMock(return_value=True)


@pytest.fixture
def make_card(on_action, scheduler, swipe_settings):
    def _make(relationship=Relationship.NONE, bucket=Bucket.ALL, handler=None):
        return SwipeCard(
            event_id="evt-1",
            relationship=relationship,
            bucket=bucket,
            on_action=handler or on_action,
            scheduler=scheduler,
            settings=swipe_settings,
        )

    return _make


def _swipe(card, dx, dy=0.0):
    card.drag_start(0, 0)
    card.drag_move(dx, dy)
    return card.drag_end()


# ============================================================================
# Drag rules
# ============================================================================


def test_host_cannot_swipe(make_card, on_action):
    card = make_card(relationship=Relationship.HOST)

    assert card.drag_start(0, 0) is False
    card.drag_move(-300, 0)

    assert card.drag_end() is None
    assert card.state == SwipeState.IDLE
    assert card.offset_x == 0
    on_action.assert_not_called()


@pytest.mark.parametrize("dx", [150, -150, 100, -20])
def test_at_or_below_threshold_snaps_back(make_card, on_action, scheduler, dx):
    card = make_card()

    assert _swipe(card, dx) is None
    assert card.state == SwipeState.SNAPPING_BACK
    assert card.offset_x == 0

    scheduler.advance(500)
    assert card.state == SwipeState.IDLE
    on_action.assert_not_called()


def test_vertical_drag_is_ignored(make_card):
    card = make_card()
    card.drag_start(0, 0)

    card.drag_move(40, 200)

    assert card.offset_x == 0
    assert card.is_tap is False


def test_small_movement_is_a_tap(make_card):
    card = make_card()
    card.drag_start(10, 10)

    card.drag_move(14, 12)

    assert card.is_tap is True


def test_attending_cannot_drag_right(make_card, on_action):
    card = make_card(relationship=Relationship.PARTICIPANT)

    assert _swipe(card, 400) is None
    on_action.assert_not_called()


def test_right_swipe_commits_join_when_not_attending(make_card, on_action):
    card = make_card(bucket=Bucket.ALL)

    assert _swipe(card, 151) == SwipeAction.JOIN

    on_action.assert_called_once_with(SwipeAction.JOIN, "evt-1")


def test_left_swipe_hides_when_not_attending(make_card):
    card = make_card()

    assert _swipe(card, -151) == SwipeAction.HIDE
    assert card.state == SwipeState.EXITING


# ============================================================================
# Exit path
# ============================================================================


def test_attending_left_swipe_exits_then_leaves_once(make_card, on_action, scheduler):
    """ATTENDING, dx=-200 -> LEAVE, slide off, mutation once after 400ms."""
    card = make_card(relationship=Relationship.PARTICIPANT, bucket=Bucket.ATTENDING)

    action = _swipe(card, -200)

    assert action == SwipeAction.LEAVE
    assert card.state == SwipeState.EXITING
    assert card.offset_x == -500
    on_action.assert_not_called()

    scheduler.advance(399)
    on_action.assert_not_called()

    scheduler.advance(1)
    on_action.assert_called_once_with(SwipeAction.LEAVE, "evt-1")
    assert card.state == SwipeState.COLLAPSING

    scheduler.advance(400)
    assert card.state == SwipeState.IDLE
    assert card.collapsed is True
    assert on_action.call_count == 1


def test_join_exits_under_pending(make_card, scheduler):
    card = make_card(bucket=Bucket.PENDING)

    _swipe(card, 200)

    assert card.state == SwipeState.EXITING
    assert card.offset_x == 500


def test_collapsed_card_rejects_new_drag(make_card, scheduler):
    card = make_card()
    _swipe(card, -200)
    scheduler.advance(800)

    assert card.collapsed is True
    assert card.drag_start(0, 0) is False


def test_drag_rejected_while_exiting(make_card):
    card = make_card()
    _swipe(card, -200)

    assert card.drag_start(0, 0) is False


# ============================================================================
# Immediate path
# ============================================================================


def test_join_under_all_fires_immediately_and_snaps_back(make_card, on_action, scheduler):
    """ALL bucket, dx=+200 -> JOIN now, no exit animation."""
    card = make_card(bucket=Bucket.ALL)

    assert _swipe(card, 200) == SwipeAction.JOIN

    on_action.assert_called_once_with(SwipeAction.JOIN, "evt-1")
    assert card.state == SwipeState.SNAPPING_BACK
    assert card.offset_x == 0
    scheduler.advance(500)
    assert card.state == SwipeState.IDLE
    assert card.collapsed is False


def test_leave_outside_attending_snaps_back(make_card, on_action):
    card = make_card(relationship=Relationship.PARTICIPANT, bucket=Bucket.ALL)

    assert _swipe(card, -200) == SwipeAction.LEAVE

    on_action.assert_called_once_with(SwipeAction.LEAVE, "evt-1")
    assert card.state == SwipeState.SNAPPING_BACK


def test_drag_during_snap_back_cancels_snap_timer(make_card, scheduler):
    card = make_card()
    _swipe(card, 50)

    assert card.drag_start(0, 0) is True
    scheduler.advance(500)

    assert card.state == SwipeState.DRAGGING


@pytest.mark.parametrize(
    "action,bucket,expected",
    [
        (SwipeAction.HIDE, Bucket.ALL, True),
        (SwipeAction.HIDE, Bucket.HOSTING, True),
        (SwipeAction.JOIN, Bucket.PENDING, True),
        (SwipeAction.JOIN, Bucket.ALL, False),
        (SwipeAction.LEAVE, Bucket.ATTENDING, True),
        (SwipeAction.LEAVE, Bucket.ALL, False),
    ],
)
def test_exits_view(action, bucket, expected):
    assert exits_view(action, bucket) is expected


# ============================================================================
# Mutation failure
# ============================================================================


def test_sync_refusal_reverts_exit(make_card, scheduler):
    handler = MagicMock(return_value=False)
    card = make_card(bucket=Bucket.PENDING, handler=handler)

    _swipe(card, 200)
    scheduler.advance(400)

    assert card.state == SwipeState.IDLE
    assert card.offset_x == 0
    assert card.collapsed is False
    assert isinstance(card.last_error, MutationError)
    assert scheduler.pending == 0


def test_sync_exception_reverts_exit(make_card, scheduler):
    handler = MagicMock(side_effect=MutationError("server down"))
    card = make_card(relationship=Relationship.PARTICIPANT, bucket=Bucket.ATTENDING, handler=handler)

    _swipe(card, -200)
    scheduler.advance(400)

    assert card.state == SwipeState.IDLE
    assert str(card.last_error) == "server down"


@pytest.mark.asyncio
async def test_async_failure_after_collapse_restores_card(make_card, scheduler):
    release = asyncio.Event()

    async def slow_leave(action, event_id):
        await release.wait()
        raise MutationError("leave failed")

    card = make_card(
        relationship=Relationship.PARTICIPANT,
        bucket=Bucket.ATTENDING,
        handler=slow_leave,
    )

    _swipe(card, -200)
    scheduler.advance(800)
    assert card.collapsed is True

    release.set()
    await card.mutation_task

    assert card.collapsed is False
    assert card.state == SwipeState.IDLE
    assert card.offset_x == 0
    assert isinstance(card.last_error, MutationError)


@pytest.mark.asyncio
async def test_async_success_keeps_card_collapsed(make_card, scheduler):
    handler = AsyncMock(return_value=True)
    card = make_card(bucket=Bucket.PENDING, handler=handler)

    _swipe(card, 200)
    scheduler.advance(800)
    await card.mutation_task

    handler.assert_awaited_once_with(SwipeAction.JOIN, "evt-1")
    assert card.collapsed is True
    assert card.last_error is None


def test_dispose_mid_exit_still_sends_action(make_card, on_action, scheduler):
    """Unmounting during the slide sends the committed HIDE exactly once."""
    card = make_card()
    _swipe(card, -200)

    card.dispose()
    scheduler.advance(2000)

    on_action.assert_called_once_with(SwipeAction.HIDE, "evt-1")
    assert card.state == SwipeState.IDLE
    assert card.collapsed is True
    assert scheduler.pending == 0


def test_dispose_during_collapse_does_not_resend(make_card, on_action, scheduler):
    card = make_card()
    _swipe(card, -200)
    scheduler.advance(400)
    assert card.state == SwipeState.COLLAPSING

    card.dispose()
    scheduler.advance(1000)

    assert on_action.call_count == 1
    assert card.collapsed is True


def test_dispose_mid_exit_refusal_reverts(make_card, scheduler):
    handler = MagicMock(return_value=False)
    card = make_card(bucket=Bucket.PENDING, handler=handler)
    _swipe(card, 200)

    card.dispose()

    handler.assert_called_once_with(SwipeAction.JOIN, "evt-1")
    assert card.collapsed is False
    assert card.state == SwipeState.IDLE
    assert isinstance(card.last_error, MutationError)


def test_dispose_when_idle_is_noop(make_card, on_action):
    card = make_card()

    card.dispose()

    on_action.assert_not_called()
    assert card.state == SwipeState.IDLE
    assert card.collapsed is False


def test_update_context_after_join(make_card, on_action):
    """After joining, the viewer is a participant and can no longer drag right."""
    card = make_card(bucket=Bucket.ALL)

    card.update_context(relationship=Relationship.PARTICIPANT, bucket=Bucket.ATTENDING)

    assert _swipe(card, 300) is None
    assert _swipe(card, -300) == SwipeAction.LEAVE
    assert card.state == SwipeState.EXITING
    on_action.assert_not_called()
