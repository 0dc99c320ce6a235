"""Swipe gesture handling for feed cards (join / leave / hide)."""

from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .state_machine import SwipeAction, SwipeCard, SwipeState, exits_view

__all__ = [
    "AsyncioScheduler",
    "Scheduler",
    "TimerHandle",
    "SwipeAction",
    "SwipeCard",
    "SwipeState",
    "exits_view",
]
