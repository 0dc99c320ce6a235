"""
Pydantic models for the invites feed core.
"""

from invites.src.models.event import (
    Bucket,
    Comment,
    Coordinates,
    Event,
    EventVisibility,
    ItineraryItem,
    Reaction,
    Relationship,
    TimeFilter,
)

__all__ = [
    "Bucket",
    "Comment",
    "Coordinates",
    "Event",
    "EventVisibility",
    "ItineraryItem",
    "Reaction",
    "Relationship",
    "TimeFilter",
]
