"""
Pydantic models for invites and their feed classification.

Mirrors the event repository record shape (id, slug, host, text fields,
activity type, coordinates, times, flexible flags, visibility, attendees,
seat cap, comments, reactions, itinerary items). Records are frozen: the
sync layer replaces them by id, nothing mutates them in place.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a timestamp stored without an offset."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Bucket(str, Enum):
    """
    Feed bucket selector.

    ALL is a view over every non-dismissed upcoming event, the other five are
    relationship/time outcomes.
    """

    ALL = "ALL"
    PENDING = "PENDING"
    ATTENDING = "ATTENDING"
    HOSTING = "HOSTING"
    PAST = "PAST"
    DISMISSED = "DISMISSED"


class TimeFilter(str, Enum):
    """Time horizon filter applied on top of the bucket."""

    ALL = "ALL"
    TODAY = "TODAY"
    TOMORROW = "TOMORROW"
    WEEK = "WEEK"


class Relationship(str, Enum):
    """Viewer relationship to an event."""

    HOST = "host"
    PARTICIPANT = "participant"
    NONE = "none"


class EventVisibility(str, Enum):
    ALL_FRIENDS = "ALL_FRIENDS"
    GROUPS = "GROUPS"
    INVITE_ONLY = "INVITE_ONLY"


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    text: str
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def timestamp_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class Reaction(BaseModel):
    """Aggregate reaction for one emoji."""

    model_config = ConfigDict(frozen=True)

    emoji: str
    count: int = Field(default=0, ge=0)
    user_reacted: bool = False
    user_ids: List[str] = Field(default_factory=list)


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class ItineraryItem(BaseModel):
    """
    One sub-interval of an event.

    start_time stays a raw ISO 8601 string: a malformed value is skipped by
    the itinerary deriver instead of rejecting the whole event record.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    event_id: str = Field(..., description="Owning event id (weak reference)")
    title: str
    start_time: str = Field(..., description="Start (ISO 8601)")
    duration_minutes: int = Field(..., ge=0, description="Duration in minutes")
    location: Optional[str] = Field(None, description="Defaults to event location when omitted")
    description: Optional[str] = None


class Event(BaseModel):
    """
    Invite as returned by the event repository.

    When itinerary_items is non-empty, start_time/end_time are a cached
    projection: displayed times come from the itinerary deriver.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque event id")
    slug: str = Field(default="", description="Human-readable slug")
    host_id: str = Field(..., description="Host user id")
    title: str = Field(default="")
    description: str = Field(default="")
    activity_type: str = Field(default="", description="Activity category tag")
    location: str = Field(default="")
    coordinates: Optional[Coordinates] = None
    start_time: datetime = Field(..., description="Canonical start")
    end_time: Optional[datetime] = Field(None, description="Optional end")
    is_flexible_start: bool = False
    is_flexible_end: bool = False
    visibility: EventVisibility = EventVisibility.ALL_FRIENDS
    group_ids: List[str] = Field(default_factory=list)
    max_seats: Optional[int] = Field(None, ge=0, description="Participant cap (None = unlimited)")
    attendees: List[str] = Field(default_factory=list, description="Participant user ids")
    comments: List[Comment] = Field(default_factory=list, description="Ordered by timestamp")
    reactions: Dict[str, Reaction] = Field(default_factory=dict, description="Keyed by emoji")
    itinerary_items: Optional[List[ItineraryItem]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def times_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Repository timestamps without an offset are UTC."""
        return ensure_aware(v)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Event":
        """Build an Event from a repository row.

        Accepts the snake_case row shape (host_id, activity_type, max_seats...)
        with attendees/comments/reactions/itinerary_items already joined in.

        Args:
            record: Repository row

        Returns:
            Event instance
        """
        comments = sorted(
            (Comment.model_validate(c) for c in record.get("comments") or []),
            key=lambda c: c.timestamp,
        )
        return cls(
            id=record["id"],
            slug=record.get("slug") or "",
            host_id=record["host_id"],
            title=record.get("title") or "",
            description=record.get("description") or "",
            activity_type=record.get("activity_type") or "",
            location=record.get("location") or "",
            coordinates=record.get("coordinates"),
            start_time=record["start_time"],
            end_time=record.get("end_time") or None,
            is_flexible_start=bool(record.get("is_flexible_start", False)),
            is_flexible_end=bool(record.get("is_flexible_end", False)),
            visibility=record.get("visibility") or EventVisibility.ALL_FRIENDS,
            group_ids=record.get("group_ids") or [],
            max_seats=record.get("max_seats") or None,
            attendees=record.get("attendees") or [],
            comments=comments,
            reactions=record.get("reactions") or {},
            itinerary_items=record.get("itinerary_items"),
        )

    def is_host(self, viewer_id: Optional[str]) -> bool:
        return viewer_id is not None and self.host_id == viewer_id

    def is_participant(self, viewer_id: Optional[str]) -> bool:
        return viewer_id is not None and viewer_id in self.attendees

    def relationship_to(self, viewer_id: Optional[str]) -> Relationship:
        """Viewer relationship; host wins over participant."""
        if self.is_host(viewer_id):
            return Relationship.HOST
        if self.is_participant(viewer_id):
            return Relationship.PARTICIPANT
        return Relationship.NONE

    @property
    def seats_taken(self) -> int:
        return len(self.attendees)

    @property
    def is_full(self) -> bool:
        """True when a seat cap exists and is reached."""
        return self.max_seats is not None and self.seats_taken >= self.max_seats
