"""Temporal grouping of classified feed events into labelled sections."""

from datetime import datetime, timedelta
from typing import List, Sequence

from pydantic import BaseModel, Field

from invites.src.feed.classifier import DEFAULT_WEEK_SPAN_DAYS
from invites.src.models.event import Bucket, Event

LABEL_PAST = "Past"
LABEL_TODAY = "Today"
LABEL_TOMORROW = "Tomorrow"
LABEL_THIS_WEEK = "This Week"
LABEL_THIS_MONTH = "This Month"


class EventGroup(BaseModel):
    """A labelled run of consecutive feed events."""

    label: str = Field(..., description="Section title")
    events: List[Event] = Field(default_factory=list)


def label_for(
    event: Event,
    bucket: Bucket,
    now: datetime,
    week_span_days: int = DEFAULT_WEEK_SPAN_DAYS,
) -> str:
    """Section label of one event relative to now."""
    start = event.start_time
    if start.tzinfo is not None and now.tzinfo is not None:
        start = start.astimezone(now.tzinfo)

    if bucket == Bucket.PAST or (bucket == Bucket.DISMISSED and event.start_time < now):
        return LABEL_PAST

    today = now.date()
    event_day = start.date()

    if event_day == today:
        return LABEL_TODAY
    if event_day == today + timedelta(days=1):
        return LABEL_TOMORROW
    if event_day < today + timedelta(days=week_span_days):
        return LABEL_THIS_WEEK
    if start.month == now.month and start.year == now.year:
        return LABEL_THIS_MONTH
    return f"{start:%B} {start.year}"


def group_events(
    events: Sequence[Event],
    bucket: Bucket,
    now: datetime,
    week_span_days: int = DEFAULT_WEEK_SPAN_DAYS,
) -> List[EventGroup]:
    """
    Partition an already classified and sorted list into sections.

    Single forward pass: an event joins the previous group only when the
    labels match, so non-adjacent runs with the same label stay separate.
    Input order is preserved within and across groups.

    Args:
        events: Output of classify_events
        bucket: Active bucket
        now: Current instant
        week_span_days: Horizon of "This Week"

    Returns:
        Ordered list of EventGroup
    """
    groups: List[EventGroup] = []

    for event in events:
        label = label_for(event, bucket, now, week_span_days)
        if groups and groups[-1].label == label:
            groups[-1].events.append(event)
        else:
            groups.append(EventGroup(label=label, events=[event]))

    return groups
