"""
Feed status classification.

Given a viewer and "now", decides which events are visible under the active
bucket and filters. The filters form an ordered predicate pipeline; each
stage short-circuits and can be exercised on its own.

Pipeline order:
1. dismissal
2. time horizon vs bucket (upcoming only, or past + involved for PAST)
3. relationship bucket (HOSTING / ATTENDING / PENDING)
4. free-text search (title, description, location)
5. category
6. open seats (ALL / PENDING only)
7. time filter (TODAY / TOMORROW / WEEK, skipped for PAST)

Everything here is a pure function over a snapshot.
"""

from datetime import date, datetime, timedelta
from typing import AbstractSet, Callable, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from invites.src.models.event import Bucket, Event, TimeFilter

CATEGORY_ALL = "ALL"
DEFAULT_WEEK_SPAN_DAYS = 7


class FeedCriteria(BaseModel):
    """Active bucket and orthogonal filters."""

    model_config = ConfigDict(frozen=True)

    bucket: Bucket = Field(default=Bucket.ALL, description="Active bucket selector")
    search: str = Field(default="", description="Free-text search term")
    category: str = Field(default=CATEGORY_ALL, description="Activity tag or ALL")
    open_seats_only: bool = Field(default=False, description="Hide full events (ALL/PENDING)")
    time_filter: TimeFilter = Field(default=TimeFilter.ALL, description="Time horizon filter")


class FilterContext(BaseModel):
    """Inputs shared by every pipeline stage for one classification run."""

    model_config = ConfigDict(frozen=True)

    viewer_id: str
    now: datetime
    criteria: FeedCriteria
    dismissed_ids: FrozenSet[str] = frozenset()
    week_span_days: int = DEFAULT_WEEK_SPAN_DAYS

    @property
    def today(self) -> date:
        return self.now.date()


EventPredicate = Callable[[Event, FilterContext], bool]


def local_date(value: datetime, now: datetime) -> date:
    """Calendar date of value in the timezone of now (time of day stripped)."""
    if value.tzinfo is not None and now.tzinfo is not None:
        value = value.astimezone(now.tzinfo)
    return value.date()


def is_past(event: Event, now: datetime) -> bool:
    return event.start_time < now


# ============================================================================
# Pipeline stages
# ============================================================================


def passes_dismissal(event: Event, ctx: FilterContext) -> bool:
    """DISMISSED keeps only dismissed events; every other bucket drops them."""
    dismissed = event.id in ctx.dismissed_ids
    if ctx.criteria.bucket == Bucket.DISMISSED:
        return dismissed
    return not dismissed


def passes_time_horizon(event: Event, ctx: FilterContext) -> bool:
    """Default views are upcoming-only; PAST needs a past event the viewer took part in."""
    bucket = ctx.criteria.bucket
    past = is_past(event, ctx.now)

    if bucket == Bucket.PAST:
        if not past:
            return False
        return event.is_host(ctx.viewer_id) or event.is_participant(ctx.viewer_id)
    if bucket == Bucket.DISMISSED:
        return True
    return not past


def passes_relationship(event: Event, ctx: FilterContext) -> bool:
    """HOSTING: host. ATTENDING: participant and not host. PENDING: neither."""
    bucket = ctx.criteria.bucket
    host = event.is_host(ctx.viewer_id)
    participant = event.is_participant(ctx.viewer_id)

    if bucket == Bucket.HOSTING:
        return host
    if bucket == Bucket.ATTENDING:
        return participant and not host
    if bucket == Bucket.PENDING:
        return not host and not participant
    return True


def passes_search(event: Event, ctx: FilterContext) -> bool:
    """Case-insensitive substring match on title, description or location."""
    term = ctx.criteria.search.lower()
    if not term:
        return True
    return (
        term in event.title.lower()
        or term in event.description.lower()
        or term in event.location.lower()
    )


def passes_category(event: Event, ctx: FilterContext) -> bool:
    category = ctx.criteria.category
    return category == CATEGORY_ALL or event.activity_type == category


def passes_open_seats(event: Event, ctx: FilterContext) -> bool:
    """Drop full events under ALL/PENDING when open-seats-only is on."""
    criteria = ctx.criteria
    if not criteria.open_seats_only:
        return True
    if criteria.bucket not in (Bucket.ALL, Bucket.PENDING):
        return True
    return not event.is_full


def passes_time_filter(event: Event, ctx: FilterContext) -> bool:
    """TODAY/TOMORROW exact date match, WEEK within [today, today+span]. Skipped for PAST."""
    criteria = ctx.criteria
    if criteria.bucket == Bucket.PAST or criteria.time_filter == TimeFilter.ALL:
        return True

    event_day = local_date(event.start_time, ctx.now)
    today = ctx.today

    if criteria.time_filter == TimeFilter.TODAY:
        return event_day == today
    if criteria.time_filter == TimeFilter.TOMORROW:
        return event_day == today + timedelta(days=1)
    # WEEK
    return today <= event_day <= today + timedelta(days=ctx.week_span_days)


FILTER_PIPELINE: Tuple[Tuple[str, EventPredicate], ...] = (
    ("dismissal", passes_dismissal),
    ("time_horizon", passes_time_horizon),
    ("relationship", passes_relationship),
    ("search", passes_search),
    ("category", passes_category),
    ("open_seats", passes_open_seats),
    ("time_filter", passes_time_filter),
)


def passes_all(event: Event, ctx: FilterContext) -> bool:
    return all(predicate(event, ctx) for _, predicate in FILTER_PIPELINE)


def rejecting_stage(event: Event, ctx: FilterContext) -> Optional[str]:
    """Name of the first stage that drops the event, None if it is kept."""
    for name, predicate in FILTER_PIPELINE:
        if not predicate(event, ctx):
            return name
    return None


# ============================================================================
# Public API
# ============================================================================


def classify_events(
    events: Iterable[Event],
    viewer_id: Optional[str],
    now: datetime,
    criteria: Optional[FeedCriteria] = None,
    dismissed_ids: AbstractSet[str] = frozenset(),
    week_span_days: int = DEFAULT_WEEK_SPAN_DAYS,
) -> List[Event]:
    """
    Filter and sort the feed for a viewer.

    Args:
        events: Snapshot of the local feed collection
        viewer_id: Current viewer, None when signed out
        now: Current instant
        criteria: Active bucket and filters (default: ALL, no filters)
        dismissed_ids: Viewer-local dismissed event ids
        week_span_days: Horizon of the WEEK filter

    Returns:
        Matching events, ascending by start (descending for PAST). Empty
        when there is no viewer.

    Example:
        ```python
        upcoming = classify_events(snapshot, "user-1", now, FeedCriteria(bucket=Bucket.PENDING))
        ```
    """
    if not viewer_id:
        return []

    ctx = FilterContext(
        viewer_id=viewer_id,
        now=now,
        criteria=criteria or FeedCriteria(),
        dismissed_ids=frozenset(dismissed_ids),
        week_span_days=week_span_days,
    )

    kept = [event for event in events if passes_all(event, ctx)]
    return sorted(
        kept,
        key=lambda event: event.start_time,
        reverse=ctx.criteria.bucket == Bucket.PAST,
    )


def bucket_of(
    event: Event,
    viewer_id: Optional[str],
    now: datetime,
    dismissed_ids: AbstractSet[str] = frozenset(),
) -> Bucket:
    """
    Single bucket an event falls into for a viewer.

    Precedence: DISMISSED, PAST, HOSTING, ATTENDING, PENDING.
    """
    if event.id in dismissed_ids:
        return Bucket.DISMISSED
    if is_past(event, now):
        return Bucket.PAST
    if event.is_host(viewer_id):
        return Bucket.HOSTING
    if event.is_participant(viewer_id):
        return Bucket.ATTENDING
    return Bucket.PENDING
