"""
Itinerary time derivation.

An event composed of itinerary items displays the range covered by its
items, not its stored start/end. This module computes that range, the
display mode (single-day time range vs multi-day) and the formatted text
fields, plus the small itinerary helpers used by the editor and detail view.
"""

import math
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog
from pydantic import BaseModel, ConfigDict

from invites.src.models.event import Event, ItineraryItem, ensure_aware

logger = structlog.get_logger(__name__)

DEFAULT_MULTI_DAY_HOURS = 24
DEFAULT_ITEM_MINUTES = 60


class EventDateTime(BaseModel):
    """Display model for an event's date/time block.

    Attributes:
        start_date: Effective start (derived from itinerary when present)
        end_date: Effective end, None when the event has no end
        show_multi_day: Render distinct start and end date+time lines
        show_itinerary_times_only: Render one date with a time range
        start_date_text: e.g. "January 30, 2026"
        start_time_text: e.g. "2:30 PM"
        end_date_text: Formatted end date or None
        end_time_text: Formatted end time or None
        time_range_text: "<start> - <end>" or the start time alone
    """

    model_config = ConfigDict(frozen=True)

    start_date: datetime
    end_date: Optional[datetime] = None
    show_multi_day: bool = False
    show_itinerary_times_only: bool = False
    start_date_text: str
    start_time_text: str
    end_date_text: Optional[str] = None
    end_time_text: Optional[str] = None
    time_range_text: str


def parse_iso(value: object) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp, None if it can't be parsed.

    A timestamp without an offset is taken as UTC.
    """
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        return None


def format_date_long(value: datetime) -> str:
    """Long US date, e.g. "January 30, 2026"."""
    return f"{value:%B} {value.day}, {value.year}"


def format_time_12h(value: datetime) -> str:
    """12-hour clock time, e.g. "2:30 PM"."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def item_end(item: ItineraryItem) -> Optional[datetime]:
    """End of an item (start + duration), None if its start doesn't parse."""
    start = parse_iso(item.start_time)
    if start is None:
        return None
    return start + timedelta(minutes=item.duration_minutes)


def sort_by_start_time(items: Iterable[ItineraryItem]) -> List[ItineraryItem]:
    """Items ordered by start; unparseable starts go last, original order kept."""
    indexed = list(enumerate(items))

    def key(pair: Tuple[int, ItineraryItem]):
        index, item = pair
        start = parse_iso(item.start_time)
        if start is None:
            return (1, 0.0, index)
        return (0, start.timestamp(), index)

    return [item for _, item in sorted(indexed, key=key)]


def derive_range_from_itinerary(
    items: Optional[Sequence[ItineraryItem]],
) -> Optional[Tuple[datetime, datetime]]:
    """
    Compute [min start, max end] over itinerary items.

    Items whose start fails to parse are skipped. Items need not be
    contiguous or ordered.

    Args:
        items: Itinerary items (may be empty or None)

    Returns:
        (start, end) or None when no item has a parseable start
    """
    if not items:
        return None

    min_start: Optional[datetime] = None
    max_end: Optional[datetime] = None

    for item in items:
        start = parse_iso(item.start_time)
        if start is None:
            logger.warning(
                "itinerary_item_start_unparseable",
                item_id=item.id,
                event_id=item.event_id,
                start_time=item.start_time,
            )
            continue
        end = start + timedelta(minutes=item.duration_minutes)

        if min_start is None or start < min_start:
            min_start = start
        if max_end is None or end > max_end:
            max_end = end

    if min_start is None or max_end is None:
        return None
    return min_start, max_end


def derive_event_times(items: Optional[Sequence[ItineraryItem]]) -> Optional[Tuple[str, str]]:
    """Derived range as ISO strings, used to refresh an event's cached start/end."""
    derived = derive_range_from_itinerary(items)
    if derived is None:
        return None
    start, end = derived
    return start.isoformat(), end.isoformat()


def next_item_start(items: Sequence[ItineraryItem], fallback: str) -> str:
    """Suggested start for a new item: the end of the latest-starting item."""
    ordered = [item for item in sort_by_start_time(items) if parse_iso(item.start_time)]
    if not ordered:
        return fallback
    end = item_end(ordered[-1])
    return end.isoformat() if end else fallback


def duration_hours_to_minutes(
    duration_hours: Optional[float], default_minutes: int = DEFAULT_ITEM_MINUTES
) -> int:
    """Convert an hours input to whole minutes (at least 1), default when blank or invalid."""
    if isinstance(duration_hours, bool) or not isinstance(duration_hours, (int, float)):
        return default_minutes
    if not math.isfinite(duration_hours) or duration_hours <= 0:
        return default_minutes
    return max(1, round(duration_hours * 60))


def minutes_to_quarter_hours(duration_minutes: Optional[float]) -> float:
    """Minutes to hours rounded to the nearest quarter hour; 0 for invalid input."""
    if duration_minutes is None or isinstance(duration_minutes, bool):
        return 0
    minutes = float(duration_minutes)
    if not math.isfinite(minutes) or minutes <= 0:
        return 0
    return round(minutes / 60 * 4) / 4


def extract_unique_locations(items: Iterable[ItineraryItem]) -> List[str]:
    """Distinct non-blank item locations, trimmed, in first-seen order."""
    seen = set()
    locations = []
    for item in items:
        location = (item.location or "").strip()
        if not location or location in seen:
            continue
        seen.add(location)
        locations.append(location)
    return locations


def build_event_datetime(
    event_start: datetime,
    event_end: Optional[datetime] = None,
    itinerary_items: Optional[Sequence[ItineraryItem]] = None,
    tz: Optional[tzinfo] = None,
    multi_day_hours: int = DEFAULT_MULTI_DAY_HOURS,
) -> EventDateTime:
    """
    Build the date/time display model for an event.

    With a non-empty itinerary the range comes from the items; otherwise from
    the stored start/end. Display rule:
    - end - start >= multi_day_hours: multi-day (start and end date+time)
    - 0 <= end - start <= multi_day_hours: one date with a time range, even
      across midnight
    - no end: start date/time only
    At exactly multi_day_hours both flags are set; renderers check
    show_multi_day first.

    Args:
        event_start: Stored start
        event_end: Stored end (optional)
        itinerary_items: Itinerary items (optional)
        tz: Timezone to render in (default: as stored)
        multi_day_hours: Multi-day boundary in hours

    Returns:
        EventDateTime
    """
    derived = derive_range_from_itinerary(itinerary_items) if itinerary_items else None

    if derived is not None:
        start_date, end_date = derived
    else:
        start_date, end_date = ensure_aware(event_start), ensure_aware(event_end)

    if tz is not None:
        start_date = start_date.astimezone(tz)
        end_date = end_date.astimezone(tz) if end_date is not None else None

    boundary = timedelta(hours=multi_day_hours)
    show_multi_day = False
    show_itinerary_times_only = False
    if end_date is not None:
        duration = end_date - start_date
        show_multi_day = duration >= boundary
        show_itinerary_times_only = timedelta(0) <= duration <= boundary

    start_time_text = format_time_12h(start_date)
    end_time_text = format_time_12h(end_date) if end_date is not None else None

    return EventDateTime(
        start_date=start_date,
        end_date=end_date,
        show_multi_day=show_multi_day,
        show_itinerary_times_only=show_itinerary_times_only,
        start_date_text=format_date_long(start_date),
        start_time_text=start_time_text,
        end_date_text=format_date_long(end_date) if end_date is not None else None,
        end_time_text=end_time_text,
        time_range_text=(
            f"{start_time_text} - {end_time_text}" if end_time_text else start_time_text
        ),
    )


def event_datetime(
    event: Event, tz: Optional[tzinfo] = None, multi_day_hours: int = DEFAULT_MULTI_DAY_HOURS
) -> EventDateTime:
    """Display model for an Event record."""
    return build_event_datetime(
        event.start_time,
        event.end_time,
        event.itinerary_items,
        tz=tz,
        multi_day_hours=multi_day_hours,
    )
