"""Date-range partitioning for resumable collection.

Collection state is tracked per calendar month, so every requested range is
split into month windows before anything is fetched. All datetimes here are
timezone-aware UTC.
"""

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

# Each repository month costs roughly two requests' worth of wall time
# (branch listing + commit listing).
SECONDS_PER_REPO_MONTH = 2


@dataclass(frozen=True)
class MonthWindow:
    """One calendar-month slice of a collection range."""

    start: datetime
    end: datetime

    @property
    def month_key(self) -> str:
        """Ledger key for this window (YYYY-MM)."""
        return month_key(self.start)

    def spans_month(self, not_before: datetime | None = None) -> bool:
        """Whether the window reaches to both edges of its month.

        A window starting exactly at ``not_before`` (e.g. the repository's
        creation time) counts as starting at the month's beginning.
        """
        month_start = self.start.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        starts_at_edge = self.start == month_start or self.start == not_before
        return starts_at_edge and self.end == end_of_month(self.start)


def month_key(moment: datetime | date) -> str:
    """Format the YYYY-MM partition key for a moment."""
    return f"{moment.year:04d}-{moment.month:02d}"


def to_utc(value: datetime | date, end_of_day: bool = False) -> datetime:
    """Normalize a date or datetime to an aware UTC datetime.

    Plain dates become midnight, or the last microsecond of the day when
    ``end_of_day`` is set. Naive datetimes are taken to be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return datetime.combine(value, time.max if end_of_day else time.min, tzinfo=UTC)


def end_of_month(moment: datetime) -> datetime:
    if moment.month == 12:
        first_of_next = moment.replace(year=moment.year + 1, month=1, day=1)
    else:
        first_of_next = moment.replace(month=moment.month + 1, day=1)
    first_of_next = first_of_next.replace(hour=0, minute=0, second=0, microsecond=0)
    return first_of_next - timedelta(microseconds=1)


def month_windows(start: datetime, end: datetime) -> list[MonthWindow]:
    """Split ``[start, end]`` into calendar-month windows, ascending.

    The first window begins at ``start`` and the last ends at ``end``; every
    other window covers its whole month.

    Args:
        start: Range start (aware).
        end: Range end (aware, inclusive).

    Returns:
        Windows in chronological order. Empty when ``start > end``.
    """
    start = to_utc(start)
    end = to_utc(end)

    windows: list[MonthWindow] = []
    cursor = start
    while cursor <= end:
        window_end = min(end_of_month(cursor), end)
        windows.append(MonthWindow(start=cursor, end=window_end))
        cursor = window_end + timedelta(microseconds=1)
    return windows


def day_bounds(target: date, utc_offset_hours: float = 0.0) -> tuple[datetime, datetime]:
    """UTC instants bounding one local calendar day.

    Args:
        target: Local calendar day.
        utc_offset_hours: Local offset from UTC (e.g. 9 for KST).

    Returns:
        (start, end) where end is the last microsecond of the day.
    """
    offset = timedelta(hours=utc_offset_hours)
    local_start = datetime.combine(target, time.min, tzinfo=UTC) - offset
    return local_start, local_start + timedelta(days=1, microseconds=-1)


@dataclass(frozen=True)
class CollectionEstimate:
    """Rough wall-clock estimate for a collection run."""

    minutes: int
    max_minutes: int

    @property
    def description(self) -> str:
        return (
            f"about {self.minutes} to {self.max_minutes} minutes "
            "(varies with rate limit conditions)"
        )


def estimate_collection_time(repo_count: int, month_count: int) -> CollectionEstimate:
    """Estimate how long collecting ``repo_count`` x ``month_count`` partitions takes.

    Detail enrichment is not included.
    """
    minutes = math.ceil(repo_count * month_count * SECONDS_PER_REPO_MONTH / 60)
    return CollectionEstimate(minutes=minutes, max_minutes=minutes * 2)
