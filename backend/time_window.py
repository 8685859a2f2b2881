"""
Day and week boundary arithmetic in a fixed UTC offset.

Everything here is a pure function of its arguments. Instants must be
timezone-aware; results are returned in UTC.

Conventions:
- A day key is the `YYYY-MM-DD` date of the offset-local calendar day, so
  string order equals chronological order.
- A week runs Monday 00:00:00.000 through Saturday 23:59:59.999 local time.
  Sunday belongs to no week: a Sunday reference resolves to the
  Monday-Saturday span that just ended.
- Upper bounds are the last millisecond of the span. Stored instants carry
  microseconds, so range queries compare against `exclusive_end(end)`
  (`occurred_at < end + 1ms`) rather than `<= end`; 23:59:59.9995 still
  belongs to its day.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple, Tuple

IST_OFFSET_MINUTES = 5 * 60 + 30

_LAST_MS = timedelta(milliseconds=1)


class WeekWindow(NamedTuple):
    start: datetime
    end: datetime
    label: str


def _zone(offset_minutes: int) -> timezone:
    return timezone(timedelta(minutes=offset_minutes))


def exclusive_end(end: datetime) -> datetime:
    """First instant after an inclusive window end."""

    return end + _LAST_MS


def to_local(instant: datetime, offset_minutes: int = IST_OFFSET_MINUTES) -> datetime:
    """Shift an aware instant into the fixed-offset zone."""

    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError("Timestamp must include timezone info (e.g., 2026-02-20T10:00:00Z)")
    return instant.astimezone(_zone(offset_minutes))


def _local_bounds(first: date, last: date, offset_minutes: int) -> Tuple[datetime, datetime]:
    zone = _zone(offset_minutes)
    start = datetime.combine(first, time.min, tzinfo=zone)
    end = datetime.combine(last + timedelta(days=1), time.min, tzinfo=zone) - _LAST_MS
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def day_key(instant: datetime, offset_minutes: int = IST_OFFSET_MINUTES) -> str:
    return to_local(instant, offset_minutes).date().isoformat()


def day_window(instant: datetime, offset_minutes: int = IST_OFFSET_MINUTES) -> Tuple[datetime, datetime]:
    """Return the UTC `(start, end)` of the local calendar day holding `instant`."""

    local_day = to_local(instant, offset_minutes).date()
    return _local_bounds(local_day, local_day, offset_minutes)


def week_window(reference: datetime, offset_minutes: int = IST_OFFSET_MINUTES) -> WeekWindow:
    """Return the Monday-Saturday window containing `reference`.

    The label (`2026-10-19_to_2026-10-24`) names the week's Drive folder.
    """

    local = to_local(reference, offset_minutes)
    # Monday=1..Sunday=0 numbering, days back to the most recent Monday
    weekday = local.isoweekday() % 7
    since_monday = (weekday + 6) % 7
    monday = local.date() - timedelta(days=since_monday)
    saturday = monday + timedelta(days=5)
    start, end = _local_bounds(monday, saturday, offset_minutes)
    return WeekWindow(start, end, f"{monday.isoformat()}_to_{saturday.isoformat()}")
