"""Per-day, per-month and per-year history counts in the caller's timezone.

Timestamps are stored in UTC.  The aggregation window is computed here in
the requested zone and converted back to UTC bounds; the grouping itself runs
in Postgres with ``AT TIME ZONE`` so an item at 02:22 UTC lands on the
previous local day for any offset west of -02:22.
"""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from histsync.services.database import Database
from histsync.sync.errors import InvalidCalendarQueryError, InvalidTimezoneError

logger = logging.getLogger("histsync.sync.calendar")

# +05:30, -10, -1000, +2
_OFFSET_RE = re.compile(r"^([+-])(\d{1,2})(?::?(\d{2}))?$")


class CalendarFocus(str, Enum):
    day = "day"
    month = "month"
    year = "year"


_EXTRACT_FIELD = {
    CalendarFocus.day: "DAY",
    CalendarFocus.month: "MONTH",
    CalendarFocus.year: "YEAR",
}


def parse_timezone(tz: str | None) -> tzinfo:
    """Resolve an IANA zone name, ``UTC``/``Z`` or a fixed ``±HH[:MM]`` offset.

    Raises:
        InvalidTimezoneError: For anything else.
    """
    if tz is None or not tz.strip() or tz.strip().upper() in ("UTC", "Z"):
        return timezone.utc
    value = tz.strip()
    if match := _OFFSET_RE.match(value):
        sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3) or 0)
        if hours > 14 or minutes >= 60:
            raise InvalidTimezoneError(f"Offset out of range: {tz!r}")
        offset = timedelta(hours=hours, minutes=minutes)
        return timezone(-offset if sign == "-" else offset)
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezoneError(f"Unknown timezone: {tz!r}") from exc


def postgres_zone(tz: tzinfo) -> tuple[str, str | timedelta]:
    """Return ``(sql_type, parameter)`` usable with ``AT TIME ZONE``.

    Fixed offsets go in as an interval: Postgres reads a bare ``'-10:00'``
    string with POSIX sign rules, which would invert it.
    """
    if isinstance(tz, ZoneInfo):
        return "text", tz.key
    offset = tz.utcoffset(None) or timedelta(0)
    return "interval", offset


@dataclass(frozen=True)
class CalendarWindow:
    """UTC bounds of the aggregation plus the units to report even when empty."""

    start: datetime | None
    end: datetime | None
    units: list[int] = field(default_factory=list)


def _check_year(year: int) -> int:
    if not 1 <= year <= 9998:
        raise InvalidCalendarQueryError(f"Year out of range: {year}")
    return year


def calendar_window(
    focus: CalendarFocus,
    tz: tzinfo,
    year: int | None = None,
    month: int | None = None,
    now: datetime | None = None,
) -> CalendarWindow:
    """Compute the window for ``focus``.

    ``day`` covers one month (default: current local month), ``month`` one
    year (default: current local year), ``year`` all history unless a year
    is given.
    """
    local_now = (now or datetime.now(timezone.utc)).astimezone(tz)

    if focus is CalendarFocus.year:
        if year is None:
            return CalendarWindow(start=None, end=None)
        y = _check_year(year)
        start = datetime(y, 1, 1, tzinfo=tz)
        end = datetime(y + 1, 1, 1, tzinfo=tz)
        units = [y]
    elif focus is CalendarFocus.month:
        y = _check_year(year if year is not None else local_now.year)
        start = datetime(y, 1, 1, tzinfo=tz)
        end = datetime(y + 1, 1, 1, tzinfo=tz)
        units = list(range(1, 13))
    else:
        y = _check_year(year if year is not None else local_now.year)
        m = month if month is not None else local_now.month
        if not 1 <= m <= 12:
            raise InvalidCalendarQueryError(f"Month out of range: {m}")
        start = datetime(y, m, 1, tzinfo=tz)
        end = datetime(y + 1, 1, 1, tzinfo=tz) if m == 12 else datetime(y, m + 1, 1, tzinfo=tz)
        units = list(range(1, calendar.monthrange(y, m)[1] + 1))

    try:
        return CalendarWindow(
            start=start.astimezone(timezone.utc),
            end=end.astimezone(timezone.utc),
            units=units,
        )
    except OverflowError as exc:
        # e.g. year 1 at a positive offset starts before 0001-01-01 UTC
        raise InvalidCalendarQueryError(f"Year out of range for this timezone: {y}") from exc


class CalendarAggregator:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def get_history_stats(
        self,
        user_id: int,
        focus: CalendarFocus | str,
        year: int | None = None,
        month: int | None = None,
        tz: str | None = None,
        now: datetime | None = None,
    ) -> dict[int, int]:
        """Count live history items per calendar unit, ordered by unit."""
        try:
            focus = CalendarFocus(focus)
        except ValueError as exc:
            raise InvalidCalendarQueryError(f"Unknown calendar focus: {focus!r}") from exc
        zone = parse_timezone(tz)
        window = calendar_window(focus, zone, year=year, month=month, now=now)
        sql_type, zone_param = postgres_zone(zone)

        conditions = ["user_id = $1", "deleted_at IS NULL"]
        params: list = [user_id, zone_param]
        if window.start is not None and window.end is not None:
            conditions.append("timestamp >= $3")
            conditions.append("timestamp < $4")
            params.extend([window.start, window.end])

        rows = await self._db.fetch(
            f"""
            SELECT EXTRACT({_EXTRACT_FIELD[focus]} FROM history.timestamp AT TIME ZONE $2::{sql_type})::int AS unit,
                   COUNT(*) AS count
            FROM history
            WHERE {" AND ".join(conditions)}
            GROUP BY unit
            ORDER BY unit
            """,
            *params,
        )

        counts = {unit: 0 for unit in window.units}
        for row in rows:
            counts[row["unit"]] = int(row["count"])
        logger.debug(
            "Calendar %s for user %s (tz=%s): %d bucket(s)",
            focus.value, user_id, tz or "UTC", len(counts),
        )
        return dict(sorted(counts.items()))
