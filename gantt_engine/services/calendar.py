"""
Calendar arithmetic shared by the scale, tree and timeline services.

Everything here is pure. Weekday numbers follow the chart convention:
0=Sunday, 1=Monday ... 6=Saturday.
"""

import calendar as _cal
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterator

from gantt_engine.exceptions import ValidationError

DEFAULT_WEEKENDS = frozenset({0, 6})

UNITS = ("hour", "day", "week", "month", "quarter", "year")


@dataclass(frozen=True)
class LocaleTables:
    """Month and day names used by format_date. Day lists start on Sunday."""

    month_full: tuple = (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    )
    month_short: tuple = (
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    )
    day_full: tuple = (
        "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
    )
    day_short: tuple = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


ENGLISH = LocaleTables()


# =============================================================================
# Conversions
# =============================================================================

def parse_date(value) -> date:
    """Parse ``YYYY-MM-DD`` strings; dates pass through, datetimes lose their time."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}")


def as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(parse_date(value), time.min)


def format_iso(value) -> str:
    return parse_date(value).isoformat()


def weekday_number(value) -> int:
    """0=Sunday ... 6=Saturday."""
    return value.isoweekday() % 7


# =============================================================================
# Arithmetic
# =============================================================================

def _add_months(value, months: int):
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, _cal.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_unit(value, amount: int, unit: str):
    """
    Add ``amount`` units to a date or datetime.

    Month, quarter and year arithmetic clamps to the end of the target month
    (Jan 31 + 1 month = Feb 28/29). Adding hours to a plain date yields a
    datetime.
    """
    if unit == "hour":
        return as_datetime(value) + timedelta(hours=amount)
    if unit == "day":
        return value + timedelta(days=amount)
    if unit == "week":
        return value + timedelta(weeks=amount)
    if unit == "month":
        return _add_months(value, amount)
    if unit == "quarter":
        return _add_months(value, amount * 3)
    if unit == "year":
        return _add_months(value, amount * 12)
    raise ValidationError(f"Unknown time unit: {unit!r}")


def add_days(value, days: int):
    return value + timedelta(days=days)


def strip_time(value) -> datetime:
    """Midnight of the same day."""
    return datetime.combine(parse_date(value), time.min)


def days_between(start, end) -> int:
    """Whole days from ``start`` (inclusive) to ``end`` (exclusive)."""
    return (parse_date(end) - parse_date(start)).days


def is_between(value, start, end) -> bool:
    return start <= value <= end


def is_weekend(value, weekends=DEFAULT_WEEKENDS) -> bool:
    return weekday_number(value) in weekends


def is_today(value, today: date | None = None) -> bool:
    return parse_date(value) == (today or date.today())


# =============================================================================
# Unit boundaries (inclusive first and last day)
# =============================================================================

def week_bounds(value, week_start: int = 0) -> tuple[date, date]:
    day = parse_date(value)
    offset = (weekday_number(day) - week_start) % 7
    first = day - timedelta(days=offset)
    return first, first + timedelta(days=6)


def month_bounds(value) -> tuple[date, date]:
    day = parse_date(value)
    last = _cal.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def quarter_of(value) -> int:
    return (value.month - 1) // 3 + 1


def quarter_bounds(value) -> tuple[date, date]:
    day = parse_date(value)
    first_month = (quarter_of(day) - 1) * 3 + 1
    first = date(day.year, first_month, 1)
    return first, month_bounds(date(day.year, first_month + 2, 1))[1]


def year_bounds(value) -> tuple[date, date]:
    day = parse_date(value)
    return date(day.year, 1, 1), date(day.year, 12, 31)


def unit_bounds(value, unit: str, step: int = 1, week_start: int = 0) -> tuple[date, date]:
    """
    Day-aligned bounds of the ``step``-wide unit containing ``value``.

    For ``step > 1`` the unit starts at the bound containing ``value`` and
    spans ``step`` consecutive units.
    """
    day = parse_date(value)
    if unit == "day":
        first = day
    elif unit == "week":
        first = week_bounds(day, week_start)[0]
    elif unit == "month":
        first = month_bounds(day)[0]
    elif unit == "quarter":
        first = quarter_bounds(day)[0]
    elif unit == "year":
        first = year_bounds(day)[0]
    else:
        raise ValidationError(f"Unit {unit!r} has no day bounds")
    return first, add_unit(first, step, unit) - timedelta(days=1)


def start_of_week(value, week_start: int = 0) -> date:
    return week_bounds(value, week_start)[0]


def start_of_month(value) -> date:
    return month_bounds(value)[0]


def end_of_month(value) -> date:
    return month_bounds(value)[1]


def days_in_month(value) -> int:
    return end_of_month(value).day


def start_of_quarter(value) -> date:
    return quarter_bounds(value)[0]


def week_number(value) -> int:
    """ISO-8601 week number (the week holding the year's first Thursday is week 1)."""
    return parse_date(value).isocalendar()[1]


# =============================================================================
# Formatting
# =============================================================================

_TOKEN = re.compile(r"%([A-Za-z])")


def format_date(value, pattern: str, locale: LocaleTables = ENGLISH) -> str:
    """
    Render ``value`` by token substitution.

    %Y year, %y 2-digit year, %F/%M full/short month, %m/%n padded/plain
    month, %d/%j padded/plain day, %l/%D full/short day name, %W ISO week,
    %H 24-hour, %h 12-hour, %i minutes, %s seconds, %A/%a AM/am, %q quarter.
    Unknown tokens are left as-is.
    """
    moment = as_datetime(value)
    weekday = weekday_number(moment)
    hour12 = moment.hour % 12 or 12

    tokens = {
        "Y": str(moment.year),
        "y": str(moment.year)[-2:],
        "F": locale.month_full[moment.month - 1],
        "M": locale.month_short[moment.month - 1],
        "m": f"{moment.month:02d}",
        "n": str(moment.month),
        "d": f"{moment.day:02d}",
        "j": str(moment.day),
        "l": locale.day_full[weekday],
        "D": locale.day_short[weekday],
        "W": str(week_number(moment)),
        "H": f"{moment.hour:02d}",
        "h": f"{hour12:02d}",
        "i": f"{moment.minute:02d}",
        "s": f"{moment.second:02d}",
        "A": "AM" if moment.hour < 12 else "PM",
        "a": "am" if moment.hour < 12 else "pm",
        "q": str(quarter_of(moment)),
    }
    return _TOKEN.sub(lambda match: tokens.get(match.group(1), match.group(0)), pattern)


# =============================================================================
# Working calendar
# =============================================================================

@dataclass(frozen=True)
class WorkCalendar:
    """
    Weekend policy used for durations and day columns.

    With ``full_week`` true every calendar day counts; otherwise days whose
    weekday is in ``weekends`` are excluded.
    """

    weekends: frozenset = field(default=DEFAULT_WEEKENDS)
    full_week: bool = True

    def __post_init__(self):
        object.__setattr__(self, "weekends", frozenset(self.weekends))
        if not self.full_week and len(self.weekends) >= 7:
            raise ValidationError("A calendar needs at least one working weekday")

    @property
    def excluded_days(self) -> frozenset:
        return frozenset() if self.full_week else self.weekends

    def is_working_day(self, value) -> bool:
        return weekday_number(value) not in self.excluded_days

    def iter_days(self, start, end) -> Iterator[date]:
        """Working days from ``start`` to ``end``, both inclusive."""
        current, last = parse_date(start), parse_date(end)
        while current <= last:
            if self.is_working_day(current):
                yield current
            current += timedelta(days=1)

    def count_days(self, start, end) -> int:
        start, end = parse_date(start), parse_date(end)
        if end < start:
            return 0
        if self.full_week:
            return (end - start).days + 1
        return sum(1 for _ in self.iter_days(start, end))

    def next_working_day(self, value) -> date:
        """``value`` itself when it is a working day, otherwise the next one."""
        current = parse_date(value)
        while not self.is_working_day(current):
            current += timedelta(days=1)
        return current

    def end_for_duration(self, start, duration: int) -> date:
        """
        Last day of a task starting on ``start`` that spans ``duration`` working days.

        Every task covers at least one day; a start on an excluded day counts
        from the next working day.
        """
        current = parse_date(start)
        duration = max(duration, 1)
        if self.full_week:
            return current + timedelta(days=duration - 1)
        current = self.next_working_day(current)
        remaining = duration
        while True:
            if self.is_working_day(current):
                remaining -= 1
                if remaining == 0:
                    return current
            current += timedelta(days=1)
