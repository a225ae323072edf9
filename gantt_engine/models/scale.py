from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterator

from gantt_engine.exceptions import InvalidRangeError, ValidationError


class ZoomLevel(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value) -> "ZoomLevel":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(f"Unknown zoom level: {value!r}")


# Coarsest to finest
ZOOM_ORDER = [
    ZoomLevel.YEAR,
    ZoomLevel.QUARTER,
    ZoomLevel.MONTH,
    ZoomLevel.WEEK,
    ZoomLevel.DAY,
    ZoomLevel.HOUR,
]


@dataclass(frozen=True)
class DateRange:
    """Visible range, both ends inclusive. ``start_hour`` trims the first day in hour zoom."""

    start: date
    end: date
    start_hour: int = 0

    def __post_init__(self):
        if isinstance(self.start, datetime):
            object.__setattr__(self, "start_hour", self.start.hour)
            object.__setattr__(self, "start", self.start.date())
        if isinstance(self.end, datetime):
            object.__setattr__(self, "end", self.end.date())
        if self.end < self.start:
            raise InvalidRangeError(self.start, self.end)
        if not 0 <= self.start_hour < 24:
            raise InvalidRangeError(f"{self.start} {self.start_hour}:00", self.end)

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, value) -> bool:
        if isinstance(value, datetime):
            value = value.date()
        return self.start <= value <= self.end


@dataclass(frozen=True)
class TimeBucket:
    """
    One timeline column.

    ``start``/``end`` are the clipped instants the column covers, ``end``
    exclusive. ``contained_day_count`` counts the in-range days that are not
    excluded as weekend; ``nominal_day_count`` is the same count over the
    unclipped unit, so ``fraction`` sizes partially visible boundary columns.
    """

    unit: ZoomLevel
    start: datetime
    end: datetime
    label: str = ""
    contained_day_count: int = 1
    nominal_day_count: int = 1
    excluded_days: frozenset = field(default_factory=frozenset)
    is_today: bool = False
    is_weekend: bool = False

    @property
    def first_day(self) -> date:
        return self.start.date()

    @property
    def last_day(self) -> date:
        return (self.end - timedelta(microseconds=1)).date()

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    @property
    def fraction(self) -> float:
        if not self.nominal_day_count:
            return 0.0
        return self.contained_day_count / self.nominal_day_count

    @property
    def is_coarse(self) -> bool:
        """Column covering more than a single day or hour."""
        return self.unit != ZoomLevel.HOUR and self.span > timedelta(days=1)

    def countable_days(self) -> Iterator[date]:
        current = self.first_day
        while current <= self.last_day:
            if current.isoweekday() % 7 not in self.excluded_days:
                yield current
            current += timedelta(days=1)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end
