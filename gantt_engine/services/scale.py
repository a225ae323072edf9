"""
Timeline scale construction.

Turns a visible date range and a zoom unit into the ordered column buckets
the chart header and grid are drawn from:
- day zoom: one bucket per (working) day
- hour zoom: each (working) day split into hour buckets
- week/month/quarter/year zoom, or any step > 1: the unit bounds of the
  first uncovered day, clipped to the range, with the in-range day count
  recorded so boundary columns can be drawn proportionally narrower
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta

from gantt_engine.exceptions import ValidationError
from gantt_engine.logging_config import get_logger
from gantt_engine.models.scale import DateRange, TimeBucket, ZoomLevel, ZOOM_ORDER
from gantt_engine.services.calendar import (
    DEFAULT_WEEKENDS,
    ENGLISH,
    LocaleTables,
    WorkCalendar,
    format_date,
    strip_time,
    unit_bounds,
    weekday_number,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScaleRow:
    """One header row of a zoom preset."""
    unit: ZoomLevel
    step: int
    format: str


@dataclass(frozen=True)
class ZoomPreset:
    level: ZoomLevel
    scales: tuple[ScaleRow, ...]
    min_column_width: int

    @property
    def bottom(self) -> ScaleRow:
        """The finest row; its buckets are the grid columns."""
        return self.scales[-1]


ZOOM_PRESETS = {
    ZoomLevel.HOUR: ZoomPreset(
        ZoomLevel.HOUR,
        (ScaleRow(ZoomLevel.DAY, 1, "%d %M"), ScaleRow(ZoomLevel.HOUR, 1, "%H:00")),
        40,
    ),
    ZoomLevel.DAY: ZoomPreset(
        ZoomLevel.DAY,
        (ScaleRow(ZoomLevel.MONTH, 1, "%F %Y"), ScaleRow(ZoomLevel.DAY, 1, "%d")),
        40,
    ),
    ZoomLevel.WEEK: ZoomPreset(
        ZoomLevel.WEEK,
        (ScaleRow(ZoomLevel.MONTH, 1, "%F %Y"), ScaleRow(ZoomLevel.WEEK, 1, "Week %W")),
        80,
    ),
    ZoomLevel.MONTH: ZoomPreset(
        ZoomLevel.MONTH,
        (ScaleRow(ZoomLevel.YEAR, 1, "%Y"), ScaleRow(ZoomLevel.MONTH, 1, "%M")),
        80,
    ),
    ZoomLevel.QUARTER: ZoomPreset(
        ZoomLevel.QUARTER,
        (ScaleRow(ZoomLevel.YEAR, 1, "%Y"), ScaleRow(ZoomLevel.QUARTER, 1, "Q%q")),
        100,
    ),
    ZoomLevel.YEAR: ZoomPreset(
        ZoomLevel.YEAR,
        (ScaleRow(ZoomLevel.YEAR, 1, "%Y"),),
        120,
    ),
}


def get_zoom_preset(level) -> ZoomPreset:
    return ZOOM_PRESETS[ZoomLevel.parse(level)]


def zoom_in(level) -> ZoomLevel:
    """Next finer zoom level, or the same level at the finest end."""
    index = ZOOM_ORDER.index(ZoomLevel.parse(level))
    return ZOOM_ORDER[min(index + 1, len(ZOOM_ORDER) - 1)]


def zoom_out(level) -> ZoomLevel:
    """Next coarser zoom level, or the same level at the coarsest end."""
    index = ZOOM_ORDER.index(ZoomLevel.parse(level))
    return ZOOM_ORDER[max(index - 1, 0)]


def column_width(level, container_width: float, bucket_count: int) -> int:
    """Fill the container when possible, never narrower than the preset minimum."""
    minimum = get_zoom_preset(level).min_column_width
    if bucket_count <= 0:
        return minimum
    return max(math.floor(container_width / bucket_count), minimum)


def build_buckets(
    date_range: DateRange,
    unit,
    step: int = 1,
    week_start: int = 0,
    full_week: bool = True,
    weekends=DEFAULT_WEEKENDS,
    label_format: str | None = None,
    locale: LocaleTables = ENGLISH,
    today: date | None = None,
) -> list[TimeBucket]:
    """
    Build the ordered, non-overlapping buckets covering ``date_range``.

    Args:
        date_range: Inclusive visible range
        unit: Zoom unit (hour/day/week/month/quarter/year)
        step: Units per bucket
        week_start: First weekday of a week bucket (0=Sunday)
        full_week: When False, days in ``weekends`` are excluded: day and hour
            buckets skip them and coarse buckets do not count them
        label_format: Token pattern for labels; defaults to the unit's preset
        locale: Month/day name tables for labels
        today: Override for the is_today flag (defaults to the current date)

    Returns:
        Buckets in strictly increasing start order
    """
    unit = ZoomLevel.parse(unit)
    if step < 1:
        raise ValidationError(f"Scale step must be at least 1, got {step}")

    calendar = WorkCalendar(weekends=weekends, full_week=full_week)
    label_format = label_format or _default_format(unit)
    today = today or date.today()

    if unit == ZoomLevel.HOUR:
        buckets = _hour_buckets(date_range, step, calendar, label_format, locale, today)
    elif unit == ZoomLevel.DAY and step == 1:
        buckets = _day_buckets(date_range, calendar, label_format, locale, today)
    else:
        buckets = _coarse_buckets(
            date_range, unit, step, week_start, calendar, label_format, locale, today
        )

    logger.debug(
        f"Built {len(buckets)} {unit.value} buckets (step={step}) "
        f"for {date_range.start}..{date_range.end}"
    )
    return buckets


def _default_format(unit: ZoomLevel) -> str:
    return ZOOM_PRESETS[unit].bottom.format


def _days(date_range: DateRange):
    current = date_range.start
    while current <= date_range.end:
        yield current
        current += timedelta(days=1)


def _hour_buckets(date_range, step, calendar, label_format, locale, today) -> list[TimeBucket]:
    buckets = []
    for day in _days(date_range):
        if not calendar.is_working_day(day):
            continue
        midnight = strip_time(day)
        next_midnight = midnight + timedelta(days=1)
        first_hour = date_range.start_hour if day == date_range.start else 0
        for hour in range(first_hour, 24, step):
            start = midnight + timedelta(hours=hour)
            buckets.append(TimeBucket(
                unit=ZoomLevel.HOUR,
                start=start,
                end=min(start + timedelta(hours=step), next_midnight),
                label=format_date(start, label_format, locale),
                excluded_days=calendar.excluded_days,
                is_today=day == today,
                is_weekend=weekday_number(day) in calendar.weekends,
            ))
    return buckets


def _day_buckets(date_range, calendar, label_format, locale, today) -> list[TimeBucket]:
    buckets = []
    for day in _days(date_range):
        if not calendar.is_working_day(day):
            continue
        start = strip_time(day)
        buckets.append(TimeBucket(
            unit=ZoomLevel.DAY,
            start=start,
            end=start + timedelta(days=1),
            label=format_date(start, label_format, locale),
            excluded_days=calendar.excluded_days,
            is_today=day == today,
            is_weekend=weekday_number(day) in calendar.weekends,
        ))
    return buckets


def _coarse_buckets(
    date_range, unit, step, week_start, calendar, label_format, locale, today
) -> list[TimeBucket]:
    buckets = []
    current = date_range.start
    while current <= date_range.end:
        first, last = unit_bounds(current, unit.value, step, week_start)
        clipped_first = max(first, date_range.start)
        clipped_last = min(last, date_range.end)
        start = strip_time(clipped_first)
        buckets.append(TimeBucket(
            unit=unit,
            start=start,
            end=strip_time(clipped_last) + timedelta(days=1),
            label=format_date(start, label_format, locale),
            # Zero when every in-range day is excluded; the column stays, at zero width
            contained_day_count=calendar.count_days(clipped_first, clipped_last),
            nominal_day_count=calendar.count_days(first, last),
            excluded_days=calendar.excluded_days,
            is_today=clipped_first <= today <= clipped_last,
        ))
        current = last + timedelta(days=1)
    return buckets


class ScaleEngine:
    """
    Zoom state plus the calendar policy needed to build scales.

    Wraps the module functions so a host can keep one configured instance and
    zoom in/out without re-passing the policy.
    """

    def __init__(
        self,
        zoom_level="day",
        week_start: int = 0,
        full_week: bool = True,
        weekends=DEFAULT_WEEKENDS,
        locale: LocaleTables = ENGLISH,
        min_column_width: int | None = None,
    ):
        self.zoom_level = ZoomLevel.parse(zoom_level)
        self.week_start = week_start
        self.full_week = full_week
        self.weekends = frozenset(weekends)
        self.locale = locale
        # Overrides the preset minimum when set
        self.column_width_floor = min_column_width

    @classmethod
    def from_settings(cls, settings) -> "ScaleEngine":
        return cls(
            zoom_level=settings.zoom_level,
            week_start=settings.week_start,
            full_week=settings.full_week,
            weekends=settings.weekend_set,
            min_column_width=settings.min_column_width,
        )

    @property
    def preset(self) -> ZoomPreset:
        return ZOOM_PRESETS[self.zoom_level]

    @property
    def min_column_width(self) -> int:
        if self.column_width_floor:
            return self.column_width_floor
        return self.preset.min_column_width

    def set_zoom_level(self, level) -> ZoomLevel:
        self.zoom_level = ZoomLevel.parse(level)
        return self.zoom_level

    def zoom_in(self) -> ZoomLevel:
        return self.set_zoom_level(zoom_in(self.zoom_level))

    def zoom_out(self) -> ZoomLevel:
        return self.set_zoom_level(zoom_out(self.zoom_level))

    def build(self, date_range: DateRange, today: date | None = None) -> list[TimeBucket]:
        """Grid columns for the current zoom level."""
        row = self.preset.bottom
        return self._build_row(date_range, row, today)

    def build_scales(self, date_range: DateRange, today: date | None = None) -> list[list[TimeBucket]]:
        """One bucket row per header row of the current preset, coarsest first."""
        return [self._build_row(date_range, row, today) for row in self.preset.scales]

    def _build_row(self, date_range: DateRange, row: ScaleRow, today) -> list[TimeBucket]:
        return build_buckets(
            date_range,
            row.unit,
            step=row.step,
            week_start=self.week_start,
            full_week=self.full_week,
            weekends=self.weekends,
            label_format=row.format,
            locale=self.locale,
            today=today,
        )

    def column_width(self, container_width: float, bucket_count: int) -> int:
        if bucket_count <= 0:
            return self.min_column_width
        return max(math.floor(container_width / bucket_count), self.min_column_width)
