"""
Pixel <-> date mapping over a built bucket sequence.

Pure: all layout inputs come from a LayoutContext, nothing is measured.
Offsets are measured from the left edge of the first bucket.
"""

import math
from bisect import bisect_right
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Sequence

from gantt_engine.exceptions import OutOfRangeOffsetError, ValidationError
from gantt_engine.logging_config import get_logger
from gantt_engine.models.scale import DateRange, TimeBucket, ZoomLevel
from gantt_engine.services.calendar import as_datetime, parse_date, strip_time

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)


@dataclass
class LayoutContext:
    """
    Layout inputs normally measured from the rendering surface.

    ``column_width`` is either a fixed width for a full column or a callable
    returning the width of a given bucket.
    """
    column_width: float | Callable[[TimeBucket], float] = 80
    origin: datetime | None = None
    pixel_width: float | None = None
    strict: bool = False

    def width_of(self, bucket: TimeBucket) -> float:
        if callable(self.column_width):
            return float(self.column_width(bucket))
        return self.column_width * bucket.fraction

    @property
    def base_width(self) -> float:
        """Width of one full column, used for snapping."""
        if callable(self.column_width):
            raise ValidationError("A per-bucket column width has no single snapping width")
        return float(self.column_width)

    @classmethod
    def fit(
        cls,
        buckets: Sequence[TimeBucket],
        container_width: float,
        min_column_width: float,
        strict: bool = False,
    ) -> "LayoutContext":
        """Stretch columns to fill the container, never below the minimum width."""
        width = min_column_width
        if buckets:
            width = max(math.floor(container_width / len(buckets)), min_column_width)
        return cls(
            column_width=width,
            origin=buckets[0].start if buckets else None,
            pixel_width=container_width,
            strict=strict,
        )


@dataclass(frozen=True)
class BarGeometry:
    left: float
    width: float

    @property
    def right(self) -> float:
        return self.left + self.width


class TimelineMapper:
    """Converts between dates and horizontal offsets for one bucket sequence."""

    def __init__(self, buckets: Sequence[TimeBucket], layout: LayoutContext | None = None):
        self.buckets = list(buckets)
        self.layout = layout or LayoutContext()
        self._starts = [bucket.start for bucket in self.buckets]
        self._widths = [self.layout.width_of(bucket) for bucket in self.buckets]
        self._lefts = []
        position = 0.0
        for width in self._widths:
            self._lefts.append(position)
            position += width
        self._total = position

    @classmethod
    def for_range(
        cls,
        scale_engine,
        date_range: DateRange,
        container_width: float | None = None,
        strict: bool = False,
        today: date | None = None,
    ) -> "TimelineMapper":
        """Build the grid columns of ``scale_engine`` and fit them to the container."""
        buckets = scale_engine.build(date_range, today=today)
        minimum = scale_engine.min_column_width
        layout = LayoutContext.fit(buckets, container_width or 0, minimum, strict=strict)
        return cls(buckets, layout)

    @property
    def total_width(self) -> float:
        return self._total

    def bucket_left(self, index: int) -> float:
        return self._lefts[index]

    def bucket_width(self, index: int) -> float:
        return self._widths[index]

    # =========================================================================
    # Date -> offset
    # =========================================================================

    def date_to_offset(self, value) -> float:
        """
        Horizontal offset of a date or datetime.

        Inside a bucket the offset advances with elapsed time: hours within a
        day column, countable days within a coarse column. A moment in a
        skipped (weekend) gap maps to the start of the next column. Moments
        outside the buckets extrapolate from the edge column's rate unless the
        layout is strict.
        """
        self._require_buckets()
        moment = as_datetime(value)
        first, last = self.buckets[0], self.buckets[-1]

        if moment < first.start:
            offset = (moment - first.start).total_seconds() * self._rate(0)
            return self._outside(offset)
        if moment == last.end:
            return self._total
        if moment > last.end:
            offset = self._total + (moment - last.end).total_seconds() * self._rate(len(self.buckets) - 1)
            return self._outside(offset)

        index = bisect_right(self._starts, moment) - 1
        bucket = self.buckets[index]
        if moment >= bucket.end:
            return self._lefts[index + 1]
        return self._lefts[index] + self._widths[index] * self._fraction_within(bucket, moment)

    @staticmethod
    def _fraction_within(bucket: TimeBucket, moment: datetime) -> float:
        if not bucket.is_coarse:
            return (moment - bucket.start) / bucket.span

        days = list(bucket.countable_days())
        if not days:
            return 0.0
        day = moment.date()
        index = sum(1 for countable in days if countable < day)
        partial = 0.0
        if day in days:
            partial = (moment - strip_time(day)) / ONE_DAY
        return (index + partial) / len(days)

    # =========================================================================
    # Offset -> date
    # =========================================================================

    def offset_to_date(self, offset: float) -> datetime:
        """Inverse of ``date_to_offset`` up to column resolution."""
        self._require_buckets()
        if offset < 0:
            self._outside(offset)
            return self.buckets[0].start + timedelta(seconds=offset / self._rate(0))
        if offset >= self._total:
            if offset > self._total:
                self._outside(offset)
            last = len(self.buckets) - 1
            return self.buckets[last].end + timedelta(seconds=(offset - self._total) / self._rate(last))

        index = self.bucket_index_at(offset)
        bucket = self.buckets[index]
        fraction = (offset - self._lefts[index]) / self._widths[index]

        if not bucket.is_coarse:
            return bucket.start + bucket.span * fraction

        days = list(bucket.countable_days())
        position = fraction * len(days)
        day_index = min(int(position), len(days) - 1)
        return strip_time(days[day_index]) + ONE_DAY * (position - day_index)

    def offset_to_day(self, offset: float) -> date:
        return self.offset_to_date(offset).date()

    def bucket_index_at(self, offset: float) -> int:
        """Index of the column under ``offset``, clamped to the sequence."""
        self._require_buckets()
        # Zero-width columns share their left with the next one; the later wins
        index = bisect_right(self._lefts, offset) - 1
        return max(0, min(index, len(self.buckets) - 1))

    def bucket_index_of(self, value) -> int | None:
        """Index of the column containing a date, or None when outside every column."""
        moment = as_datetime(value)
        for index, bucket in enumerate(self.buckets):
            if bucket.contains(moment):
                return index
        return None

    # =========================================================================
    # Layout helpers
    # =========================================================================

    def snap_to_column(self, offset: float, column_width: float | None = None) -> float:
        """Round to the nearest column boundary."""
        width = column_width or self.layout.base_width
        return math.floor(offset / width + 0.5) * width

    def bar_geometry(self, start, end, milestone: bool = False) -> BarGeometry:
        """
        Left edge and width of a task bar for inclusive ``start``..``end`` days.

        A milestone is a point at its start date and has zero width.
        """
        left = self.date_to_offset(parse_date(start))
        if milestone:
            return BarGeometry(left, 0.0)
        right = self.date_to_offset(parse_date(end) + ONE_DAY)
        return BarGeometry(left, max(right - left, 0.0))

    def visible_range(self, scroll_left: float, container_width: float) -> tuple[int, int]:
        """
        Inclusive index window of the columns to render, with one column of
        overscan on each side. ``(0, -1)`` when there are no columns.
        """
        if not self.buckets:
            return 0, -1
        first = self.bucket_index_at(max(scroll_left, 0))
        last = self.bucket_index_at(scroll_left + container_width)
        return max(first - 1, 0), min(last + 1, len(self.buckets) - 1)

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_buckets(self) -> None:
        if not self.buckets:
            raise ValidationError("Timeline has no columns to map against")

    def _rate(self, index: int) -> float:
        """Pixels per second of the column at ``index``."""
        bucket = self.buckets[index]
        width = self._widths[index]
        if bucket.is_coarse:
            seconds = bucket.contained_day_count * ONE_DAY.total_seconds()
        else:
            seconds = bucket.span.total_seconds()
        if width > 0 and seconds > 0:
            return width / seconds
        # Zero-width edge column: fall back to one full column per unit
        unit = timedelta(hours=1) if bucket.unit == ZoomLevel.HOUR else ONE_DAY
        return self.layout.base_width / unit.total_seconds()

    def _outside(self, offset: float) -> float:
        if self.layout.strict:
            logger.warning(f"Offset {offset:.1f} outside 0..{self._total:.1f} in strict mode")
            raise OutOfRangeOffsetError(offset, self._total)
        return offset
