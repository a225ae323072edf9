"""
Tests for timeline scale construction.
"""

from datetime import date, datetime

import pytest

from gantt_engine.exceptions import InvalidRangeError, ValidationError
from gantt_engine.models import DateRange, ZoomLevel
from gantt_engine.services.scale import (
    ScaleEngine,
    build_buckets,
    column_width,
    zoom_in,
    zoom_out,
)


def assert_ordered(buckets):
    for previous, current in zip(buckets, buckets[1:]):
        assert previous.start < current.start
        assert previous.end <= current.start


class TestWeekBuckets:
    def test_single_full_week(self):
        """
        Scenario: Jan 1 2024 is a Monday and the week starts on Monday.
        Expected: one bucket covering exactly Jan 1 - Jan 7.
        """
        buckets = build_buckets(DateRange(date(2024, 1, 1), date(2024, 1, 7)), "week", week_start=1)

        assert len(buckets) == 1
        bucket = buckets[0]
        assert bucket.start == datetime(2024, 1, 1)
        assert bucket.last_day == date(2024, 1, 7)
        assert bucket.contained_day_count == 7
        assert bucket.fraction == 1.0

    def test_boundary_weeks_are_clipped(self):
        """Range Wed Jan 3 - Wed Jan 10: the edge weeks only count their in-range days."""
        buckets = build_buckets(DateRange(date(2024, 1, 3), date(2024, 1, 10)), "week", week_start=1)

        assert len(buckets) == 2
        assert buckets[0].start == datetime(2024, 1, 3)
        assert buckets[0].contained_day_count == 5
        assert buckets[0].nominal_day_count == 7
        assert buckets[1].start == datetime(2024, 1, 8)
        assert buckets[1].contained_day_count == 3
        assert buckets[1].last_day == date(2024, 1, 10)

    def test_weekend_only_range_keeps_an_empty_column(self):
        buckets = build_buckets(
            DateRange(date(2024, 1, 6), date(2024, 1, 7)), "week", week_start=1, full_week=False
        )

        assert len(buckets) == 1
        assert buckets[0].contained_day_count == 0
        assert buckets[0].nominal_day_count == 5
        assert buckets[0].fraction == 0.0

    def test_labels_use_iso_week(self):
        buckets = build_buckets(DateRange(date(2024, 1, 1), date(2024, 1, 14)), "week", week_start=1)
        assert [bucket.label for bucket in buckets] == ["Week 1", "Week 2"]


class TestDayBuckets:
    def test_full_week_has_one_bucket_per_day(self):
        buckets = build_buckets(DateRange(date(2024, 1, 1), date(2024, 1, 7)), "day")
        assert len(buckets) == 7
        assert_ordered(buckets)

    def test_weekends_excluded(self):
        buckets = build_buckets(
            DateRange(date(2024, 1, 1), date(2024, 1, 7)), "day", full_week=False
        )
        assert len(buckets) == 5
        assert all(bucket.start.isoweekday() % 7 not in (0, 6) for bucket in buckets)

    def test_weekend_flag_on_full_week(self):
        buckets = build_buckets(DateRange(date(2024, 1, 5), date(2024, 1, 8)), "day")
        assert [bucket.is_weekend for bucket in buckets] == [False, True, True, False]

    def test_today_flag(self):
        buckets = build_buckets(
            DateRange(date(2024, 1, 1), date(2024, 1, 3)), "day", today=date(2024, 1, 2)
        )
        assert [bucket.is_today for bucket in buckets] == [False, True, False]

    def test_multi_day_step(self):
        buckets = build_buckets(DateRange(date(2024, 1, 1), date(2024, 1, 10)), "day", step=3)

        assert len(buckets) == 4
        assert buckets[-1].start == datetime(2024, 1, 10)
        assert buckets[-1].contained_day_count == 1
        assert buckets[-1].nominal_day_count == 3

    def test_step_must_be_positive(self):
        with pytest.raises(ValidationError):
            build_buckets(DateRange(date(2024, 1, 1), date(2024, 1, 2)), "day", step=0)


class TestOtherUnits:
    def test_hour_buckets_start_at_range_hour(self):
        date_range = DateRange(datetime(2024, 1, 1, 20), date(2024, 1, 2))
        buckets = build_buckets(date_range, "hour")

        assert len(buckets) == 4 + 24
        assert buckets[0].start == datetime(2024, 1, 1, 20)
        assert buckets[0].label == "20:00"
        assert buckets[-1].end == datetime(2024, 1, 3)
        assert_ordered(buckets)

    def test_hour_buckets_skip_weekends(self):
        buckets = build_buckets(
            DateRange(date(2024, 1, 6), date(2024, 1, 8)), "hour", full_week=False
        )
        assert len(buckets) == 24
        assert buckets[0].start == datetime(2024, 1, 8)

    def test_month_buckets_clip_to_range(self):
        buckets = build_buckets(DateRange(date(2024, 1, 15), date(2024, 3, 10)), "month")

        assert [bucket.contained_day_count for bucket in buckets] == [17, 29, 10]
        assert [bucket.label for bucket in buckets] == ["Jan", "Feb", "Mar"]
        assert_ordered(buckets)

    def test_quarter_and_year(self):
        date_range = DateRange(date(2024, 2, 1), date(2025, 1, 31))
        assert len(build_buckets(date_range, "quarter")) == 5
        assert len(build_buckets(date_range, "year")) == 2

    def test_unknown_unit(self):
        with pytest.raises(ValidationError):
            build_buckets(DateRange(date(2024, 1, 1), date(2024, 1, 2)), "decade")


class TestDateRange:
    def test_end_before_start(self):
        with pytest.raises(InvalidRangeError):
            DateRange(date(2024, 1, 5), date(2024, 1, 1))

    def test_single_day_is_valid(self):
        assert DateRange(date(2024, 1, 5), date(2024, 1, 5)).day_count == 1


class TestZoom:
    def test_zoom_in_and_out(self):
        assert zoom_in("day") == ZoomLevel.HOUR
        assert zoom_out("week") == ZoomLevel.MONTH

    def test_members_parse_as_themselves(self):
        assert ZoomLevel.parse(ZoomLevel.WEEK) is ZoomLevel.WEEK
        assert ZoomLevel.parse("MONTH") is ZoomLevel.MONTH
        assert zoom_in(ZoomLevel.DAY) == ZoomLevel.HOUR
        assert zoom_out(ZoomLevel.QUARTER) == ZoomLevel.YEAR

    def test_zoom_is_clamped_at_the_ends(self):
        assert zoom_in("hour") == ZoomLevel.HOUR
        assert zoom_out("year") == ZoomLevel.YEAR

    def test_column_width_fills_container(self):
        assert column_width("day", 1000, 10) == 100

    def test_column_width_respects_minimum(self):
        assert column_width("day", 100, 10) == 40


class TestScaleEngine:
    def test_scales_rows_coarsest_first(self):
        engine = ScaleEngine(zoom_level="week", week_start=1)
        month_row, week_row = engine.build_scales(DateRange(date(2024, 1, 1), date(2024, 1, 31)))

        assert len(month_row) == 1
        assert month_row[0].label == "January 2024"
        assert len(week_row) == 5
        assert week_row[-1].contained_day_count == 3

    def test_engine_zoom_state(self):
        engine = ScaleEngine(zoom_level="month")
        assert engine.zoom_in() == ZoomLevel.WEEK
        assert engine.zoom_level == ZoomLevel.WEEK
        assert engine.zoom_out() == ZoomLevel.MONTH

    def test_engine_accepts_enum_levels(self):
        engine = ScaleEngine(zoom_level=ZoomLevel.DAY)
        assert engine.zoom_in() == ZoomLevel.HOUR
        assert engine.zoom_in() == ZoomLevel.HOUR
        assert engine.set_zoom_level(ZoomLevel.YEAR) == ZoomLevel.YEAR
        assert engine.zoom_out() == ZoomLevel.YEAR

    def test_min_column_width_override(self):
        assert ScaleEngine(zoom_level="day").min_column_width == 40
        engine = ScaleEngine(zoom_level="day", min_column_width=60)
        assert engine.column_width(100, 10) == 60
        assert engine.column_width(1000, 10) == 100

    def test_unknown_zoom_level(self):
        with pytest.raises(ValidationError):
            ScaleEngine(zoom_level="minute")
