"""
Tests for calendar arithmetic.
"""

from datetime import date, datetime

import pytest

from gantt_engine.exceptions import ValidationError
from gantt_engine.services.calendar import (
    WorkCalendar,
    add_unit,
    days_between,
    format_date,
    is_today,
    is_weekend,
    month_bounds,
    parse_date,
    quarter_bounds,
    strip_time,
    unit_bounds,
    week_bounds,
    week_number,
    weekday_number,
)


class TestAddUnit:
    """Unit arithmetic, including month-end clamping."""

    def test_month_end_clamps_in_leap_year(self):
        assert add_unit(date(2024, 1, 31), 1, "month") == date(2024, 2, 29)

    def test_month_end_clamps_in_common_year(self):
        assert add_unit(date(2023, 1, 31), 1, "month") == date(2023, 2, 28)

    def test_leap_day_plus_one_year(self):
        assert add_unit(date(2024, 2, 29), 1, "year") == date(2025, 2, 28)

    def test_quarter_crosses_year(self):
        assert add_unit(date(2024, 11, 30), 1, "quarter") == date(2025, 2, 28)

    def test_negative_months(self):
        assert add_unit(date(2024, 3, 31), -1, "month") == date(2024, 2, 29)

    def test_hours_on_a_date_give_a_datetime(self):
        assert add_unit(date(2024, 1, 1), 5, "hour") == datetime(2024, 1, 1, 5)

    def test_weeks(self):
        assert add_unit(date(2024, 1, 1), 2, "week") == date(2024, 1, 15)

    def test_unknown_unit(self):
        with pytest.raises(ValidationError):
            add_unit(date(2024, 1, 1), 1, "fortnight")


class TestWeekdays:
    def test_sunday_is_zero(self):
        assert weekday_number(date(2024, 1, 7)) == 0

    def test_saturday_is_six(self):
        assert weekday_number(date(2024, 1, 6)) == 6

    def test_default_weekend(self):
        assert is_weekend(date(2024, 1, 6))
        assert is_weekend(date(2024, 1, 7))
        assert not is_weekend(date(2024, 1, 8))

    def test_custom_weekend(self):
        assert is_weekend(date(2024, 1, 5), weekends={5})
        assert not is_weekend(date(2024, 1, 6), weekends={5})


class TestBounds:
    def test_week_starting_monday(self):
        assert week_bounds(date(2024, 1, 3), week_start=1) == (date(2024, 1, 1), date(2024, 1, 7))

    def test_week_starting_sunday(self):
        assert week_bounds(date(2024, 1, 3), week_start=0) == (date(2023, 12, 31), date(2024, 1, 6))

    def test_month(self):
        assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_quarter(self):
        assert quarter_bounds(date(2024, 5, 15)) == (date(2024, 4, 1), date(2024, 6, 30))

    def test_multi_unit_step(self):
        assert unit_bounds(date(2024, 1, 10), "day", step=3) == (date(2024, 1, 10), date(2024, 1, 12))
        assert unit_bounds(date(2024, 2, 10), "month", step=2) == (date(2024, 2, 1), date(2024, 3, 31))

    def test_hour_has_no_day_bounds(self):
        with pytest.raises(ValidationError):
            unit_bounds(date(2024, 1, 1), "hour")


class TestConversions:
    def test_days_between(self):
        assert days_between(date(2024, 1, 1), date(2024, 1, 8)) == 7

    def test_strip_time(self):
        assert strip_time(datetime(2024, 1, 1, 13, 30)) == datetime(2024, 1, 1)

    def test_is_today(self):
        assert is_today(datetime(2024, 1, 1, 9), today=date(2024, 1, 1))
        assert not is_today(date(2024, 1, 2), today=date(2024, 1, 1))

    def test_parse_date(self):
        assert parse_date("2024-03-01") == date(2024, 3, 1)
        assert parse_date("2024-03-01T10:00:00") == date(2024, 3, 1)
        assert parse_date(datetime(2024, 3, 1, 10)) == date(2024, 3, 1)

    def test_parse_date_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_date("not a date")


class TestFormatDate:
    def test_day_month_year_time(self):
        assert format_date(datetime(2024, 1, 5, 14, 7), "%d %M %Y %H:%i") == "05 Jan 2024 14:07"

    def test_names(self):
        assert format_date(date(2024, 1, 5), "%l, %F %j") == "Friday, January 5"

    def test_twelve_hour_clock(self):
        assert format_date(datetime(2024, 1, 5, 14), "%h %A") == "02 PM"
        assert format_date(datetime(2024, 1, 5, 0), "%h %a") == "12 am"

    def test_quarter(self):
        assert format_date(date(2024, 8, 1), "Q%q") == "Q3"

    def test_unknown_token_is_kept(self):
        assert format_date(date(2024, 1, 5), "%Y %Z") == "2024 %Z"

    def test_iso_week_numbers(self):
        assert week_number(date(2024, 1, 1)) == 1
        # Jan 3 2021 is a Sunday still in the last ISO week of 2020
        assert week_number(date(2021, 1, 3)) == 53
        assert format_date(date(2021, 1, 4), "Week %W") == "Week 1"


class TestWorkCalendar:
    def test_full_week_counts_every_day(self):
        calendar = WorkCalendar(full_week=True)
        assert calendar.count_days(date(2024, 1, 1), date(2024, 1, 7)) == 7
        assert calendar.end_for_duration(date(2024, 1, 1), 5) == date(2024, 1, 5)

    def test_work_week_skips_weekends(self):
        calendar = WorkCalendar(full_week=False)
        assert calendar.count_days(date(2024, 1, 1), date(2024, 1, 7)) == 5
        # Friday + Monday + Tuesday
        assert calendar.end_for_duration(date(2024, 1, 5), 3) == date(2024, 1, 9)

    def test_end_before_start_counts_nothing(self):
        assert WorkCalendar().count_days(date(2024, 1, 5), date(2024, 1, 1)) == 0

    def test_zero_duration_ends_on_start(self):
        assert WorkCalendar().end_for_duration(date(2024, 1, 5), 0) == date(2024, 1, 5)

    def test_weekend_start_counts_from_monday(self):
        calendar = WorkCalendar(full_week=False)
        assert calendar.end_for_duration(date(2024, 1, 6), 1) == date(2024, 1, 8)
        assert calendar.end_for_duration(date(2024, 1, 6), 0) == date(2024, 1, 8)
        assert calendar.end_for_duration(date(2024, 1, 7), 2) == date(2024, 1, 9)

    def test_next_working_day(self):
        calendar = WorkCalendar(full_week=False)
        assert calendar.next_working_day(date(2024, 1, 5)) == date(2024, 1, 5)
        assert calendar.next_working_day(date(2024, 1, 6)) == date(2024, 1, 8)
        assert WorkCalendar().next_working_day(date(2024, 1, 6)) == date(2024, 1, 6)

    def test_iter_days(self):
        calendar = WorkCalendar(full_week=False)
        days = list(calendar.iter_days(date(2024, 1, 5), date(2024, 1, 8)))
        assert days == [date(2024, 1, 5), date(2024, 1, 8)]

    def test_weekends_ignored_on_full_week(self):
        calendar = WorkCalendar(weekends={0, 6}, full_week=True)
        assert calendar.is_working_day(date(2024, 1, 6))

    def test_calendar_needs_a_working_day(self):
        with pytest.raises(ValidationError):
            WorkCalendar(weekends=set(range(7)), full_week=False)
