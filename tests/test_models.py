"""Tests for domain models."""

from datetime import date, datetime, time

import pytest
import pytz

from blockplanner.domain.models import (
    BlockDay,
    BookedEvent,
    PlacedEvent,
    Priority,
    SchedulableTask,
    ScheduleScope,
    TimeBlock,
    TimeSlot,
    Weekday,
    parse_time_of_day,
    time_from_minutes,
)

MONDAY = date(2024, 1, 15)


class TestParseTimeOfDay:
    """Tests for HH:MM parsing."""

    def test_two_digit_hour(self):
        assert parse_time_of_day("09:30") == time(9, 30)

    def test_single_digit_hour(self):
        assert parse_time_of_day("9:05") == time(9, 5)

    def test_surrounding_whitespace(self):
        assert parse_time_of_day(" 17:00 ") == time(17, 0)

    @pytest.mark.parametrize("text", ["24:00", "12:60", "9:5", "nine", "", "12:00:00"])
    def test_malformed_raises(self, text):
        with pytest.raises(ValueError):
            parse_time_of_day(text)

    def test_time_from_minutes(self):
        assert time_from_minutes(9 * 60 + 45) == time(9, 45)


class TestWeekdayAndBlockDay:
    """Tests for weekday enums."""

    def test_from_date(self):
        assert Weekday.from_date(MONDAY) == Weekday.MONDAY
        assert Weekday.from_date(date(2024, 1, 21)) == Weekday.SUNDAY

    def test_is_weekend(self):
        assert Weekday.SATURDAY.is_weekend
        assert not Weekday.FRIDAY.is_weekend

    def test_parse_is_case_insensitive(self):
        assert BlockDay.parse("Weekday") == BlockDay.WEEKDAY

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            BlockDay.parse("someday")

    def test_group_selectors(self):
        assert BlockDay.WEEKDAY.matches(Weekday.WEDNESDAY)
        assert not BlockDay.WEEKDAY.matches(Weekday.SATURDAY)
        assert BlockDay.WEEKEND.matches(Weekday.SUNDAY)
        assert not BlockDay.WEEKEND.matches(Weekday.MONDAY)
        assert all(BlockDay.ALL.matches(day) for day in Weekday)

    def test_specific_day(self):
        assert BlockDay.TUESDAY.matches(Weekday.TUESDAY)
        assert not BlockDay.TUESDAY.matches(Weekday.WEDNESDAY)


class TestPriority:
    """Tests for Priority."""

    def test_ordinals(self):
        assert Priority.HIGH.ordinal == 1
        assert Priority.MEDIUM.ordinal == 2
        assert Priority.LOW.ordinal == 3

    def test_parse(self):
        assert Priority.parse("HIGH") == Priority.HIGH
        assert Priority.parse("urgent") is None
        assert Priority.parse(None) is None


class TestScheduleScope:
    def test_values(self):
        assert ScheduleScope("ideal-week") == ScheduleScope.IDEAL_WEEK
        assert ScheduleScope("this-week") == ScheduleScope.THIS_WEEK


class TestTimeBlock:
    """Tests for TimeBlock parsing and validity."""

    def test_parses_strings(self):
        block = TimeBlock(id="1", day="monday", start_time="9:00", end_time="12:30")
        assert block.day == BlockDay.MONDAY
        assert block.start_time == time(9, 0)
        assert block.end_time == time(12, 30)
        assert block.is_valid
        assert block.duration_minutes == 210

    def test_malformed_time_is_invalid(self):
        block = TimeBlock(id="1", day="monday", start_time="9am", end_time="12:00")
        assert not block.is_valid
        assert block.duration_minutes == 0

    def test_out_of_range_time_is_invalid(self):
        block = TimeBlock(id="1", day="monday", start_time="09:00", end_time="25:00")
        assert not block.is_valid

    def test_start_not_before_end_is_invalid(self):
        block = TimeBlock(id="1", day="monday", start_time="12:00", end_time="12:00")
        assert not block.is_valid
        assert "after start" in block.invalid_reason

    def test_unknown_day_is_invalid(self):
        block = TimeBlock(id="1", day="funday", start_time="09:00", end_time="10:00")
        assert not block.is_valid
        assert not block.matches(Weekday.MONDAY)

    def test_disabled_block_never_matches(self):
        block = TimeBlock(id="1", day="all", start_time="09:00", end_time="10:00", enabled=False)
        assert not block.matches(Weekday.MONDAY)

    def test_empty_resource_is_none(self):
        block = TimeBlock(id="1", day="all", start_time="09:00", end_time="10:00", resource_id="")
        assert block.resource_id is None

    def test_from_dict_accepts_database_id(self):
        block = TimeBlock.from_dict(
            {"id": "b", "day": "weekend", "startTime": "10:00", "endTime": "11:00",
             "databaseId": "db-1"}
        )
        assert block.resource_id == "db-1"
        assert block.enabled

    def test_to_dict(self):
        block = TimeBlock(id="b", day="weekday", start_time="9:00", end_time="17:00",
                          resource_id="work")
        assert block.to_dict() == {
            "id": "b",
            "day": "weekday",
            "startTime": "09:00",
            "endTime": "17:00",
            "enabled": True,
            "resourceId": "work",
        }


class TestSchedulableTask:
    """Tests for SchedulableTask defaults."""

    def test_default_duration(self):
        assert SchedulableTask(id="t", title="T").duration_minutes == 30

    @pytest.mark.parametrize("estimate", [None, 0])
    def test_missing_duration_treated_as_default(self, estimate):
        task = SchedulableTask(id="t", title="T", estimated_duration=estimate)
        assert task.duration_minutes == 30

    def test_priority_string_is_parsed(self):
        task = SchedulableTask(id="t", title="T", priority="Medium")
        assert task.priority == Priority.MEDIUM

    def test_unset_priority_is_low(self):
        task = SchedulableTask(id="t", title="T", priority="whenever")
        assert task.priority is None
        assert task.effective_priority == Priority.LOW


class TestBookedEvent:
    """Tests for BookedEvent."""

    def test_requires_aware_datetimes(self):
        with pytest.raises(ValueError):
            BookedEvent(id="e", start=datetime(2024, 1, 15, 9), end=datetime(2024, 1, 15, 10))

    def test_overlaps_is_half_open(self):
        event = BookedEvent(
            id="e",
            start=pytz.UTC.localize(datetime(2024, 1, 15, 9)),
            end=pytz.UTC.localize(datetime(2024, 1, 15, 10)),
        )
        assert event.overlaps(
            pytz.UTC.localize(datetime(2024, 1, 15, 9, 30)),
            pytz.UTC.localize(datetime(2024, 1, 15, 11)),
        )
        assert not event.overlaps(
            pytz.UTC.localize(datetime(2024, 1, 15, 10)),
            pytz.UTC.localize(datetime(2024, 1, 15, 11)),
        )


class TestTimeSlot:
    """Tests for TimeSlot."""

    def test_duration(self):
        slot = TimeSlot(day=MONDAY, start_time=time(9, 0), end_time=time(10, 30))
        assert slot.duration_minutes == 90

    def test_unscoped_slot_open_to_everyone(self):
        slot = TimeSlot(day=MONDAY, start_time=time(9, 0), end_time=time(10, 0))
        assert slot.is_open_to(None)
        assert slot.is_open_to("A")

    def test_scoped_slot_only_open_to_its_resource(self):
        slot = TimeSlot(day=MONDAY, start_time=time(9, 0), end_time=time(10, 0), resource_id="A")
        assert slot.is_open_to("A")
        assert not slot.is_open_to("B")
        assert not slot.is_open_to(None)

    def test_with_bounds_keeps_identity(self):
        slot = TimeSlot(day=MONDAY, start_time=time(9, 0), end_time=time(17, 0),
                        resource_id="A", block_id="b1")
        trimmed = slot.with_bounds(10 * 60, 12 * 60)
        assert trimmed.start_time == time(10, 0)
        assert trimmed.end_time == time(12, 0)
        assert trimmed.resource_id == "A"
        assert trimmed.block_id == "b1"
        assert slot.start_time == time(9, 0)


class TestPlacedEvent:
    """Tests for PlacedEvent serialization."""

    def test_to_dict_calendar_shape(self):
        event = PlacedEvent(
            id="scheduled-t1-part2",
            title="Write (Part 2)",
            start=pytz.UTC.localize(datetime(2024, 1, 15, 9)),
            end=pytz.UTC.localize(datetime(2024, 1, 15, 10)),
            color_id="11",
            category="high",
            task_id="t1",
            part=2,
        )
        data = event.to_dict()
        assert data["summary"] == "Write (Part 2)"
        assert data["start"] == {"dateTime": "2024-01-15T09:00:00+00:00", "timeZone": "UTC"}
        assert data["colorId"] == "11"
        assert data["part"] == 2
        assert data["taskId"] == "t1"
        assert "resourceId" not in data
        assert event.duration_minutes == 60
        assert event.is_split_part
