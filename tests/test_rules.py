"""Tests for scheduling rules."""

import logging
from datetime import date

import pytest

from blockplanner.domain.models import TimeBlock, Weekday
from blockplanner.domain.rules import SchedulingRules

MONDAY = date(2024, 1, 15)
SATURDAY = date(2024, 1, 20)


class TestDefaults:
    """Tests for the default rule set."""

    def test_default_parameters(self):
        rules = SchedulingRules()
        assert rules.max_task_duration == 60
        assert rules.max_long_task_duration == 120
        assert rules.long_task_threshold == 120
        assert rules.priority_weight == 0.7
        assert rules.time_weight == 0.3
        assert rules.randomness_factor == 0.2
        assert rules.timezone == "UTC"

    def test_default_working_days(self):
        rules = SchedulingRules()
        assert rules.is_working_day(MONDAY)
        assert not rules.is_working_day(SATURDAY)

    def test_default_block(self):
        rules = SchedulingRules()
        assert len(rules.time_blocks) == 1
        block = rules.time_blocks[0]
        assert block.id == "1"
        assert block.to_dict()["startTime"] == "09:00"
        assert block.to_dict()["endTime"] == "17:00"

    def test_instances_do_not_share_state(self):
        first = SchedulingRules()
        second = SchedulingRules()
        first.working_days[Weekday.SATURDAY] = True
        assert not second.working_days[Weekday.SATURDAY]


class TestValidation:
    """Tests for rule validation in the constructor."""

    def test_missing_days_are_not_working(self):
        rules = SchedulingRules(working_days={"monday": True})
        assert rules.working_days[Weekday.MONDAY]
        assert not rules.working_days[Weekday.TUESDAY]
        assert len(rules.working_days) == 7

    def test_negative_cap_raises(self):
        with pytest.raises(ValueError):
            SchedulingRules(max_task_duration=-1)

    def test_negative_randomness_raises(self):
        with pytest.raises(ValueError):
            SchedulingRules(randomness_factor=-0.1)


class TestBlockSelection:
    """Tests for day and resource helpers."""

    @pytest.fixture
    def rules(self):
        return SchedulingRules(
            time_blocks=[
                TimeBlock(id="a", day="weekday", start_time="09:00", end_time="12:00",
                          resource_id="work"),
                TimeBlock(id="b", day="monday", start_time="13:00", end_time="15:00"),
                TimeBlock(id="c", day="weekend", start_time="10:00", end_time="11:00",
                          resource_id="home"),
                TimeBlock(id="d", day="all", start_time="18:00", end_time="19:00",
                          enabled=False, resource_id="gym"),
                TimeBlock(id="e", day="tuesday", start_time="08:00", end_time="09:00",
                          resource_id="work"),
            ]
        )

    def test_blocks_for_monday(self, rules):
        assert [b.id for b in rules.blocks_for_day(MONDAY)] == ["a", "b"]

    def test_blocks_for_saturday(self, rules):
        assert [b.id for b in rules.blocks_for_day(SATURDAY)] == ["c"]

    def test_resource_ids_skip_disabled_and_duplicates(self, rules):
        assert rules.resource_ids() == ["work", "home"]

    def test_with_time_blocks_copies(self, rules):
        replaced = rules.with_time_blocks([])
        assert replaced.time_blocks == []
        assert len(rules.time_blocks) == 5
        assert replaced.max_task_duration == rules.max_task_duration


class TestFromDict:
    """Tests for building rules from the camelCase shape."""

    def test_full_document(self):
        rules = SchedulingRules.from_dict(
            {
                "maxTaskDuration": 45,
                "maxLongTaskDuration": 180,
                "longTaskThreshold": 90,
                "priorityWeight": 0.5,
                "timeWeight": 0.5,
                "randomnessFactor": 0,
                "workingDays": {"monday": True, "saturday": True},
                "timeBlocks": [
                    {"id": "x", "day": "all", "startTime": "8:00", "endTime": "10:00",
                     "enabled": True, "resourceId": "r1"}
                ],
                "timezone": "Europe/Berlin",
            }
        )
        assert rules.max_task_duration == 45
        assert rules.max_long_task_duration == 180
        assert rules.long_task_threshold == 90
        assert rules.randomness_factor == 0
        assert rules.working_days[Weekday.SATURDAY]
        assert not rules.working_days[Weekday.TUESDAY]
        assert rules.time_blocks[0].resource_id == "r1"
        assert rules.timezone == "Europe/Berlin"

    def test_empty_document_uses_defaults(self):
        rules = SchedulingRules.from_dict({})
        assert rules == SchedulingRules()

    def test_malformed_working_days_fall_back(self, caplog):
        with caplog.at_level(logging.ERROR):
            rules = SchedulingRules.from_dict({"workingDays": "mon-fri"})
        assert rules.is_working_day(MONDAY)
        assert not rules.is_working_day(SATURDAY)
        assert "workingDays" in caplog.text

    def test_malformed_time_blocks_fall_back(self, caplog):
        with caplog.at_level(logging.ERROR):
            rules = SchedulingRules.from_dict({"timeBlocks": "9-5"})
        assert [b.id for b in rules.time_blocks] == ["1"]
        assert "timeBlocks" in caplog.text

    def test_invalid_block_is_kept_but_marked(self):
        rules = SchedulingRules.from_dict(
            {"timeBlocks": [{"id": "bad", "day": "monday", "startTime": "17:00",
                             "endTime": "09:00"}]}
        )
        assert len(rules.time_blocks) == 1
        assert not rules.time_blocks[0].is_valid

    def test_to_dict_round_trip(self):
        rules = SchedulingRules(max_task_duration=90, timezone="America/New_York")
        assert SchedulingRules.from_dict(rules.to_dict()) == rules
