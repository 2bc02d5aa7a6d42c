"""Slot generator for finding free time in the scheduling window.

This module turns the recurring time blocks of the scheduling rules into
concrete, date-bound free slots, subtracting every booked calendar event
that overlaps a block.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

import pytz

from blockplanner.domain.models import (
    MIN_SLOT_MINUTES,
    BookedEvent,
    TimeBlock,
    TimeSlot,
)
from blockplanner.domain.rules import SchedulingRules

logger = logging.getLogger(__name__)


class SlotGenerator:
    """Generates free time slots for a date range.

    For every working day in the range the generator:
    - Selects the enabled time blocks that apply to the day
    - Falls back to a 09:00-17:00 unscoped block when none apply
    - Subtracts booked events overlapping each block
    - Drops free intervals shorter than ``min_slot_minutes``

    Malformed blocks are skipped and logged, never raised.
    """

    def __init__(
        self,
        min_slot_minutes: int = MIN_SLOT_MINUTES,
        default_start: time = time(9, 0),
        default_end: time = time(17, 0),
    ):
        self.min_slot_minutes = min_slot_minutes
        self.default_start = default_start
        self.default_end = default_end

    def generate_slots(
        self,
        start_date: date,
        end_date: date,
        rules: SchedulingRules,
        booked_events: Sequence[BookedEvent],
        combine_adjacent: bool = False,
    ) -> list[TimeSlot]:
        """Generate free slots for every day in [start_date, end_date].

        Args:
            start_date: First day to schedule (inclusive).
            end_date: Last day to schedule (inclusive).
            rules: Scheduling rules with working days and time blocks.
            booked_events: Events already on the calendar.
            combine_adjacent: Merge same-resource slots that touch.

        Returns:
            Free slots in day order, then block order.
        """
        tz = pytz.timezone(rules.timezone)

        for block in rules.time_blocks:
            if block.enabled and not block.is_valid:
                logger.warning("Skipping invalid time block %r: %s", block, block.invalid_reason)

        slots = []
        current = start_date
        while current <= end_date:
            if not rules.is_working_day(current):
                logger.debug("%s is not a working day, skipping", current)
                current += timedelta(days=1)
                continue

            day_blocks = rules.blocks_for_day(current)
            if not day_blocks:
                logger.debug("No time blocks for %s, using default window", current)
                day_blocks = [self._default_block()]

            for block in day_blocks:
                if not block.is_valid:
                    continue
                slots.extend(self.generate_block_slots(current, block, tz, booked_events))

            current += timedelta(days=1)

        if not slots:
            logger.warning(
                "No time slots generated between %s and %s; check working days and time blocks",
                start_date,
                end_date,
            )
        else:
            logger.debug("Generated %d time slots respecting booked events", len(slots))

        if combine_adjacent:
            slots = combine_adjacent_slots(slots)
        return slots

    def generate_block_slots(
        self,
        day: date,
        block: TimeBlock,
        tz: pytz.BaseTzInfo,
        booked_events: Sequence[BookedEvent],
    ) -> list[TimeSlot]:
        """Generate the free slots of one block on one day.

        Booked events overlapping the block are walked in start order; a
        free interval is emitted before each and after the last.
        """
        block_start = tz.localize(datetime.combine(day, block.start_time))
        block_end = tz.localize(datetime.combine(day, block.end_time))

        conflicts = sorted(
            (event for event in booked_events if event.overlaps(block_start, block_end)),
            key=lambda event: event.start,
        )

        free_intervals = []
        cursor = block_start
        for event in conflicts:
            if event.start > cursor:
                free_intervals.append((cursor, event.start))
            cursor = max(cursor, event.end)
            if cursor >= block_end:
                break
        if cursor < block_end:
            free_intervals.append((cursor, block_end))

        slots = []
        for interval_start, interval_end in free_intervals:
            start_minutes = _local_minutes(interval_start, tz, round_up=True)
            end_minutes = _local_minutes(interval_end, tz, round_up=False)
            if end_minutes - start_minutes < self.min_slot_minutes:
                continue
            slots.append(
                TimeSlot(
                    day=day,
                    start_time=block.start_time,
                    end_time=block.end_time,
                    resource_id=block.resource_id,
                    block_id=block.id,
                ).with_bounds(start_minutes, end_minutes)
            )
        return slots

    def _default_block(self) -> TimeBlock:
        return TimeBlock(
            id="default",
            day="all",
            start_time=self.default_start,
            end_time=self.default_end,
        )


def combine_adjacent_slots(slots: Sequence[TimeSlot]) -> list[TimeSlot]:
    """Merge slots on the same day and resource whose end meets the next start.

    Returns:
        Merged slots in chronological order.
    """
    if not slots:
        return []

    ordered = sorted(slots, key=lambda s: s.sort_key)
    combined = []
    current = ordered[0]
    for nxt in ordered[1:]:
        if (
            nxt.day == current.day
            and nxt.resource_id == current.resource_id
            and nxt.start_minutes == current.end_minutes
        ):
            current = current.with_bounds(current.start_minutes, nxt.end_minutes)
        else:
            combined.append(current)
            current = nxt
    combined.append(current)
    return combined


def _local_minutes(moment: datetime, tz: pytz.BaseTzInfo, round_up: bool) -> int:
    """Minutes from local midnight, rounding partial minutes inward."""
    local = moment.astimezone(tz)
    minutes = local.hour * 60 + local.minute
    if round_up and (local.second or local.microsecond):
        minutes += 1
    return minutes


def total_free_minutes(slots: Sequence[TimeSlot], resource_id: Optional[str] = None) -> int:
    """Sum of slot durations, optionally restricted to slots open to a resource."""
    return sum(
        slot.duration_minutes
        for slot in slots
        if resource_id is None or slot.is_open_to(resource_id)
    )
