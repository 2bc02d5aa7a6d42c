"""Greedy allocator for placing ranked tasks into free slots.

This module implements the greedy allocation approach:
1. Compute each task's required duration (capped, rounded to 15 minutes)
2. Place it in the earliest matching slot that fits
3. Otherwise split long tasks across the largest remaining slots
4. Otherwise place a truncated partial event in the largest slot
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Iterator, Optional, Sequence, Union

import pytz

from blockplanner.domain.models import (
    MIN_SLOT_MINUTES,
    PlacedEvent,
    Priority,
    SchedulableTask,
    TimeSlot,
    time_from_minutes,
)
from blockplanner.domain.policies import (
    DefaultDurationPolicy,
    DefaultSplitPolicy,
    DurationPolicy,
    SplitPolicy,
)
from blockplanner.domain.rules import SchedulingRules
from blockplanner.scheduling.scorer import ScoredTask

logger = logging.getLogger(__name__)

# Calendar colour ids by priority
PRIORITY_COLORS = {
    Priority.HIGH: "11",  # Tomato
    Priority.MEDIUM: "5",  # Banana
    Priority.LOW: "2",  # Sage
}


class AllocationOutcome(Enum):
    """How a task fared in an allocation run."""

    PLACED = "placed"  # One event of the full required duration
    SPLIT = "split"  # Several part events
    PARTIAL = "partial"  # One truncated event
    UNSCHEDULED = "unscheduled"


@dataclass
class TaskAllocation:
    """Allocation record for a single task.

    Attributes:
        task_id: ID of the task.
        outcome: How the task was placed.
        required_minutes: Minutes the task needed after capping and rounding.
        placed_minutes: Minutes actually placed.
        event_ids: IDs of the events created for the task.
    """

    task_id: str
    outcome: AllocationOutcome
    required_minutes: int
    placed_minutes: int = 0
    event_ids: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """True if the full required duration was placed."""
        return self.placed_minutes >= self.required_minutes > 0


@dataclass
class AllocationResult:
    """Output of an allocation run.

    Iterating the result yields the placed events in creation order.
    """

    events: list[PlacedEvent] = field(default_factory=list)
    allocations: dict[str, TaskAllocation] = field(default_factory=dict)
    remaining_slots: list[TimeSlot] = field(default_factory=list)

    def __iter__(self) -> Iterator[PlacedEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    @property
    def tasks_requested(self) -> int:
        return len(self.allocations)

    @property
    def tasks_placed(self) -> int:
        """Tasks with at least one placed event."""
        return sum(
            1 for a in self.allocations.values() if a.outcome != AllocationOutcome.UNSCHEDULED
        )

    @property
    def unscheduled_task_ids(self) -> list[str]:
        return [
            a.task_id
            for a in self.allocations.values()
            if a.outcome == AllocationOutcome.UNSCHEDULED
        ]

    @property
    def placed_minutes(self) -> int:
        return sum(e.duration_minutes for e in self.events)

    def count(self, outcome: AllocationOutcome) -> int:
        """Number of tasks with the given outcome."""
        return sum(1 for a in self.allocations.values() if a.outcome == outcome)

    def events_for_task(self, task_id: str) -> list[PlacedEvent]:
        return [e for e in self.events if e.task_id == task_id]


class SlotPool:
    """Free slots owned by a single allocation run.

    Reserving an interval trims it out of every slot on that day, so
    slots from overlapping time blocks can never be double-booked.
    Fragments shorter than ``min_slot_minutes`` are dropped.
    """

    def __init__(self, slots: Iterable[TimeSlot], min_slot_minutes: int = MIN_SLOT_MINUTES):
        self.slots = list(slots)
        self.min_slot_minutes = min_slot_minutes

    def __len__(self) -> int:
        return len(self.slots)

    def candidates_for(self, resource_id: Optional[str]) -> list[TimeSlot]:
        """Slots open to the resource, in chronological order."""
        return sorted(
            (slot for slot in self.slots if slot.is_open_to(resource_id)),
            key=lambda slot: slot.sort_key,
        )

    def reserve(self, day: date, start_minutes: int, end_minutes: int) -> None:
        """Remove [start_minutes, end_minutes) on a day from the pool."""
        updated = []
        for slot in self.slots:
            if (
                slot.day != day
                or slot.end_minutes <= start_minutes
                or slot.start_minutes >= end_minutes
            ):
                updated.append(slot)
                continue

            # Keep whatever survives on either side, in place
            if start_minutes - slot.start_minutes >= self.min_slot_minutes:
                updated.append(slot.with_bounds(slot.start_minutes, start_minutes))
            if slot.end_minutes - end_minutes >= self.min_slot_minutes:
                updated.append(slot.with_bounds(end_minutes, slot.end_minutes))
        self.slots = updated


class Allocator:
    """Greedy allocator for placing tasks into time slots.

    Tasks are processed in the order given (highest score first). For
    each task:
    1. Candidate slots are the unscoped slots plus those of its resource
    2. The earliest candidate that fits the whole duration is used
    3. Otherwise, if splitting is allowed, parts go into the largest slots
    4. Otherwise the largest candidate gets a truncated partial event
    """

    def __init__(
        self,
        duration_policy: Optional[DurationPolicy] = None,
        split_policy: Optional[SplitPolicy] = None,
        resource_colors: Optional[dict[str, str]] = None,
        min_slot_minutes: int = MIN_SLOT_MINUTES,
    ):
        """Initialize allocator with policies.

        Args:
            duration_policy: Policy for capping and rounding durations.
                When None, one is built from the rules of each run.
            split_policy: Policy for splitting long tasks.
            resource_colors: Optional resource id -> calendar colour id.
            min_slot_minutes: Shortest usable slot or partial event.
        """
        self.duration_policy = duration_policy
        self.split_policy = split_policy or DefaultSplitPolicy()
        self.resource_colors = resource_colors or {}
        self.min_slot_minutes = min_slot_minutes

    def allocate(
        self,
        ranked_tasks: Sequence[Union[ScoredTask, SchedulableTask]],
        slots: Sequence[TimeSlot],
        rules: SchedulingRules,
    ) -> AllocationResult:
        """Place ranked tasks into slots.

        Args:
            ranked_tasks: Tasks (or scored tasks) in allocation order.
            slots: Free slots; copied, never modified.
            rules: Rules providing caps and the timezone.

        Returns:
            AllocationResult with placed events and per-task outcomes.
        """
        duration_policy = self.duration_policy or DefaultDurationPolicy.from_rules(rules)
        tz = pytz.timezone(rules.timezone)
        pool = SlotPool(slots, self.min_slot_minutes)
        result = AllocationResult()

        for item in ranked_tasks:
            task = item.task if isinstance(item, ScoredTask) else item
            if task.completed:
                continue

            required = duration_policy.get_required_duration(task.duration_minutes)
            allocation = self._allocate_task(task, required, pool, tz, rules.timezone, result)
            result.allocations[task.id] = allocation

        result.remaining_slots = list(pool.slots)

        logger.info(
            "Allocated %d of %d tasks into %d events",
            result.tasks_placed,
            result.tasks_requested,
            len(result.events),
        )
        return result

    def _allocate_task(
        self,
        task: SchedulableTask,
        required: int,
        pool: SlotPool,
        tz: pytz.BaseTzInfo,
        tz_name: str,
        result: AllocationResult,
    ) -> TaskAllocation:
        """Allocate a single task, appending its events to the result."""
        allocation = TaskAllocation(
            task_id=task.id,
            outcome=AllocationOutcome.UNSCHEDULED,
            required_minutes=required,
        )

        candidates = pool.candidates_for(task.resource_id)
        if required <= 0 or not candidates:
            logger.debug("No candidate slots for task %s", task.id)
            return allocation

        # Single slot: earliest candidate that fits the whole duration
        for slot in candidates:
            if slot.duration_minutes >= required:
                event = self._build_event(
                    task, slot, slot.start_minutes, slot.start_minutes + required,
                    tz, tz_name, required,
                )
                pool.reserve(slot.day, slot.start_minutes, slot.start_minutes + required)
                self._record(allocation, event, result)
                allocation.outcome = AllocationOutcome.PLACED
                return allocation

        if self.split_policy.allows_split(required):
            self._split_task(task, required, pool, tz, tz_name, allocation, result)
            return allocation

        # Partial fallback: the whole of the largest candidate
        largest = max(candidates, key=lambda s: s.duration_minutes)
        if largest.duration_minutes < self.min_slot_minutes:
            return allocation

        event = self._build_event(
            task, largest, largest.start_minutes, largest.end_minutes,
            tz, tz_name, required, partial=True,
        )
        pool.reserve(largest.day, largest.start_minutes, largest.end_minutes)
        self._record(allocation, event, result)
        allocation.outcome = AllocationOutcome.PARTIAL
        return allocation

    def _split_task(
        self,
        task: SchedulableTask,
        required: int,
        pool: SlotPool,
        tz: pytz.BaseTzInfo,
        tz_name: str,
        allocation: TaskAllocation,
        result: AllocationResult,
    ) -> None:
        """Place a task as parts, each in the largest remaining candidate.

        Parts of one task never touch each other; a candidate whose
        placement would continue or precede an earlier part is skipped.
        """
        max_part = self.split_policy.get_max_part_minutes()
        remaining = required
        placed_parts: list[tuple[date, int, int]] = []
        part_number = 0

        while remaining > 0:
            usable = []
            for slot in pool.candidates_for(task.resource_id):
                length = min(slot.duration_minutes, max_part, remaining)
                if not _touches_any(placed_parts, slot.day, slot.start_minutes,
                                    slot.start_minutes + length):
                    usable.append(slot)
            if not usable:
                break

            slot = max(usable, key=lambda s: s.duration_minutes)
            length = min(slot.duration_minutes, max_part, remaining)
            part_number += 1

            start_minutes = slot.start_minutes
            end_minutes = start_minutes + length
            event = self._build_event(
                task, slot, start_minutes, end_minutes, tz, tz_name, required,
                part=part_number,
            )
            pool.reserve(slot.day, start_minutes, end_minutes)
            self._record(allocation, event, result)
            placed_parts.append((slot.day, start_minutes, end_minutes))
            remaining -= length

        if part_number:
            allocation.outcome = AllocationOutcome.SPLIT
            if remaining > 0:
                logger.debug(
                    "Task %s split into %d parts, %d of %d minutes unplaced",
                    task.id, part_number, remaining, required,
                )

    def _record(
        self,
        allocation: TaskAllocation,
        event: PlacedEvent,
        result: AllocationResult,
    ) -> None:
        allocation.placed_minutes += event.duration_minutes
        allocation.event_ids.append(event.id)
        result.events.append(event)

    def _build_event(
        self,
        task: SchedulableTask,
        slot: TimeSlot,
        start_minutes: int,
        end_minutes: int,
        tz: pytz.BaseTzInfo,
        tz_name: str,
        required: int,
        part: Optional[int] = None,
        partial: bool = False,
    ) -> PlacedEvent:
        """Create the calendar event for a placement."""
        start = tz.localize(datetime.combine(slot.day, time_from_minutes(start_minutes)))
        end = tz.localize(datetime.combine(slot.day, time_from_minutes(end_minutes)))
        priority = task.effective_priority

        event_id = f"scheduled-{task.id}"
        title = task.title
        if part is not None:
            event_id = f"{event_id}-part{part}"
            title = f"{task.title} (Part {part})"
        elif partial:
            title = f"{task.title} (Partial)"

        lines = [
            f"Task: {task.title}",
            f"Task ID: {task.id}",
            f"Priority: {priority.value}",
        ]
        if task.resource_id:
            lines.append(f"Resource: {task.resource_id}")
        if part is not None:
            lines.append(f"Part {part} of a split task ({required} minutes required)")
        if partial:
            lines.append(
                f"Partially scheduled: {end_minutes - start_minutes} of {required} minutes"
            )

        color_id = (
            self.resource_colors.get(slot.resource_id or task.resource_id or "")
            or PRIORITY_COLORS[priority]
        )

        return PlacedEvent(
            id=event_id,
            title=title,
            start=start,
            end=end,
            time_zone=tz_name,
            description="\n".join(lines),
            color_id=color_id,
            category=priority.value,
            task_id=task.id,
            part=part,
            is_partial=partial,
            slot_resource_id=slot.resource_id,
        )


def _touches_any(
    parts: list[tuple[date, int, int]],
    day: date,
    start_minutes: int,
    end_minutes: int,
) -> bool:
    """Check if an interval would touch or overlap any placed part."""
    return any(
        part_day == day and start_minutes <= part_end and end_minutes >= part_start
        for part_day, part_start, part_end in parts
    )
