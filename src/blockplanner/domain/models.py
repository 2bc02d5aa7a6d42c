"""Domain models for the scheduling engine.

This module contains the core data structures used throughout the
engine, including weekdays and block day selectors, recurring time
blocks, schedulable tasks, booked events, free time slots and the
placed events the allocator produces.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Union

SLOT_GRANULARITY_MINUTES = 15  # Scheduling granularity throughout the engine
MIN_SLOT_MINUTES = 15  # Free intervals shorter than this are not schedulable
DEFAULT_TASK_DURATION = 30  # Minutes, when a task has no estimate

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class Weekday(Enum):
    """Days of the week, in ``date.weekday()`` order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, d: date) -> "Weekday":
        """Get the weekday of a calendar date."""
        return list(cls)[d.weekday()]

    @property
    def is_weekend(self) -> bool:
        """True for Saturday and Sunday."""
        return self in (Weekday.SATURDAY, Weekday.SUNDAY)


class BlockDay(Enum):
    """Which days a recurring time block applies to.

    Either a specific weekday or one of the group selectors.
    """

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    WEEKDAY = "weekday"  # Monday - Friday
    WEEKEND = "weekend"  # Saturday - Sunday
    ALL = "all"

    @classmethod
    def parse(cls, value: str) -> "BlockDay":
        """Parse a day selector, case-insensitively.

        Raises:
            ValueError: If the value names no known selector.
        """
        return cls(value.strip().lower())

    def matches(self, weekday: Weekday) -> bool:
        """Check if this selector covers the given weekday."""
        if self is BlockDay.ALL:
            return True
        if self is BlockDay.WEEKDAY:
            return not weekday.is_weekend
        if self is BlockDay.WEEKEND:
            return weekday.is_weekend
        return self.value == weekday.value


class Priority(Enum):
    """Task priority levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def ordinal(self) -> int:
        """Ordinal weight used in scoring (1 = high, 3 = low)."""
        return {Priority.HIGH: 1, Priority.MEDIUM: 2, Priority.LOW: 3}[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Priority"]:
        """Parse a priority string. Unknown or empty values give None."""
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class ScheduleScope(Enum):
    """Which set of time blocks a scheduling run uses."""

    IDEAL_WEEK = "ideal-week"  # Named recurring template
    THIS_WEEK = "this-week"  # Live current-week configuration

    @property
    def label(self) -> str:
        """Human-readable name of the scope."""
        if self is ScheduleScope.IDEAL_WEEK:
            return "Ideal Week Schedule"
        return "This Week Schedule"


def parse_time_of_day(text: str) -> time:
    """Parse an ``H:MM`` or ``HH:MM`` 24-hour time string.

    Raises:
        ValueError: If the string is malformed or out of range.
    """
    match = _TIME_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"Invalid time format: {text!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid hours/minutes: {text!r}")
    return time(hour=hour, minute=minute)


def format_time_of_day(t: time) -> str:
    """Format a time as ``HH:MM``."""
    return t.strftime("%H:%M")


def minutes_of_day(t: time) -> int:
    """Minutes from midnight for a time of day."""
    return t.hour * 60 + t.minute


def time_from_minutes(minutes: int) -> time:
    """Time of day for a count of minutes from midnight."""
    hours, mins = divmod(minutes, 60)
    return time(hour=hours, minute=mins)


@dataclass
class TimeBlock:
    """A recurring availability window from the scheduling rules.

    String inputs are parsed once, on construction. A block whose day or
    times cannot be parsed, or whose start is not before its end, is kept
    but marked invalid so slot generation can skip and report it.

    Attributes:
        id: Identifier of the block.
        day: Day selector (weekday name, "weekday", "weekend" or "all").
        start_time: Start of the window.
        end_time: End of the window (exclusive).
        enabled: Disabled blocks are never scheduled into.
        resource_id: Optional resource association; tasks of other
            resources may not use slots from this block.
        invalid_reason: Why the block is unusable, or None when valid.
    """

    id: str
    day: Union[BlockDay, str]
    start_time: Union[time, str]
    end_time: Union[time, str]
    enabled: bool = True
    resource_id: Optional[str] = None
    invalid_reason: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not self.resource_id:
            self.resource_id = None

        if isinstance(self.day, str):
            try:
                self.day = BlockDay.parse(self.day)
            except ValueError:
                self.invalid_reason = f"unknown day {self.day!r}"

        for attr in ("start_time", "end_time"):
            value = getattr(self, attr)
            if isinstance(value, str):
                try:
                    setattr(self, attr, parse_time_of_day(value))
                except ValueError as exc:
                    self.invalid_reason = self.invalid_reason or str(exc)

        if self.invalid_reason is None and self.start_time >= self.end_time:
            self.invalid_reason = "end time must be after start time"

    @property
    def is_valid(self) -> bool:
        """True if the block can produce slots."""
        return self.invalid_reason is None

    def matches(self, weekday: Weekday) -> bool:
        """Check if this block is enabled and applies to the weekday."""
        if not self.enabled or not isinstance(self.day, BlockDay):
            return False
        return self.day.matches(weekday)

    @property
    def duration_minutes(self) -> int:
        """Length of the window in minutes (0 when invalid)."""
        if not self.is_valid:
            return 0
        return minutes_of_day(self.end_time) - minutes_of_day(self.start_time)

    def to_dict(self) -> dict:
        """Serialize to the camelCase wire shape."""

        def _text(value: Union[time, str]) -> str:
            return format_time_of_day(value) if isinstance(value, time) else value

        data = {
            "id": self.id,
            "day": self.day.value if isinstance(self.day, BlockDay) else self.day,
            "startTime": _text(self.start_time),
            "endTime": _text(self.end_time),
            "enabled": self.enabled,
        }
        if self.resource_id:
            data["resourceId"] = self.resource_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TimeBlock":
        """Build a block from its camelCase wire shape."""
        return cls(
            id=str(data.get("id", "")),
            day=str(data.get("day", "")),
            start_time=str(data.get("startTime", "")),
            end_time=str(data.get("endTime", "")),
            enabled=bool(data.get("enabled", True)),
            resource_id=data.get("resourceId") or data.get("databaseId") or None,
        )

    def __repr__(self) -> str:
        day = self.day.value if isinstance(self.day, BlockDay) else self.day
        start = self.start_time.strftime("%H:%M") if isinstance(self.start_time, time) else self.start_time
        end = self.end_time.strftime("%H:%M") if isinstance(self.end_time, time) else self.end_time
        return f"TimeBlock({self.id}: {day} {start}-{end})"


@dataclass(frozen=True)
class SchedulableTask:
    """A pending task read from the task store.

    The scheduler never mutates tasks; per-run scores are carried by
    ``ScoredTask`` instead.

    Attributes:
        id: Unique identifier of the task.
        title: Display title.
        completed: Completed tasks are never scheduled.
        estimated_duration: Estimated minutes; None or 0 means 30.
        priority: Optional priority, unset is treated as low.
        resource_id: Resource association used to match scoped slots.
    """

    id: str
    title: str
    completed: bool = False
    estimated_duration: Optional[int] = DEFAULT_TASK_DURATION
    priority: Optional[Priority] = None
    resource_id: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.priority, str):
            object.__setattr__(self, "priority", Priority.parse(self.priority))
        if not self.resource_id:
            object.__setattr__(self, "resource_id", None)

    @property
    def duration_minutes(self) -> int:
        """Estimated duration with the 30-minute default applied."""
        return self.estimated_duration or DEFAULT_TASK_DURATION

    @property
    def effective_priority(self) -> Priority:
        """Priority with the low default applied."""
        return self.priority or Priority.LOW


@dataclass(frozen=True)
class BookedEvent:
    """An event already on the calendar.

    Attributes:
        id: Calendar identifier of the event.
        start: Timezone-aware start instant.
        end: Timezone-aware end instant.
        summary: Optional title.
    """

    id: str
    start: datetime
    end: datetime
    summary: str = ""

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError(f"Event {self.id} must have timezone-aware start and end")

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Check if this event intersects the half-open interval [start, end)."""
        return self.start < end and self.end > start


@dataclass(frozen=True)
class TimeSlot:
    """A concrete free interval on one calendar day.

    Slots are created fresh for each scheduling run and replaced, never
    edited, as the allocator consumes them.

    Attributes:
        day: Calendar date of the slot.
        start_time: Start time of day.
        end_time: End time of day (exclusive).
        resource_id: Resource inherited from the originating time block.
        block_id: Identifier of the originating time block.
    """

    day: date
    start_time: time
    end_time: time
    resource_id: Optional[str] = None
    block_id: Optional[str] = None

    @property
    def start_minutes(self) -> int:
        """Minutes from midnight when the slot starts."""
        return minutes_of_day(self.start_time)

    @property
    def end_minutes(self) -> int:
        """Minutes from midnight when the slot ends."""
        return minutes_of_day(self.end_time)

    @property
    def duration_minutes(self) -> int:
        """Length of the slot in minutes."""
        return self.end_minutes - self.start_minutes

    @property
    def sort_key(self) -> tuple[date, time]:
        """Chronological ordering key."""
        return (self.day, self.start_time)

    def is_open_to(self, resource_id: Optional[str]) -> bool:
        """Check if a task with the given resource may use this slot."""
        return self.resource_id is None or self.resource_id == resource_id

    def with_bounds(self, start_minutes: int, end_minutes: int) -> "TimeSlot":
        """Copy of this slot with new start/end (minutes from midnight)."""
        return replace(
            self,
            start_time=time_from_minutes(start_minutes),
            end_time=time_from_minutes(end_minutes),
        )

    def __repr__(self) -> str:
        scope = f" [{self.resource_id}]" if self.resource_id else ""
        return (
            f"TimeSlot({self.day} {self.start_time.strftime('%H:%M')}-"
            f"{self.end_time.strftime('%H:%M')}{scope})"
        )


@dataclass
class PlacedEvent:
    """A task placement produced by the allocator.

    Attributes:
        id: Synthesized identifier, suffixed ``-partN`` for split tasks.
        title: Event title (task title plus part/partial marker).
        start: Timezone-aware start instant.
        end: Timezone-aware end instant.
        time_zone: IANA name of the zone the instants are expressed in.
        description: Traceability text including the source task id.
        color_id: Calendar colour id derived from priority or resource.
        category: Category tag (the task's priority value).
        task_id: Identifier of the source task.
        part: Part number when the task was split, else None.
        is_partial: True when truncated below the required duration.
        slot_resource_id: Resource of the slot the event was placed in.
    """

    id: str
    title: str
    start: datetime
    end: datetime
    time_zone: str = "UTC"
    description: str = ""
    color_id: Optional[str] = None
    category: Optional[str] = None
    task_id: str = ""
    part: Optional[int] = None
    is_partial: bool = False
    slot_resource_id: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        """Length of the event in minutes."""
        return int((self.end - self.start).total_seconds() // 60)

    @property
    def day(self) -> date:
        """Calendar date of the event start."""
        return self.start.date()

    @property
    def is_split_part(self) -> bool:
        """True if this event is one part of a split task."""
        return self.part is not None

    def to_dict(self) -> dict:
        """Serialize to the calendar event wire shape."""
        data = {
            "id": self.id,
            "summary": self.title,
            "description": self.description,
            "start": {"dateTime": self.start.isoformat(), "timeZone": self.time_zone},
            "end": {"dateTime": self.end.isoformat(), "timeZone": self.time_zone},
            "taskId": self.task_id,
            "isPartial": self.is_partial,
        }
        if self.color_id:
            data["colorId"] = self.color_id
        if self.category:
            data["category"] = self.category
        if self.part is not None:
            data["part"] = self.part
        if self.slot_resource_id:
            data["resourceId"] = self.slot_resource_id
        return data

    def __repr__(self) -> str:
        return (
            f"PlacedEvent({self.title}: {self.start.strftime('%Y-%m-%d %H:%M')}-"
            f"{self.end.strftime('%H:%M')})"
        )
