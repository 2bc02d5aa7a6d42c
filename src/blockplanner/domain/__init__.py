"""Domain models and business rules for task scheduling."""

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
)
from blockplanner.domain.policies import (
    DefaultDurationPolicy,
    DefaultSplitPolicy,
    DurationPolicy,
    SplitPolicy,
)
from blockplanner.domain.rules import SchedulingRules

__all__ = [
    # Models
    "BlockDay",
    "BookedEvent",
    "PlacedEvent",
    "Priority",
    "SchedulableTask",
    "ScheduleScope",
    "TimeBlock",
    "TimeSlot",
    "Weekday",
    # Rules
    "SchedulingRules",
    # Policies
    "DefaultDurationPolicy",
    "DefaultSplitPolicy",
    "DurationPolicy",
    "SplitPolicy",
]
