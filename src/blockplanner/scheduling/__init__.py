"""Scheduling engine for placing tasks into free time."""

from blockplanner.scheduling.allocator import (
    PRIORITY_COLORS,
    AllocationOutcome,
    AllocationResult,
    Allocator,
    SlotPool,
    TaskAllocation,
)
from blockplanner.scheduling.scheduler import (
    Scheduler,
    SchedulingState,
    UploadFailure,
    UploadResult,
)
from blockplanner.scheduling.scorer import ScoredTask, TaskScorer
from blockplanner.scheduling.slot_generator import (
    SlotGenerator,
    combine_adjacent_slots,
    total_free_minutes,
)

__all__ = [
    # Facade
    "Scheduler",
    "SchedulingState",
    "UploadFailure",
    "UploadResult",
    # Pipeline stages
    "SlotGenerator",
    "TaskScorer",
    "ScoredTask",
    "Allocator",
    "SlotPool",
    # Allocation results
    "AllocationOutcome",
    "AllocationResult",
    "TaskAllocation",
    "PRIORITY_COLORS",
    # Helpers
    "combine_adjacent_slots",
    "total_free_minutes",
]
