"""Validation module for verifying placement correctness.

This module checks a set of placed events against the booked calendar
and the scheduling rules. Every preview should pass validation before
it is uploaded.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from blockplanner.domain.models import (
    SLOT_GRANULARITY_MINUTES,
    BookedEvent,
    PlacedEvent,
    SchedulableTask,
)
from blockplanner.domain.policies import (
    DefaultDurationPolicy,
    DefaultSplitPolicy,
    DurationPolicy,
    SplitPolicy,
)
from blockplanner.domain.rules import SchedulingRules


class ValidationErrorType(Enum):
    """Types of validation errors."""

    OVERLAPS_BOOKED_EVENT = "overlaps_booked_event"
    OVERLAPS_PLACEMENT = "overlaps_placement"
    INVALID_DURATION = "invalid_duration"
    OFF_GRANULARITY = "off_granularity"
    CAP_EXCEEDED = "cap_exceeded"
    PART_TOO_LONG = "part_too_long"
    RESOURCE_MISMATCH = "resource_mismatch"
    NON_WORKING_DAY = "non_working_day"
    UNKNOWN_TASK = "unknown_task"


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    event_id: Optional[str] = None
    task_id: Optional[str] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.event_id:
            parts.append(f"Event {self.event_id}:")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a set of placements."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def errors_of_type(self, error_type: ValidationErrorType) -> list[ValidationError]:
        return [e for e in self.errors if e.error_type == error_type]


class PlacementValidator:
    """Validates placed events against the calendar and the rules.

    Checks:
    - No placement overlaps a booked event or another placement
    - Durations are positive multiples of 15 minutes (partial events
      and split parts may end at an unaligned slot boundary)
    - Whole placements respect the duration caps, parts the part cap
    - No placement sits in a slot scoped to a different resource
    - Placements fall on working days

    Example:
        >>> validator = PlacementValidator()
        >>> result = validator.validate(events, rules, booked, tasks_map)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def __init__(
        self,
        duration_policy: Optional[DurationPolicy] = None,
        split_policy: Optional[SplitPolicy] = None,
        granularity: int = SLOT_GRANULARITY_MINUTES,
    ):
        self.duration_policy = duration_policy
        self.split_policy = split_policy or DefaultSplitPolicy()
        self.granularity = granularity

    def validate(
        self,
        events: Sequence[PlacedEvent],
        rules: SchedulingRules,
        booked_events: Sequence[BookedEvent] = (),
        tasks_map: Optional[dict[str, SchedulableTask]] = None,
    ) -> ValidationResult:
        """Validate a complete set of placements.

        Args:
            events: The placed events to validate.
            rules: Rules the placements were computed from.
            booked_events: Events already on the calendar.
            tasks_map: Dict mapping task IDs to tasks. Cap and resource
                checks are skipped when None.

        Returns:
            ValidationResult with is_valid flag and any errors.
        """
        result = ValidationResult(is_valid=True)
        duration_policy = self.duration_policy or DefaultDurationPolicy.from_rules(rules)

        for event in events:
            self._validate_event(event, rules, booked_events, result)
            if tasks_map is not None:
                task = tasks_map.get(event.task_id)
                if task is None:
                    result.add_error(
                        ValidationError(
                            error_type=ValidationErrorType.UNKNOWN_TASK,
                            message=f"Unknown task ID: {event.task_id}",
                            event_id=event.id,
                            task_id=event.task_id,
                        )
                    )
                    continue
                self._validate_against_task(event, task, duration_policy, result)

        self._validate_no_mutual_overlap(events, result)

        return result

    def _validate_event(
        self,
        event: PlacedEvent,
        rules: SchedulingRules,
        booked_events: Sequence[BookedEvent],
        result: ValidationResult,
    ) -> None:
        """Validate a single placed event on its own."""
        duration = event.duration_minutes
        if duration <= 0:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.INVALID_DURATION,
                    message=f"Duration {duration} min is not positive",
                    event_id=event.id,
                    task_id=event.task_id,
                )
            )
            return

        # Partial events and split parts may fill an unaligned slot
        if not (event.is_partial or event.is_split_part) and duration % self.granularity:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.OFF_GRANULARITY,
                    message=(
                        f"Duration {duration} min is not a multiple of "
                        f"{self.granularity} min"
                    ),
                    event_id=event.id,
                    task_id=event.task_id,
                    details={"duration": duration},
                )
            )

        if not rules.is_working_day(event.day):
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.NON_WORKING_DAY,
                    message=f"Placed on non-working day {event.day}",
                    event_id=event.id,
                    task_id=event.task_id,
                )
            )

        for booked in booked_events:
            if booked.overlaps(event.start, event.end):
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.OVERLAPS_BOOKED_EVENT,
                        message=f"Overlaps booked event {booked.id}",
                        event_id=event.id,
                        task_id=event.task_id,
                        details={"booked_event_id": booked.id},
                    )
                )

    def _validate_against_task(
        self,
        event: PlacedEvent,
        task: SchedulableTask,
        duration_policy: DurationPolicy,
        result: ValidationResult,
    ) -> None:
        """Validate caps and resource matching against the source task."""
        duration = event.duration_minutes

        if event.is_split_part:
            max_part = self.split_policy.get_max_part_minutes()
            if duration > max_part:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.PART_TOO_LONG,
                        message=f"Part of {duration} min exceeds part cap {max_part} min",
                        event_id=event.id,
                        task_id=task.id,
                    )
                )
        elif not event.is_partial:
            cap = duration_policy.get_required_duration(task.duration_minutes)
            if duration > cap:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.CAP_EXCEEDED,
                        message=f"Duration {duration} min exceeds cap {cap} min",
                        event_id=event.id,
                        task_id=task.id,
                        details={"duration": duration, "cap": cap},
                    )
                )

        if event.slot_resource_id and event.slot_resource_id != task.resource_id:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.RESOURCE_MISMATCH,
                    message=(
                        f"Placed in a slot of resource {event.slot_resource_id} "
                        f"but task belongs to {task.resource_id or 'no resource'}"
                    ),
                    event_id=event.id,
                    task_id=task.id,
                )
            )

    def _validate_no_mutual_overlap(
        self,
        events: Sequence[PlacedEvent],
        result: ValidationResult,
    ) -> None:
        """Check that no two placements overlap each other."""
        ordered = sorted(events, key=lambda e: e.start)
        for i, first in enumerate(ordered):
            for second in ordered[i + 1 :]:
                if second.start >= first.end:
                    break
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.OVERLAPS_PLACEMENT,
                        message=f"Overlaps placement {second.id}",
                        event_id=first.id,
                        details={"other_event_id": second.id},
                    )
                )
