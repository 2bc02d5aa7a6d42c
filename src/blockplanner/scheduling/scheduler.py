"""Main scheduler interface.

This module provides the high-level Scheduler class that orchestrates
rule loading, task and event fetching, scoring, slot generation and
allocation, and the upload of a computed preview.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional, Sequence, Union

import pytz

from blockplanner.domain.models import (
    BookedEvent,
    PlacedEvent,
    SchedulableTask,
    ScheduleScope,
)
from blockplanner.domain.rules import SchedulingRules
from blockplanner.errors import SchedulingError
from blockplanner.integrations.ports import EventSink, EventSource, RulesSource, TaskSource
from blockplanner.scheduling.allocator import AllocationOutcome, AllocationResult, Allocator
from blockplanner.scheduling.scorer import TaskScorer
from blockplanner.scheduling.slot_generator import SlotGenerator, total_free_minutes

logger = logging.getLogger(__name__)


class SchedulingState(Enum):
    """Lifecycle of a scheduler's most recent run."""

    IDLE = "idle"
    GENERATING = "generating"
    PREVIEW_READY = "preview_ready"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    FAILED = "failed"


@dataclass
class UploadFailure:
    """A placed event the calendar refused."""

    event_id: str
    title: str
    error: str


@dataclass
class UploadResult:
    """Tally of an upload batch.

    Attributes:
        total_uploaded: Events created on the calendar.
        failed_uploads: Events whose create call failed.
        total_events: Events in the batch.
        failures: Details of every failed event.
        created: Calendar events returned by successful creates.
    """

    total_uploaded: int = 0
    failed_uploads: int = 0
    total_events: int = 0
    failures: list[UploadFailure] = field(default_factory=list)
    created: list[BookedEvent] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """True if every event in the batch was created."""
        return self.failed_uploads == 0

    def to_dict(self) -> dict:
        return {
            "totalUploaded": self.total_uploaded,
            "failedUploads": self.failed_uploads,
            "totalEvents": self.total_events,
            "failures": [
                {"eventId": f.event_id, "title": f.title, "error": f.error}
                for f in self.failures
            ],
        }


class Scheduler:
    """High-level scheduler for previewing and uploading task placements.

    The Scheduler fetches everything a run needs from its collaborators,
    then runs the scorer, the slot generator and the allocator in turn.
    Nothing is cached between runs; each preview is recomputed fresh.

    Example:
        >>> scheduler = Scheduler(tasks, calendar, rules, event_sink=calendar)
        >>> events = scheduler.schedule_preview("user-1", "this-week", date(2024, 1, 15))
        >>> result = scheduler.schedule_upload("user-1", events)
    """

    def __init__(
        self,
        task_source: TaskSource,
        event_source: EventSource,
        rules_source: RulesSource,
        event_sink: Optional[EventSink] = None,
        scorer: Optional[TaskScorer] = None,
        slot_generator: Optional[SlotGenerator] = None,
        allocator: Optional[Allocator] = None,
    ):
        """Initialize scheduler with collaborators.

        Args:
            task_source: Source of pending tasks.
            event_source: Source of already-booked calendar events.
            rules_source: Source of rules and time blocks.
            event_sink: Calendar writer, required only for uploads.
            scorer: Task scorer (unseeded randomness when None).
            slot_generator: Slot generator.
            allocator: Allocator.
        """
        self.task_source = task_source
        self.event_source = event_source
        self.rules_source = rules_source
        self.event_sink = event_sink
        self.scorer = scorer or TaskScorer()
        self.slot_generator = slot_generator or SlotGenerator()
        self.allocator = allocator or Allocator()

        self.state = SchedulingState.IDLE
        self.last_result: Optional[AllocationResult] = None

    def schedule_preview(
        self,
        user_id: str,
        scope: Union[ScheduleScope, str],
        start_date: date,
        days_ahead: int = 7,
    ) -> list[PlacedEvent]:
        """Compute placements for a user without writing anything.

        Args:
            user_id: Owner of the tasks, rules and calendar.
            scope: Which time block set to use ("ideal-week" or "this-week").
            start_date: First day to schedule.
            days_ahead: Days after start_date to include (inclusive).

        Returns:
            Placed events in allocation order. Empty if nothing could be placed.

        Raises:
            SchedulingError: If a collaborator fetch fails for any reason.
        """
        events, _ = self.schedule_preview_with_stats(user_id, scope, start_date, days_ahead)
        return events

    def schedule_preview_with_stats(
        self,
        user_id: str,
        scope: Union[ScheduleScope, str],
        start_date: date,
        days_ahead: int = 7,
    ) -> tuple[list[PlacedEvent], dict]:
        """Compute placements and return statistics about the run.

        Returns:
            Tuple of (events, stats_dict).
        """
        scope = _parse_scope(scope)
        if days_ahead < 0:
            raise ValueError("days_ahead must be >= 0")
        end_date = start_date + timedelta(days=days_ahead)

        self.state = SchedulingState.GENERATING
        self.last_result = None
        try:
            rules = self.rules_source.get_rules(user_id)
            time_blocks = self.rules_source.get_time_blocks(user_id, scope)
        except Exception as exc:
            raise self._failure(
                f"Could not load scheduling rules for user {user_id}", user_id, exc
            ) from exc

        if not time_blocks:
            logger.info("No time blocks for user %s in scope %s", user_id, scope.value)
            self.last_result = AllocationResult()
            self.state = SchedulingState.PREVIEW_READY
            return [], self._calculate_stats(self.last_result, [], [], 0, scope)

        rules = rules.with_time_blocks(time_blocks)

        try:
            tasks = self._fetch_tasks(user_id, rules)
            booked = self._fetch_events(user_id, rules, start_date, end_date)
        except Exception as exc:
            raise self._failure(
                f"Could not fetch tasks or events for user {user_id}", user_id, exc
            ) from exc

        ranked = self.scorer.rank(tasks, rules)
        slots = self.slot_generator.generate_slots(start_date, end_date, rules, booked)
        result = self.allocator.allocate(ranked, slots, rules)

        self.last_result = result
        self.state = SchedulingState.PREVIEW_READY
        logger.info(
            "Preview for user %s (%s): %d events from %d tasks",
            user_id,
            scope.label,
            len(result),
            len(ranked),
        )
        return list(result.events), self._calculate_stats(result, slots, booked, len(tasks), scope)

    def schedule_upload(self, user_id: str, events: Sequence[PlacedEvent]) -> UploadResult:
        """Write previously computed events to the calendar.

        One create call is made per event. A failed create, whatever the
        error, is recorded and the remaining events are still attempted.

        Raises:
            SchedulingError: If the scheduler has no event sink.
        """
        if self.event_sink is None:
            raise SchedulingError("No event sink configured for uploads", user_id)

        self.state = SchedulingState.UPLOADING
        result = UploadResult(total_events=len(events))

        for event in events:
            try:
                created = self.event_sink.create_event(user_id, event)
            except Exception as exc:
                logger.error("Failed to upload event %s: %s", event.id, exc)
                result.failed_uploads += 1
                result.failures.append(
                    UploadFailure(event.id, event.title, str(exc) or type(exc).__name__)
                )
                continue
            result.total_uploaded += 1
            result.created.append(created)

        if events and result.total_uploaded == 0:
            self.state = SchedulingState.FAILED
        else:
            self.state = SchedulingState.UPLOADED

        logger.info(
            "Uploaded %d of %d events for user %s (%d failed)",
            result.total_uploaded,
            result.total_events,
            user_id,
            result.failed_uploads,
        )
        return result

    def _fetch_tasks(self, user_id: str, rules: SchedulingRules) -> list[SchedulableTask]:
        """Fetch incomplete tasks for the resources the blocks reference.

        With no resource references, or when the filtered query comes
        back empty, all incomplete tasks of the user are used.
        """
        resource_ids = rules.resource_ids()
        if not resource_ids:
            return self.task_source.list_incomplete_tasks(user_id)

        tasks = self.task_source.list_incomplete_tasks(user_id, resource_filter=resource_ids)
        if not tasks:
            logger.warning(
                "No tasks for resources %s, broadening to all incomplete tasks of user %s",
                ", ".join(resource_ids),
                user_id,
            )
            tasks = self.task_source.list_incomplete_tasks(user_id)
        return tasks

    def _fetch_events(
        self,
        user_id: str,
        rules: SchedulingRules,
        start_date: date,
        end_date: date,
    ) -> list[BookedEvent]:
        """Fetch booked events covering whole days of the range."""
        tz = pytz.timezone(rules.timezone)
        window_start = tz.localize(datetime.combine(start_date, time.min))
        window_end = tz.localize(datetime.combine(end_date + timedelta(days=1), time.min))
        return self.event_source.list_events(user_id, window_start, window_end)

    def _failure(self, message: str, user_id: str, cause: Exception) -> SchedulingError:
        self.state = SchedulingState.FAILED
        logger.error("%s: %s", message, cause)
        return SchedulingError(message, user_id)

    def _calculate_stats(
        self,
        result: AllocationResult,
        slots: list,
        booked: list[BookedEvent],
        tasks_fetched: int,
        scope: ScheduleScope,
    ) -> dict:
        """Calculate preview statistics."""
        return {
            "scope": scope.value,
            "tasks_fetched": tasks_fetched,
            "tasks_requested": result.tasks_requested,
            "tasks_placed": result.tasks_placed,
            "tasks_split": result.count(AllocationOutcome.SPLIT),
            "tasks_partial": result.count(AllocationOutcome.PARTIAL),
            "tasks_unscheduled": result.count(AllocationOutcome.UNSCHEDULED),
            "events": len(result),
            "slot_count": len(slots),
            "free_minutes": total_free_minutes(slots),
            "placed_minutes": result.placed_minutes,
            "booked_events": len(booked),
        }


def _parse_scope(scope: Union[ScheduleScope, str]) -> ScheduleScope:
    if isinstance(scope, ScheduleScope):
        return scope
    try:
        return ScheduleScope(str(scope).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown schedule scope: {scope!r}") from None
