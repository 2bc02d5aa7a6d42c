"""In-memory collaborator implementations.

Used by the command-line interface (loaded from JSON files) and by the
tests. Each store keeps per-user state in plain dicts.
"""

import uuid
from datetime import datetime
from typing import Optional, Sequence

from blockplanner.domain.models import (
    BookedEvent,
    PlacedEvent,
    SchedulableTask,
    ScheduleScope,
    TimeBlock,
)
from blockplanner.domain.rules import SchedulingRules
from blockplanner.errors import CollaboratorError, UploadError
from blockplanner.integrations.ports import EventSink, EventSource, RulesSource, TaskSource


class InMemoryTaskStore(TaskSource):
    """Task source backed by a dict of user id -> tasks."""

    def __init__(self, tasks: Optional[dict[str, list[SchedulableTask]]] = None):
        self.tasks = {user: list(items) for user, items in (tasks or {}).items()}

    def add_task(self, user_id: str, task: SchedulableTask) -> None:
        self.tasks.setdefault(user_id, []).append(task)

    def list_incomplete_tasks(
        self,
        user_id: str,
        resource_filter: Optional[Sequence[str]] = None,
    ) -> list[SchedulableTask]:
        tasks = [t for t in self.tasks.get(user_id, []) if not t.completed]
        if resource_filter is not None:
            wanted = set(resource_filter)
            tasks = [t for t in tasks if t.resource_id in wanted]
        return tasks


class InMemoryCalendar(EventSource, EventSink):
    """Calendar backed by a dict of user id -> event id -> event.

    Created events get a fresh id, the way an external calendar assigns
    its own durable identity.
    """

    def __init__(self, events: Optional[dict[str, list[BookedEvent]]] = None):
        self.events: dict[str, dict[str, BookedEvent]] = {}
        for user_id, items in (events or {}).items():
            for event in items:
                self.add_event(user_id, event)

    def add_event(self, user_id: str, event: BookedEvent) -> None:
        self.events.setdefault(user_id, {})[event.id] = event

    def list_events(self, user_id: str, start: datetime, end: datetime) -> list[BookedEvent]:
        return sorted(
            (e for e in self.events.get(user_id, {}).values() if e.overlaps(start, end)),
            key=lambda e: e.start,
        )

    def create_event(self, user_id: str, event: PlacedEvent) -> BookedEvent:
        if event.start.tzinfo is None or event.end.tzinfo is None:
            raise UploadError(f"Event {event.id} needs timezone-aware start and end")
        if event.end <= event.start:
            raise UploadError(f"Event {event.id} must end after it starts")
        booked = BookedEvent(
            id=uuid.uuid4().hex,
            start=event.start,
            end=event.end,
            summary=event.title,
        )
        self.add_event(user_id, booked)
        return booked

    def update_event(self, user_id: str, event_id: str, event: PlacedEvent) -> BookedEvent:
        if event_id not in self.events.get(user_id, {}):
            raise CollaboratorError(f"Event {event_id} not found for user {user_id}")
        booked = BookedEvent(id=event_id, start=event.start, end=event.end, summary=event.title)
        self.events[user_id][event_id] = booked
        return booked

    def delete_event(self, user_id: str, event_id: str) -> None:
        if event_id not in self.events.get(user_id, {}):
            raise CollaboratorError(f"Event {event_id} not found for user {user_id}")
        del self.events[user_id][event_id]


class InMemoryRulesStore(RulesSource):
    """Rules source backed by dicts.

    Users without stored rules get the default rules. A scope without
    its own stored blocks uses the blocks of the user's rules.
    """

    def __init__(
        self,
        rules: Optional[dict[str, SchedulingRules]] = None,
        time_blocks: Optional[dict[tuple[str, ScheduleScope], list[TimeBlock]]] = None,
    ):
        self.rules = dict(rules or {})
        self.time_blocks = dict(time_blocks or {})

    def set_rules(self, user_id: str, rules: SchedulingRules) -> None:
        self.rules[user_id] = rules

    def set_time_blocks(
        self,
        user_id: str,
        scope: ScheduleScope,
        blocks: list[TimeBlock],
    ) -> None:
        self.time_blocks[(user_id, scope)] = list(blocks)

    def get_rules(self, user_id: str) -> SchedulingRules:
        return self.rules.get(user_id) or SchedulingRules()

    def get_time_blocks(self, user_id: str, scope: ScheduleScope) -> list[TimeBlock]:
        if (user_id, scope) in self.time_blocks:
            return list(self.time_blocks[(user_id, scope)])
        return list(self.get_rules(user_id).time_blocks)
