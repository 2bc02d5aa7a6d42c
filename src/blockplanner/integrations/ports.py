"""Collaborator interfaces the scheduling facade depends on.

Implementations wrap the task store, the external calendar and the
rules store. The scheduling core only ever talks to these interfaces,
so it can run against in-memory fakes.
"""

from abc import ABC, abstractmethod
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


class TaskSource(ABC):
    """Abstract source of pending tasks."""

    @abstractmethod
    def list_incomplete_tasks(
        self,
        user_id: str,
        resource_filter: Optional[Sequence[str]] = None,
    ) -> list[SchedulableTask]:
        """List a user's incomplete tasks.

        Args:
            user_id: Owner of the tasks.
            resource_filter: Only tasks of these resources. None means
                every incomplete task of the user.

        Raises:
            CollaboratorError: If the store cannot be read.
        """
        pass


class EventSource(ABC):
    """Abstract source of already-booked calendar events."""

    @abstractmethod
    def list_events(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[BookedEvent]:
        """List events intersecting [start, end).

        Raises:
            CollaboratorError: If the calendar cannot be read.
        """
        pass


class EventSink(ABC):
    """Abstract writer of calendar events, used only by uploads."""

    @abstractmethod
    def create_event(self, user_id: str, event: PlacedEvent) -> BookedEvent:
        """Create an event; the calendar assigns its durable id.

        Raises:
            UploadError: If the event could not be created.
        """
        pass

    @abstractmethod
    def update_event(self, user_id: str, event_id: str, event: PlacedEvent) -> BookedEvent:
        """Replace the times and details of an existing event."""
        pass

    @abstractmethod
    def delete_event(self, user_id: str, event_id: str) -> None:
        """Delete an event."""
        pass


class RulesSource(ABC):
    """Abstract source of scheduling rules and time blocks."""

    @abstractmethod
    def get_rules(self, user_id: str) -> SchedulingRules:
        """Get the user's scheduling rules (defaults when none are stored)."""
        pass

    @abstractmethod
    def get_time_blocks(self, user_id: str, scope: ScheduleScope) -> list[TimeBlock]:
        """Get the time blocks of the recurring template or the live week."""
        pass
