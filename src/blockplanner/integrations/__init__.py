"""Collaborator interfaces and in-memory implementations."""

from blockplanner.integrations.memory import (
    InMemoryCalendar,
    InMemoryRulesStore,
    InMemoryTaskStore,
)
from blockplanner.integrations.ports import (
    EventSink,
    EventSource,
    RulesSource,
    TaskSource,
)

__all__ = [
    # Ports
    "EventSink",
    "EventSource",
    "RulesSource",
    "TaskSource",
    # In-memory implementations
    "InMemoryCalendar",
    "InMemoryRulesStore",
    "InMemoryTaskStore",
]
