"""Scheduling rules: working days, time blocks and tunable parameters.

``SchedulingRules`` is the configuration the whole engine runs from. It
is built from the camelCase JSON shape stored by the rules source and
parsed once here, so the scheduling core only sees structured values.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional

from blockplanner.domain.models import TimeBlock, Weekday

logger = logging.getLogger(__name__)

DEFAULT_WORKING_DAYS = {
    Weekday.MONDAY: True,
    Weekday.TUESDAY: True,
    Weekday.WEDNESDAY: True,
    Weekday.THURSDAY: True,
    Weekday.FRIDAY: True,
    Weekday.SATURDAY: False,
    Weekday.SUNDAY: False,
}


def default_time_blocks() -> list[TimeBlock]:
    """The single weekday 09:00-17:00 block used when none are configured."""
    return [TimeBlock(id="1", day="weekday", start_time="09:00", end_time="17:00")]


@dataclass
class SchedulingRules:
    """Configuration for a scheduling run.

    Attributes:
        max_task_duration: Cap (minutes) for tasks at or below the threshold.
        max_long_task_duration: Cap (minutes) for tasks above the threshold.
        long_task_threshold: Estimated minutes above which a task is "long".
        priority_weight: Influence of priority on the score.
        time_weight: Influence of estimated duration on the score.
        randomness_factor: Half-width of the uniform score perturbation.
        working_days: Weekday -> whether it may be scheduled into.
        time_blocks: Recurring availability windows, in order.
        timezone: IANA zone anchoring block times and placed events.
    """

    max_task_duration: int = 60
    max_long_task_duration: int = 120
    long_task_threshold: int = 120
    priority_weight: float = 0.7
    time_weight: float = 0.3
    randomness_factor: float = 0.2
    working_days: dict[Weekday, bool] = field(
        default_factory=lambda: dict(DEFAULT_WORKING_DAYS)
    )
    time_blocks: list[TimeBlock] = field(default_factory=default_time_blocks)
    timezone: str = "UTC"

    def __post_init__(self):
        normalized = {day: False for day in Weekday}
        for key, value in self.working_days.items():
            day = key if isinstance(key, Weekday) else Weekday(str(key).strip().lower())
            normalized[day] = bool(value)
        self.working_days = normalized

        for attr in ("max_task_duration", "max_long_task_duration", "long_task_threshold"):
            if getattr(self, attr) < 0:
                raise ValueError(f"{attr} must be >= 0")
        if self.randomness_factor < 0:
            raise ValueError("randomness_factor must be >= 0")

    def is_working_day(self, d: date) -> bool:
        """Check if a date falls on a working day."""
        return self.working_days.get(Weekday.from_date(d), False)

    def blocks_for_day(self, d: date) -> list[TimeBlock]:
        """Enabled time blocks whose day selector covers the date."""
        weekday = Weekday.from_date(d)
        return [block for block in self.time_blocks if block.matches(weekday)]

    def resource_ids(self) -> list[str]:
        """Distinct resource ids referenced by enabled blocks, in block order."""
        seen: list[str] = []
        for block in self.time_blocks:
            if block.enabled and block.resource_id and block.resource_id not in seen:
                seen.append(block.resource_id)
        return seen

    def with_time_blocks(self, time_blocks: list[TimeBlock]) -> "SchedulingRules":
        """Copy of these rules using a different block set."""
        return replace(self, time_blocks=list(time_blocks))

    def to_dict(self) -> dict:
        """Serialize to the camelCase wire shape."""
        return {
            "maxTaskDuration": self.max_task_duration,
            "maxLongTaskDuration": self.max_long_task_duration,
            "longTaskThreshold": self.long_task_threshold,
            "priorityWeight": self.priority_weight,
            "timeWeight": self.time_weight,
            "randomnessFactor": self.randomness_factor,
            "workingDays": {day.value: on for day, on in self.working_days.items()},
            "timeBlocks": [block.to_dict() for block in self.time_blocks],
            "timezone": self.timezone,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SchedulingRules":
        """Build rules from the camelCase wire shape.

        Missing parameters take their defaults. A malformed ``workingDays``
        falls back to Monday-Friday and a malformed ``timeBlocks`` falls
        back to the default block; both are logged rather than raised.
        """
        defaults = cls()

        working_days = _parse_working_days(data.get("workingDays"))
        time_blocks = _parse_time_blocks(data.get("timeBlocks"))

        return cls(
            max_task_duration=int(data.get("maxTaskDuration", defaults.max_task_duration)),
            max_long_task_duration=int(
                data.get("maxLongTaskDuration", defaults.max_long_task_duration)
            ),
            long_task_threshold=int(data.get("longTaskThreshold", defaults.long_task_threshold)),
            priority_weight=float(data.get("priorityWeight", defaults.priority_weight)),
            time_weight=float(data.get("timeWeight", defaults.time_weight)),
            randomness_factor=float(data.get("randomnessFactor", defaults.randomness_factor)),
            working_days=working_days,
            time_blocks=time_blocks,
            timezone=str(data.get("timezone") or defaults.timezone),
        )


def _parse_working_days(raw: Optional[object]) -> dict[Weekday, bool]:
    if raw is None:
        return dict(DEFAULT_WORKING_DAYS)
    if not isinstance(raw, dict):
        logger.error("Invalid workingDays %r, using Monday-Friday", raw)
        return dict(DEFAULT_WORKING_DAYS)

    parsed = {}
    for key, value in raw.items():
        try:
            parsed[Weekday(str(key).strip().lower())] = bool(value)
        except ValueError:
            logger.warning("Ignoring unknown working day %r", key)
    return parsed


def _parse_time_blocks(raw: Optional[object]) -> list[TimeBlock]:
    if raw is None:
        return default_time_blocks()
    if not isinstance(raw, list) or not all(isinstance(b, dict) for b in raw):
        logger.error("Invalid timeBlocks %r, using the default block", raw)
        return default_time_blocks()
    return [TimeBlock.from_dict(b) for b in raw]
