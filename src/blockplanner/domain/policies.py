"""Policy definitions for task duration and splitting rules.

This module contains the policies that turn a task's estimated duration
into the duration the allocator must place, and that decide when and how
a task may be split across several slots. Policies are kept separate
from the allocator to allow independent testing and easy modification.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from blockplanner.domain.models import SLOT_GRANULARITY_MINUTES
from blockplanner.domain.rules import SchedulingRules


class DurationPolicy(ABC):
    """Abstract base class for required-duration policies."""

    @abstractmethod
    def get_capped_duration(self, estimated_minutes: int) -> int:
        """Apply the duration caps to an estimated duration.

        Args:
            estimated_minutes: The task's estimated duration.

        Returns:
            The capped duration in minutes, before rounding.
        """
        pass

    @abstractmethod
    def get_required_duration(self, estimated_minutes: int) -> int:
        """Get the duration the allocator must place for a task.

        Args:
            estimated_minutes: The task's estimated duration.

        Returns:
            Required minutes: capped, then rounded up to the granularity.
        """
        pass


class SplitPolicy(ABC):
    """Abstract base class for task splitting policies."""

    @abstractmethod
    def allows_split(self, required_minutes: int) -> bool:
        """Check if a task of this required duration may be split."""
        pass

    @abstractmethod
    def get_max_part_minutes(self) -> int:
        """Maximum length of a single part of a split task."""
        pass


@dataclass
class DefaultDurationPolicy(DurationPolicy):
    """Default duration policy implementation.

    Caps:
    - estimated > long_task_threshold: capped at max_long_task_duration
    - otherwise: capped at max_task_duration

    The capped value is then rounded up to the next multiple of
    ``granularity`` (15 minutes).
    """

    max_task_duration: int = 60
    max_long_task_duration: int = 120
    long_task_threshold: int = 120
    granularity: int = SLOT_GRANULARITY_MINUTES

    @classmethod
    def from_rules(cls, rules: SchedulingRules) -> "DefaultDurationPolicy":
        """Create a policy from the caps in the scheduling rules."""
        return cls(
            max_task_duration=rules.max_task_duration,
            max_long_task_duration=rules.max_long_task_duration,
            long_task_threshold=rules.long_task_threshold,
        )

    def is_long_task(self, estimated_minutes: int) -> bool:
        return estimated_minutes > self.long_task_threshold

    def get_cap(self, estimated_minutes: int) -> int:
        """The cap that applies to a task of this estimate."""
        if self.is_long_task(estimated_minutes):
            return self.max_long_task_duration
        return self.max_task_duration

    def get_capped_duration(self, estimated_minutes: int) -> int:
        return min(estimated_minutes, self.get_cap(estimated_minutes))

    def get_required_duration(self, estimated_minutes: int) -> int:
        return round_up_to_granularity(
            self.get_capped_duration(estimated_minutes), self.granularity
        )


@dataclass
class DefaultSplitPolicy(SplitPolicy):
    """Default split policy implementation.

    Only tasks needing more than an hour are split, and every part is at
    most an hour long regardless of how large the slot is.
    """

    split_threshold: int = 60  # Split only when required > this
    max_part_minutes: int = 60

    def allows_split(self, required_minutes: int) -> bool:
        return required_minutes > self.split_threshold

    def get_max_part_minutes(self) -> int:
        return self.max_part_minutes


def round_up_to_granularity(minutes: int, granularity: int = SLOT_GRANULARITY_MINUTES) -> int:
    """Round minutes up to the next multiple of the granularity."""
    return -(-minutes // granularity) * granularity
