"""Task scoring and ranking.

Each pending task gets a score from its priority and estimated duration
plus a bounded random perturbation. Higher scores are allocated first.
"""

import random
from dataclasses import dataclass
from typing import Iterable, Optional

from blockplanner.domain.models import SchedulableTask
from blockplanner.domain.rules import SchedulingRules


@dataclass(frozen=True)
class ScoredTask:
    """A task paired with its score for one scheduling run."""

    task: SchedulableTask
    score: float


class TaskScorer:
    """Scores tasks for allocation order.

    score = priority_weight / priority_ordinal
            + time_weight / max(estimated_duration, 1)
            + uniform(-randomness_factor, +randomness_factor)

    The random source is injectable so tests can force determinism.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def base_score(self, task: SchedulableTask, rules: SchedulingRules) -> float:
        """Deterministic part of the score."""
        priority_score = 1 / task.effective_priority.ordinal
        time_score = 1 / max(task.duration_minutes, 1)
        return rules.priority_weight * priority_score + rules.time_weight * time_score

    def score(self, task: SchedulableTask, rules: SchedulingRules) -> float:
        """Score a task, drawing one random perturbation."""
        factor = rules.randomness_factor
        return self.base_score(task, rules) + self.rng.uniform(-factor, factor)

    def rank(
        self,
        tasks: Iterable[SchedulableTask],
        rules: SchedulingRules,
    ) -> list[ScoredTask]:
        """Score eligible tasks and order them highest first.

        Completed tasks are dropped. The sort is stable, so tasks with
        equal scores keep their input order.
        """
        scored = [
            ScoredTask(task=task, score=self.score(task, rules))
            for task in tasks
            if not task.completed
        ]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored
