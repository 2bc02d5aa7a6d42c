"""Tests for task scoring and ranking."""

import random

import pytest

from blockplanner.domain.models import SchedulableTask
from blockplanner.domain.rules import SchedulingRules
from blockplanner.scheduling.scorer import TaskScorer


class TestTaskScorer:
    """Tests for TaskScorer."""

    @pytest.fixture
    def deterministic_rules(self):
        return SchedulingRules(randomness_factor=0)

    def test_base_score_formula(self, deterministic_rules):
        task = SchedulableTask(id="t", title="T", estimated_duration=30, priority="high")
        score = TaskScorer().base_score(task, deterministic_rules)
        assert score == pytest.approx(0.7 * 1 + 0.3 / 30)

    def test_unset_priority_scores_as_low(self, deterministic_rules):
        scorer = TaskScorer()
        unset = SchedulableTask(id="a", title="A", estimated_duration=60)
        low = SchedulableTask(id="b", title="B", estimated_duration=60, priority="low")
        assert scorer.score(unset, deterministic_rules) == scorer.score(low, deterministic_rules)

    def test_missing_duration_uses_default(self, deterministic_rules):
        task = SchedulableTask(id="t", title="T", estimated_duration=0, priority="medium")
        score = TaskScorer().score(task, deterministic_rules)
        assert score == pytest.approx(0.7 / 2 + 0.3 / 30)

    def test_zero_randomness_is_deterministic(self, deterministic_rules):
        task = SchedulableTask(id="t", title="T", priority="high")
        scorer = TaskScorer()
        assert scorer.score(task, deterministic_rules) == scorer.base_score(
            task, deterministic_rules
        )

    def test_perturbation_is_bounded(self):
        rules = SchedulingRules()
        task = SchedulableTask(id="t", title="T", priority="medium")
        scorer = TaskScorer(random.Random(3))
        base = scorer.base_score(task, rules)
        for _ in range(200):
            assert abs(scorer.score(task, rules) - base) <= rules.randomness_factor + 1e-9

    def test_seeded_rng_reproducible(self):
        rules = SchedulingRules()
        task = SchedulableTask(id="t", title="T", priority="low")
        first = TaskScorer(random.Random(42)).score(task, rules)
        second = TaskScorer(random.Random(42)).score(task, rules)
        assert first == second


class TestRank:
    """Tests for TaskScorer.rank."""

    def test_orders_by_score_descending(self):
        rules = SchedulingRules(randomness_factor=0)
        tasks = [
            SchedulableTask(id="low", title="Low", priority="low"),
            SchedulableTask(id="high", title="High", priority="high"),
            SchedulableTask(id="medium", title="Medium", priority="medium"),
        ]
        ranked = TaskScorer().rank(tasks, rules)
        assert [s.task.id for s in ranked] == ["high", "medium", "low"]

    def test_shorter_task_wins_within_priority(self):
        rules = SchedulingRules(randomness_factor=0)
        tasks = [
            SchedulableTask(id="long", title="Long", estimated_duration=120, priority="high"),
            SchedulableTask(id="short", title="Short", estimated_duration=15, priority="high"),
        ]
        ranked = TaskScorer().rank(tasks, rules)
        assert ranked[0].task.id == "short"

    def test_completed_tasks_dropped(self):
        rules = SchedulingRules(randomness_factor=0)
        tasks = [
            SchedulableTask(id="done", title="Done", completed=True, priority="high"),
            SchedulableTask(id="todo", title="Todo"),
        ]
        ranked = TaskScorer().rank(tasks, rules)
        assert [s.task.id for s in ranked] == ["todo"]

    def test_ties_keep_input_order(self):
        rules = SchedulingRules(randomness_factor=0)
        tasks = [SchedulableTask(id=f"t{i}", title="Same") for i in range(5)]
        ranked = TaskScorer().rank(tasks, rules)
        assert [s.task.id for s in ranked] == ["t0", "t1", "t2", "t3", "t4"]

    def test_tasks_are_not_mutated(self):
        rules = SchedulingRules()
        task = SchedulableTask(id="t", title="T")
        ranked = TaskScorer(random.Random(1)).rank([task], rules)
        assert ranked[0].task is task
        assert not hasattr(task, "score")
