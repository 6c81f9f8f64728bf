"""Human evaluation task scheduling and inter-rater agreement."""

from __future__ import annotations

import itertools
import logging
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from agentprobe.types import EvaluationCriterion

logger = logging.getLogger("agentprobe.human_eval")


@dataclass
class HumanEvaluation:
    task_id: str
    rater_id: str
    ratings: dict[str, float]
    comments: str = ""
    timestamp_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "rater_id": self.rater_id,
            "ratings": dict(self.ratings),
            "comments": self.comments,
            "timestamp_ms": self.timestamp_ms,
        }


@dataclass
class EvaluationTask:
    id: str
    input: str
    output: str
    criteria: list[EvaluationCriterion]
    assigned_raters: list[str] = field(default_factory=list)
    evaluations: dict[str, HumanEvaluation] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        """True once every assigned rater has submitted."""
        return bool(self.assigned_raters) and all(
            rater in self.evaluations for rater in self.assigned_raters
        )

    def criterion(self, name: str) -> EvaluationCriterion:
        for c in self.criteria:
            if c.name == name:
                return c
        raise KeyError(f"Task {self.id} has no criterion {name!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "input": self.input,
            "output": self.output,
            "criteria": [c.to_dict() for c in self.criteria],
            "assigned_raters": list(self.assigned_raters),
            "evaluations": [e.to_dict() for e in self.evaluations.values()],
        }


@dataclass
class InterRaterReliability:
    criterion: str
    kappa: float | None
    observed_agreement: float
    expected_agreement: float
    task_count: int
    pair_count: int
    interpretation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "criterion": self.criterion,
            "kappa": self.kappa,
            "observed_agreement": self.observed_agreement,
            "expected_agreement": self.expected_agreement,
            "task_count": self.task_count,
            "pair_count": self.pair_count,
            "interpretation": self.interpretation,
        }


def interpret_kappa(kappa: float) -> str:
    """Landis and Koch agreement bands."""
    if kappa < 0:
        return "poor"
    if kappa <= 0.2:
        return "slight"
    if kappa <= 0.4:
        return "fair"
    if kappa <= 0.6:
        return "moderate"
    if kappa <= 0.8:
        return "substantial"
    return "almost perfect"


class HumanEvaluationManager:
    """Creates rating tasks, assigns them to raters and measures agreement."""

    def __init__(self) -> None:
        self._tasks: dict[str, EvaluationTask] = {}

    def create_tasks(
        self,
        samples: list[tuple[str, str]],
        criteria: list[EvaluationCriterion],
    ) -> list[EvaluationTask]:
        """Create one task per (input, output) sample, all rated on criteria."""
        if not criteria:
            raise ValueError("At least one evaluation criterion is required")
        created: list[EvaluationTask] = []
        for input, output in samples:
            task = EvaluationTask(
                id=f"task_{uuid.uuid4().hex[:8]}",
                input=input,
                output=output,
                criteria=list(criteria),
            )
            self._tasks[task.id] = task
            created.append(task)
        return created

    @property
    def tasks(self) -> list[EvaluationTask]:
        return list(self._tasks.values())

    def get_task(self, task_id: str) -> EvaluationTask:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise KeyError(f"Unknown task {task_id!r}") from None

    def assign_with_overlap(
        self, rater_ids: list[str], overlap_fraction: float = 0.2
    ) -> dict[str, list[str]]:
        """Give every rater the first overlap share of tasks; deal the rest round-robin.

        Returns task ids per rater.
        """
        if not rater_ids:
            raise ValueError("At least one rater is required")
        if not 0.0 <= overlap_fraction <= 1.0:
            raise ValueError(f"overlap_fraction must be in [0, 1], got {overlap_fraction}")

        tasks = self.tasks
        overlap_count = round(len(tasks) * overlap_fraction)
        assignments: dict[str, list[str]] = {rater: [] for rater in rater_ids}

        for task in tasks[:overlap_count]:
            task.assigned_raters = list(rater_ids)
            for rater in rater_ids:
                assignments[rater].append(task.id)

        for offset, task in enumerate(tasks[overlap_count:]):
            rater = rater_ids[offset % len(rater_ids)]
            task.assigned_raters = [rater]
            assignments[rater].append(task.id)

        logger.debug(
            "Assigned %d tasks to %d raters (%d shared)", len(tasks), len(rater_ids), overlap_count
        )
        return assignments

    def tasks_for(self, rater_id: str) -> list[EvaluationTask]:
        return [t for t in self._tasks.values() if rater_id in t.assigned_raters]

    def submit_evaluation(
        self,
        task_id: str,
        rater_id: str,
        ratings: dict[str, float],
        comments: str = "",
    ) -> HumanEvaluation:
        task = self.get_task(task_id)
        if task.assigned_raters and rater_id not in task.assigned_raters:
            raise ValueError(f"Rater {rater_id!r} is not assigned to task {task_id}")
        for name, rating in ratings.items():
            task.criterion(name).validate_rating(rating)

        evaluation = HumanEvaluation(
            task_id=task_id,
            rater_id=rater_id,
            ratings=dict(ratings),
            comments=comments,
            timestamp_ms=int(time.time() * 1000),
        )
        task.evaluations[rater_id] = evaluation
        return evaluation

    def calculate_inter_rater_reliability(self, criterion: str) -> InterRaterReliability:
        """Cohen's kappa over every rater pair on tasks with two or more ratings."""
        per_task: list[list[float]] = []
        for task in self._tasks.values():
            ratings = [
                e.ratings[criterion] for e in task.evaluations.values() if criterion in e.ratings
            ]
            if len(ratings) >= 2:
                per_task.append(ratings)

        if not per_task:
            return InterRaterReliability(
                criterion=criterion,
                kappa=None,
                observed_agreement=0.0,
                expected_agreement=0.0,
                task_count=0,
                pair_count=0,
                interpretation="insufficient data",
            )

        agreements = 0
        pairs = 0
        for ratings in per_task:
            for a, b in itertools.combinations(ratings, 2):
                pairs += 1
                agreements += int(a == b)
        observed = agreements / pairs

        distribution = Counter(r for ratings in per_task for r in ratings)
        total = sum(distribution.values())
        expected = sum((count / total) ** 2 for count in distribution.values())

        if expected >= 1.0:
            kappa = 1.0 if observed == 1.0 else 0.0
        else:
            kappa = (observed - expected) / (1.0 - expected)

        return InterRaterReliability(
            criterion=criterion,
            kappa=kappa,
            observed_agreement=observed,
            expected_agreement=expected,
            task_count=len(per_task),
            pair_count=pairs,
            interpretation=interpret_kappa(kappa),
        )

    def aggregate_scores(self) -> dict[str, float]:
        """Mean rating per criterion across all submitted evaluations."""
        totals: dict[str, list[float]] = {}
        for task in self._tasks.values():
            for evaluation in task.evaluations.values():
                for name, rating in evaluation.ratings.items():
                    totals.setdefault(name, []).append(rating)
        return {name: sum(values) / len(values) for name, values in totals.items()}
