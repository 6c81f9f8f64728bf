"""Multi-metric quality evaluation of (input, output) pairs."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Union

from agentprobe.types import MetricResult

logger = logging.getLogger("agentprobe.evaluator")

MetricFn = Callable[[str, str], Union[float, MetricResult]]


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, float(score)))


@dataclass
class Metric:
    """A pure scoring function with its own pass threshold.

    ``calculate(input, output)`` returns a score in [0, 1] (out-of-range
    values are clamped) or a :class:`MetricResult` carrying details.
    """

    name: str
    calculate: MetricFn
    threshold: float = 0.7
    description: str = ""

    def evaluate(self, input: str, output: str) -> MetricResult:
        raw = self.calculate(input, output)
        if isinstance(raw, MetricResult):
            score = _clamp(raw.score)
            return MetricResult(
                name=self.name,
                score=score,
                passed=score >= self.threshold,
                threshold=self.threshold,
                details=raw.details,
                metadata=dict(raw.metadata),
            )
        score = _clamp(raw)
        return MetricResult(
            name=self.name,
            score=score,
            passed=score >= self.threshold,
            threshold=self.threshold,
        )


@dataclass
class EvaluationReport:
    input: str
    output: str
    results: dict[str, MetricResult] = field(default_factory=dict)

    @property
    def overall_score(self) -> float:
        """Arithmetic mean of metric scores (0.0 with no metrics)."""
        if not self.results:
            return 0.0
        return sum(r.score for r in self.results.values()) / len(self.results)

    @property
    def passed(self) -> bool:
        """True iff every metric passed its own threshold."""
        return all(r.passed for r in self.results.values())

    @property
    def failed_metrics(self) -> list[str]:
        return [name for name, r in self.results.items() if not r.passed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "input": self.input,
            "output": self.output,
            "overall_score": self.overall_score,
            "passed": self.passed,
            "results": {name: r.to_dict() for name, r in self.results.items()},
        }


class QualityEvaluator:
    """Runs every registered metric against an (input, output) pair."""

    def __init__(self, metrics: list[Metric] | None = None) -> None:
        self._metrics: dict[str, Metric] = {}
        for metric in metrics or []:
            self.add_metric(metric)

    def add_metric(self, metric: Metric) -> QualityEvaluator:
        if not 0.0 <= metric.threshold <= 1.0:
            raise ValueError(
                f"Metric {metric.name!r} threshold must be in [0, 1], got {metric.threshold}"
            )
        self._metrics[metric.name] = metric
        return self

    def remove_metric(self, name: str) -> None:
        self._metrics.pop(name, None)

    @property
    def metrics(self) -> list[Metric]:
        return list(self._metrics.values())

    def evaluate(self, input: str, output: str) -> EvaluationReport:
        report = EvaluationReport(input=input, output=output)
        for name, metric in self._metrics.items():
            report.results[name] = metric.evaluate(input, output)
        if not report.passed:
            logger.debug("Evaluation failed metrics: %s", ", ".join(report.failed_metrics))
        return report

    def evaluate_batch(self, pairs: list[tuple[str, str]]) -> list[EvaluationReport]:
        return [self.evaluate(input, output) for input, output in pairs]
