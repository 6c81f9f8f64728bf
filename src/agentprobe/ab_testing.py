"""A/B testing of N generation variants over shared test cases."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from agentprobe.client import GenerationClient
from agentprobe.config import get_confidence_level
from agentprobe.statistical import StatisticalTestRunner, recommend, score_output
from agentprobe.stats import (
    Summary,
    cohens_d,
    confidence_interval,
    interpret_effect_size,
    summarize,
    welch_t_test,
)

logger = logging.getLogger("agentprobe.ab_testing")


@dataclass
class ABVariant:
    """A named way of producing output: a prompt template plus generation config.

    The template is a :meth:`str.format` template receiving ``input``.
    """

    name: str
    template: str
    config: dict[str, Any] = field(default_factory=dict)

    def render(self, input: str) -> str:
        return self.template.format(input=input)


@dataclass
class WeightedEvaluator:
    name: str
    fn: Callable[[str, str], Any]
    weight: float = 1.0


@dataclass
class ABSample:
    test_case: str
    output: str
    score: float
    evaluator_scores: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "test_case": self.test_case,
            "output": self.output,
            "score": self.score,
            "evaluator_scores": dict(self.evaluator_scores),
        }


@dataclass
class VariantResult:
    name: str
    samples: list[ABSample]
    summary: Summary
    confidence_interval: tuple[float, float]

    @property
    def mean(self) -> float:
        return self.summary.mean

    @property
    def scores(self) -> list[float]:
        return [s.score for s in self.samples]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "summary": self.summary.to_dict(),
            "confidence_interval": list(self.confidence_interval),
            "samples": [s.to_dict() for s in self.samples],
        }


@dataclass
class PairwiseComparison:
    variant_a: str
    variant_b: str
    mean_difference: float
    t_statistic: float
    p_value: float
    effect_size: float
    effect_size_interpretation: str
    is_significant: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "variant_a": self.variant_a,
            "variant_b": self.variant_b,
            "mean_difference": self.mean_difference,
            "t_statistic": self.t_statistic,
            "p_value": self.p_value,
            "effect_size": self.effect_size,
            "effect_size_interpretation": self.effect_size_interpretation,
            "is_significant": self.is_significant,
        }


@dataclass
class ABTestReport:
    variants: dict[str, VariantResult]
    comparisons: list[PairwiseComparison]
    ranking: list[str]
    winner: str
    caveat: str | None = None
    recommendation: str = ""

    def comparison(self, a: str, b: str) -> PairwiseComparison:
        """Return the comparison between a and b, oriented as a versus b."""
        for c in self.comparisons:
            if (c.variant_a, c.variant_b) == (a, b):
                return c
            if (c.variant_a, c.variant_b) == (b, a):
                return PairwiseComparison(
                    variant_a=a,
                    variant_b=b,
                    mean_difference=-c.mean_difference,
                    t_statistic=-c.t_statistic,
                    p_value=c.p_value,
                    effect_size=-c.effect_size,
                    effect_size_interpretation=c.effect_size_interpretation,
                    is_significant=c.is_significant,
                )
        raise KeyError(f"No comparison between {a!r} and {b!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "winner": self.winner,
            "ranking": list(self.ranking),
            "caveat": self.caveat,
            "recommendation": self.recommendation,
            "variants": {k: v.to_dict() for k, v in self.variants.items()},
            "comparisons": [c.to_dict() for c in self.comparisons],
        }


class ABTestFramework:
    """Runs every variant over every test case and ranks them.

    Usage:
        ab = ABTestFramework(client)
        ab.add_variant(ABVariant("terse", "Summarize: {input}"))
        ab.add_variant(ABVariant("guided", "Summarize in 3 bullets: {input}"))
        report = await ab.run(cases, [WeightedEvaluator("len", length_score)])
    """

    def __init__(
        self,
        client: GenerationClient,
        *,
        max_concurrency: int | None = None,
        significance_level: float | None = None,
        confidence_level: float | None = None,
    ) -> None:
        self._runner = StatisticalTestRunner(
            client,
            max_concurrency=max_concurrency,
            significance_level=significance_level,
        )
        self._confidence_level = confidence_level
        self._variants: dict[str, ABVariant] = {}

    def add_variant(self, variant: ABVariant) -> ABTestFramework:
        if variant.name in self._variants:
            raise ValueError(f"Variant {variant.name!r} is already defined")
        self._variants[variant.name] = variant
        return self

    @property
    def variants(self) -> list[ABVariant]:
        return list(self._variants.values())

    async def _score(
        self, test_case: str, output: str, evaluators: list[WeightedEvaluator]
    ) -> ABSample:
        evaluator_scores: dict[str, float] = {}
        total_weight = 0.0
        weighted = 0.0
        for evaluator in evaluators:
            value = await score_output(evaluator.fn, test_case, output)
            evaluator_scores[evaluator.name] = value
            weighted += value * evaluator.weight
            total_weight += evaluator.weight
        return ABSample(
            test_case=test_case,
            output=output,
            score=weighted / total_weight,
            evaluator_scores=evaluator_scores,
        )

    async def _run_variant(
        self,
        variant: ABVariant,
        test_cases: list[str],
        evaluators: list[WeightedEvaluator],
        samples_per_case: int,
    ) -> VariantResult:
        samples: list[ABSample] = []
        for case in test_cases:
            outputs = await self._runner.sample(variant.render(case), samples_per_case, variant.config)
            for output in outputs:
                samples.append(await self._score(case, output, evaluators))
        summary = summarize([s.score for s in samples])
        level = self._confidence_level or get_confidence_level()
        return VariantResult(
            name=variant.name,
            samples=samples,
            summary=summary,
            confidence_interval=confidence_interval(
                summary.mean, summary.std_dev, summary.n, level
            ),
        )

    async def run(
        self,
        test_cases: list[str],
        evaluators: list[WeightedEvaluator],
        samples_per_case: int = 3,
    ) -> ABTestReport:
        if len(self._variants) < 2:
            raise ValueError("A/B testing needs at least two variants")
        if not test_cases:
            raise ValueError("A/B testing needs at least one test case")
        if not evaluators:
            raise ValueError("A/B testing needs at least one evaluator")
        if sum(e.weight for e in evaluators) <= 0:
            raise ValueError("Evaluator weights must sum to a positive number")

        results: dict[str, VariantResult] = {}
        for variant in self._variants.values():
            logger.debug("Running variant %r over %d cases", variant.name, len(test_cases))
            results[variant.name] = await self._run_variant(
                variant, test_cases, evaluators, samples_per_case
            )

        alpha = self._runner.significance_level
        comparisons: list[PairwiseComparison] = []
        for name_a, name_b in itertools.combinations(results, 2):
            a, b = results[name_a].summary, results[name_b].summary
            test = welch_t_test(a, b)
            d = cohens_d(a, b)
            comparisons.append(
                PairwiseComparison(
                    variant_a=name_a,
                    variant_b=name_b,
                    mean_difference=a.mean - b.mean,
                    t_statistic=test.t_statistic,
                    p_value=test.p_value,
                    effect_size=d,
                    effect_size_interpretation=interpret_effect_size(d),
                    is_significant=test.p_value < alpha,
                )
            )

        ranking = sorted(results, key=lambda name: results[name].mean, reverse=True)
        winner = ranking[0]
        caveat = None
        if not any(c.is_significant for c in comparisons):
            caveat = (
                "No pairwise comparison reached statistical significance; "
                f"{winner} leads on mean score only."
            )
            logger.info("A/B winner %r is not statistically separated from other variants", winner)

        report = ABTestReport(
            variants=results,
            comparisons=comparisons,
            ranking=ranking,
            winner=winner,
            caveat=caveat,
        )
        runner_up = ranking[1]
        versus = report.comparison(winner, runner_up)
        report.recommendation = recommend(
            winner,
            runner_up,
            versus.mean_difference,
            versus.is_significant,
            versus.effect_size_interpretation,
        )
        return report
