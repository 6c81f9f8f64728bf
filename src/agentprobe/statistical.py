"""Repeated sampling of a non-deterministic backend with statistical verdicts."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Union

from agentprobe.client import GenerationClient
from agentprobe.config import (
    get_confidence_level,
    get_max_concurrency,
    get_sample_size,
    get_significance_level,
)
from agentprobe.stats import (
    EFFECT_NEGLIGIBLE,
    Summary,
    cohens_d,
    confidence_interval,
    interpret_effect_size,
    one_sample_t_test,
    summarize,
    welch_t_test,
)

logger = logging.getLogger("agentprobe.statistical")

Scorer = Callable[[str], Union[float, Awaitable[float]]]


async def score_output(scorer: Callable[..., Any], *args: Any) -> float:
    """Call a sync or async scorer and return its score as a float."""
    value = scorer(*args)
    if inspect.isawaitable(value):
        value = await value
    return float(value)


@dataclass(frozen=True)
class SampleScore:
    output: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"output": self.output, "score": self.score}


@dataclass
class StatisticalTestResult:
    input: str
    samples: list[SampleScore]
    mean: float
    std_dev: float
    confidence_interval: tuple[float, float]
    confidence_level: float
    threshold: float
    t_statistic: float
    p_value: float
    passes_threshold: bool
    is_statistically_significant: bool

    @property
    def sample_size(self) -> int:
        return len(self.samples)

    @property
    def scores(self) -> list[float]:
        return [s.score for s in self.samples]

    def summary(self) -> Summary:
        return summarize(self.scores)

    def to_dict(self) -> dict[str, Any]:
        return {
            "input": self.input,
            "sample_size": self.sample_size,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "confidence_interval": list(self.confidence_interval),
            "confidence_level": self.confidence_level,
            "threshold": self.threshold,
            "t_statistic": self.t_statistic,
            "p_value": self.p_value,
            "passes_threshold": self.passes_threshold,
            "is_statistically_significant": self.is_statistically_significant,
            "samples": [s.to_dict() for s in self.samples],
        }


@dataclass
class PromptComparison:
    result_a: StatisticalTestResult
    result_b: StatisticalTestResult
    mean_difference: float
    t_statistic: float
    p_value: float
    degrees_of_freedom: float
    is_significant: bool
    effect_size: float
    effect_size_interpretation: str
    recommendation: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "result_a": self.result_a.to_dict(),
            "result_b": self.result_b.to_dict(),
            "mean_difference": self.mean_difference,
            "t_statistic": self.t_statistic,
            "p_value": self.p_value,
            "degrees_of_freedom": self.degrees_of_freedom,
            "is_significant": self.is_significant,
            "effect_size": self.effect_size,
            "effect_size_interpretation": self.effect_size_interpretation,
            "recommendation": self.recommendation,
        }


def recommend(
    name_a: str,
    name_b: str,
    mean_difference: float,
    is_significant: bool,
    effect_interpretation: str,
) -> str:
    """Plain-language verdict combining significance and effect size."""
    if not is_significant:
        return (
            f"No statistically significant difference between {name_a} and {name_b}; "
            "collect more samples or keep the current variant."
        )
    better, worse = (name_a, name_b) if mean_difference > 0 else (name_b, name_a)
    if effect_interpretation == EFFECT_NEGLIGIBLE:
        return (
            f"{better} scores significantly higher than {worse}, but the effect size is "
            "negligible; the difference is unlikely to matter in practice."
        )
    return (
        f"Adopt {better}: it scores significantly higher than {worse} "
        f"with a {effect_interpretation} effect size."
    )


class StatisticalTestRunner:
    """Samples a generation client repeatedly and tests the score distribution.

    Calls may run concurrently (at most ``max_concurrency`` in flight) but
    samples are always reported in issuance order.
    """

    def __init__(
        self,
        client: GenerationClient,
        *,
        max_concurrency: int | None = None,
        significance_level: float | None = None,
    ) -> None:
        self._client = client
        self._max_concurrency = max_concurrency
        self._significance_level = significance_level

    @property
    def significance_level(self) -> float:
        if self._significance_level is not None:
            return self._significance_level
        return get_significance_level()

    async def sample(
        self,
        prompt: str,
        sample_size: int,
        config: dict[str, Any] | None = None,
    ) -> list[str]:
        """Issue sample_size independent calls; outputs are in issuance order."""
        if sample_size < 1:
            raise ValueError(f"sample_size must be >= 1, got {sample_size}")
        limit = self._max_concurrency or get_max_concurrency()
        semaphore = asyncio.Semaphore(limit)

        async def _one(index: int) -> str:
            async with semaphore:
                logger.debug("Sample %d/%d for prompt %r", index + 1, sample_size, prompt[:80])
                return await self._client.generate(prompt, dict(config or {}))

        return list(await asyncio.gather(*(_one(i) for i in range(sample_size))))

    async def run_statistical_test(
        self,
        input: str,
        scorer: Scorer,
        *,
        sample_size: int | None = None,
        temperature: float = 0.7,
        confidence_level: float | None = None,
        threshold: float = 0.7,
        config: dict[str, Any] | None = None,
    ) -> StatisticalTestResult:
        """Sample input, score every output and test ``mean >= threshold``.

        A miss is reported through ``passes_threshold`` and
        ``is_statistically_significant``; it is never raised.
        """
        n = sample_size if sample_size is not None else get_sample_size()
        level = confidence_level if confidence_level is not None else get_confidence_level()
        generation_config = {**(config or {}), "temperature": temperature}

        outputs = await self.sample(input, n, generation_config)
        scores = [await score_output(scorer, output) for output in outputs]
        summary = summarize(scores)
        test = one_sample_t_test(summary.mean, summary.std_dev, summary.n, threshold)

        result = StatisticalTestResult(
            input=input,
            samples=[SampleScore(output=o, score=s) for o, s in zip(outputs, scores)],
            mean=summary.mean,
            std_dev=summary.std_dev,
            confidence_interval=confidence_interval(
                summary.mean, summary.std_dev, summary.n, level
            ),
            confidence_level=level,
            threshold=threshold,
            t_statistic=test.t_statistic,
            p_value=test.p_value,
            passes_threshold=summary.mean >= threshold,
            is_statistically_significant=test.p_value < self.significance_level,
        )
        if not result.passes_threshold:
            logger.info(
                "Mean score %.3f below threshold %.3f for prompt %r",
                result.mean, threshold, input[:80],
            )
        return result

    async def compare_prompts(
        self,
        prompt_a: str,
        prompt_b: str,
        scorer: Scorer,
        *,
        sample_size: int | None = None,
        temperature: float = 0.7,
        confidence_level: float | None = None,
        threshold: float = 0.7,
    ) -> PromptComparison:
        """Sample both prompts independently and compare them with Welch's t-test."""
        result_a = await self.run_statistical_test(
            prompt_a, scorer, sample_size=sample_size, temperature=temperature,
            confidence_level=confidence_level, threshold=threshold,
        )
        result_b = await self.run_statistical_test(
            prompt_b, scorer, sample_size=sample_size, temperature=temperature,
            confidence_level=confidence_level, threshold=threshold,
        )
        return compare_results(result_a, result_b, self.significance_level)


def compare_results(
    result_a: StatisticalTestResult,
    result_b: StatisticalTestResult,
    significance_level: float,
    name_a: str = "prompt A",
    name_b: str = "prompt B",
) -> PromptComparison:
    summary_a = summarize(result_a.scores)
    summary_b = summarize(result_b.scores)
    test = welch_t_test(summary_a, summary_b)
    d = cohens_d(summary_a, summary_b)
    interpretation = interpret_effect_size(d)
    is_significant = test.p_value < significance_level
    difference = summary_a.mean - summary_b.mean
    return PromptComparison(
        result_a=result_a,
        result_b=result_b,
        mean_difference=difference,
        t_statistic=test.t_statistic,
        p_value=test.p_value,
        degrees_of_freedom=test.degrees_of_freedom,
        is_significant=is_significant,
        effect_size=d,
        effect_size_interpretation=interpretation,
        recommendation=recommend(name_a, name_b, difference, is_significant, interpretation),
    )
