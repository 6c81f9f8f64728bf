"""Descriptive statistics and significance tests for sampled quality scores.

All distribution functions come from :mod:`scipy.stats`. Degenerate inputs
(a single sample, zero variance) are resolved explicitly instead of
propagating NaN, so callers always receive finite, reportable numbers or
signed infinities for t-statistics.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from scipy import stats as scipy_stats

# Below this many samples confidence intervals use Student's t instead of z.
T_DISTRIBUTION_CUTOFF: int = 30

EFFECT_NEGLIGIBLE: str = "negligible"
EFFECT_SMALL: str = "small"
EFFECT_MEDIUM: str = "medium"
EFFECT_LARGE: str = "large"


@dataclass(frozen=True)
class Summary:
    n: int
    mean: float
    std_dev: float
    min: float
    max: float
    median: float

    def to_dict(self) -> dict[str, float | int]:
        return {
            "n": self.n,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "median": self.median,
        }


@dataclass(frozen=True)
class TTestResult:
    t_statistic: float
    p_value: float
    degrees_of_freedom: float

    def to_dict(self) -> dict[str, float]:
        return {
            "t_statistic": self.t_statistic,
            "p_value": self.p_value,
            "degrees_of_freedom": self.degrees_of_freedom,
        }


def summarize(scores: Sequence[float]) -> Summary:
    """Mean, sample standard deviation (ddof=1), extremes and median.

    A constant sample reports its value as the mean and exactly zero spread.
    """
    if len(scores) == 0:
        raise ValueError("Cannot summarize an empty sample")
    values = np.asarray(scores, dtype=float)
    if values.min() == values.max():
        mean = float(values[0])
        std_dev = 0.0
    else:
        mean = math.fsum(values) / len(values)
        std_dev = float(values.std(ddof=1)) if len(values) > 1 else 0.0
    return Summary(
        n=len(values),
        mean=mean,
        std_dev=std_dev,
        min=float(values.min()),
        max=float(values.max()),
        median=float(np.median(values)),
    )


def critical_value(confidence_level: float, n: int) -> float:
    """Two-sided critical value: Student's t for small n, normal z otherwise."""
    if not 0.0 < confidence_level < 1.0:
        raise ValueError(f"confidence_level must be in (0, 1), got {confidence_level}")
    quantile = 1.0 - (1.0 - confidence_level) / 2.0
    if 1 < n < T_DISTRIBUTION_CUTOFF:
        return float(scipy_stats.t.ppf(quantile, df=n - 1))
    return float(scipy_stats.norm.ppf(quantile))


def confidence_interval(
    mean: float, std_dev: float, n: int, confidence_level: float
) -> tuple[float, float]:
    """Interval around mean; degenerate ``(mean, mean)`` when there is no spread."""
    if n < 2 or std_dev == 0.0:
        return (mean, mean)
    margin = critical_value(confidence_level, n) * std_dev / math.sqrt(n)
    return (mean - margin, mean + margin)


def one_sample_t_test(mean: float, std_dev: float, n: int, threshold: float) -> TTestResult:
    """One-sided test of H1: true mean > threshold.

    The p-value is the upper tail of Student's t with n - 1 degrees of
    freedom. With no spread the outcome is decided by the sign of
    ``mean - threshold``.
    """
    df = float(max(n - 1, 0))
    diff = mean - threshold
    if n < 2 or std_dev == 0.0:
        if n >= 2 and diff > 0:
            return TTestResult(t_statistic=math.inf, p_value=0.0, degrees_of_freedom=df)
        if n >= 2 and diff < 0:
            return TTestResult(t_statistic=-math.inf, p_value=1.0, degrees_of_freedom=df)
        return TTestResult(t_statistic=0.0, p_value=1.0, degrees_of_freedom=df)
    t_stat = diff / (std_dev / math.sqrt(n))
    p_value = float(scipy_stats.t.sf(t_stat, df=df))
    return TTestResult(t_statistic=t_stat, p_value=p_value, degrees_of_freedom=df)


def welch_t_test(a: Summary, b: Summary) -> TTestResult:
    """Two-sided unequal-variance t-test with Welch-Satterthwaite degrees of freedom."""
    var_a = a.std_dev ** 2 / a.n
    var_b = b.std_dev ** 2 / b.n
    standard_error = math.sqrt(var_a + var_b)
    diff = a.mean - b.mean

    if standard_error == 0.0:
        df = float(max(a.n + b.n - 2, 0))
        if math.isclose(diff, 0.0, abs_tol=1e-12):
            return TTestResult(t_statistic=0.0, p_value=1.0, degrees_of_freedom=df)
        t_stat = math.copysign(math.inf, diff)
        return TTestResult(t_statistic=t_stat, p_value=0.0, degrees_of_freedom=df)

    numerator = (var_a + var_b) ** 2
    denominator = 0.0
    if a.n > 1:
        denominator += var_a ** 2 / (a.n - 1)
    if b.n > 1:
        denominator += var_b ** 2 / (b.n - 1)
    df = numerator / denominator if denominator > 0 else float(a.n + b.n - 2)

    t_stat = diff / standard_error
    p_value = float(2.0 * scipy_stats.t.sf(abs(t_stat), df=df))
    return TTestResult(t_statistic=t_stat, p_value=min(p_value, 1.0), degrees_of_freedom=df)


def cohens_d(a: Summary, b: Summary) -> float:
    """Standardized mean difference ``(a - b) / pooled SD``.

    Zero when the means are equal; signed infinity when the means differ but
    neither sample has any spread.
    """
    diff = a.mean - b.mean
    dof = a.n + b.n - 2
    pooled_var = 0.0
    if dof > 0:
        pooled_var = ((a.n - 1) * a.std_dev ** 2 + (b.n - 1) * b.std_dev ** 2) / dof
    if pooled_var == 0.0:
        if math.isclose(diff, 0.0, abs_tol=1e-12):
            return 0.0
        return math.copysign(math.inf, diff)
    return diff / math.sqrt(pooled_var)


def interpret_effect_size(d: float) -> str:
    magnitude = abs(d)
    if magnitude < 0.2:
        return EFFECT_NEGLIGIBLE
    if magnitude < 0.5:
        return EFFECT_SMALL
    if magnitude < 0.8:
        return EFFECT_MEDIUM
    return EFFECT_LARGE
