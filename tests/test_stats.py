"""Tests for the statistics helpers."""

from __future__ import annotations

import math

import pytest

from agentprobe.stats import (
    EFFECT_LARGE,
    EFFECT_MEDIUM,
    EFFECT_NEGLIGIBLE,
    EFFECT_SMALL,
    Summary,
    cohens_d,
    confidence_interval,
    critical_value,
    interpret_effect_size,
    one_sample_t_test,
    summarize,
    welch_t_test,
)


def test_summarize_uses_sample_std() -> None:
    s = summarize([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
    assert s.n == 8
    assert s.mean == pytest.approx(5.0)
    assert s.std_dev == pytest.approx(2.138089935)
    assert s.median == pytest.approx(4.5)
    assert (s.min, s.max) == (2.0, 9.0)


def test_summarize_single_value_has_zero_spread() -> None:
    s = summarize([0.8])
    assert s.std_dev == 0.0
    with pytest.raises(ValueError):
        summarize([])


@pytest.mark.parametrize("value", [0.1, 0.3, 0.7])
def test_summarize_constant_sample_is_exact(value: float) -> None:
    s = summarize([value] * 10)
    assert s.mean == value
    assert s.std_dev == 0.0
    assert one_sample_t_test(s.mean, s.std_dev, s.n, value).t_statistic == 0.0


def test_critical_value_switches_distribution() -> None:
    assert critical_value(0.95, 10) == pytest.approx(2.262, abs=1e-3)
    assert critical_value(0.95, 30) == pytest.approx(1.960, abs=1e-3)
    assert critical_value(0.99, 100) == pytest.approx(2.576, abs=1e-3)
    with pytest.raises(ValueError):
        critical_value(1.0, 10)


def test_confidence_interval() -> None:
    low, high = confidence_interval(0.8, 0.1, 10, 0.95)
    margin = 2.262157 * 0.1 / math.sqrt(10)
    assert low == pytest.approx(0.8 - margin, abs=1e-5)
    assert high == pytest.approx(0.8 + margin, abs=1e-5)
    assert confidence_interval(1.0, 0.0, 10, 0.95) == (1.0, 1.0)
    assert confidence_interval(0.5, 0.3, 1, 0.95) == (0.5, 0.5)


def test_one_sample_t_test_one_sided() -> None:
    result = one_sample_t_test(mean=0.8, std_dev=0.1, n=10, threshold=0.7)
    assert result.t_statistic == pytest.approx(3.1623, abs=1e-3)
    assert result.p_value == pytest.approx(0.00576, abs=1e-4)
    assert result.degrees_of_freedom == 9

    below = one_sample_t_test(mean=0.6, std_dev=0.1, n=10, threshold=0.7)
    assert below.p_value > 0.9


def test_one_sample_t_test_degenerate_cases() -> None:
    above = one_sample_t_test(mean=1.0, std_dev=0.0, n=10, threshold=0.7)
    assert above.t_statistic == math.inf and above.p_value == 0.0
    below = one_sample_t_test(mean=0.5, std_dev=0.0, n=10, threshold=0.7)
    assert below.t_statistic == -math.inf and below.p_value == 1.0
    single = one_sample_t_test(mean=0.9, std_dev=0.0, n=1, threshold=0.7)
    assert single.p_value == 1.0


def test_welch_t_test() -> None:
    a = Summary(n=10, mean=0.8, std_dev=0.1, min=0.6, max=1.0, median=0.8)
    b = Summary(n=12, mean=0.6, std_dev=0.2, min=0.2, max=1.0, median=0.6)
    result = welch_t_test(a, b)
    assert result.t_statistic == pytest.approx(3.0, abs=0.05)
    assert 15 < result.degrees_of_freedom < 21
    assert result.p_value < 0.01


def test_welch_identical_samples_not_significant() -> None:
    s = summarize([0.7, 0.8, 0.9])
    result = welch_t_test(s, s)
    assert result.t_statistic == 0.0
    assert result.p_value == pytest.approx(1.0)


def test_welch_zero_spread() -> None:
    a = summarize([1.0, 1.0])
    b = summarize([0.5, 0.5])
    assert welch_t_test(a, b).p_value == 0.0
    assert welch_t_test(a, a).p_value == 1.0


def test_cohens_d() -> None:
    a = summarize([0.9, 0.8, 0.85, 0.95])
    b = summarize([0.5, 0.6, 0.55, 0.45])
    d = cohens_d(a, b)
    assert d > 0.8
    assert cohens_d(b, a) == pytest.approx(-d)
    assert cohens_d(a, a) == 0.0
    assert cohens_d(summarize([1.0, 1.0]), summarize([0.0, 0.0])) == math.inf


@pytest.mark.parametrize(
    ("d", "label"),
    [
        (0.0, EFFECT_NEGLIGIBLE),
        (-0.19, EFFECT_NEGLIGIBLE),
        (0.2, EFFECT_SMALL),
        (-0.49, EFFECT_SMALL),
        (0.5, EFFECT_MEDIUM),
        (0.8, EFFECT_LARGE),
        (-3.0, EFFECT_LARGE),
    ],
)
def test_interpret_effect_size(d: float, label: str) -> None:
    assert interpret_effect_size(d) == label
