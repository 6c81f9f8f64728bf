"""Tests for agentprobe runtime configuration."""

from __future__ import annotations

import logging

import pytest

from agentprobe.config import (
    config,
    get_confidence_level,
    get_max_concurrency,
    get_max_iterations,
    get_sample_size,
    get_significance_level,
    reset,
)


class TestDefaults:
    def test_defaults(self) -> None:
        assert get_sample_size() == 10
        assert get_confidence_level() == 0.95
        assert get_significance_level() == 0.05
        assert get_max_iterations() == 10
        assert get_max_concurrency() == 5

    def test_config_returns_state(self) -> None:
        state = config(sample_size=20)
        assert state["sample_size"] == 20
        assert state["max_concurrency"] == 5


class TestSampleSize:
    def test_set_via_config(self) -> None:
        config(sample_size=30)
        assert get_sample_size() == 30

    def test_set_via_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTPROBE_SAMPLE_SIZE", "25")
        assert get_sample_size() == 25

    def test_config_takes_precedence_over_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTPROBE_SAMPLE_SIZE", "25")
        config(sample_size=3)
        assert get_sample_size() == 3

    def test_invalid_env_falls_back_with_warning(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv("AGENTPROBE_SAMPLE_SIZE", "lots")
        with caplog.at_level(logging.WARNING, logger="agentprobe.config"):
            assert get_sample_size() == 10
        assert "AGENTPROBE_SAMPLE_SIZE" in caplog.text

    def test_non_positive_env_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTPROBE_SAMPLE_SIZE", "0")
        assert get_sample_size() == 10

    def test_rejects_zero(self) -> None:
        with pytest.raises(ValueError, match="sample_size"):
            config(sample_size=0)


class TestLevels:
    def test_confidence_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTPROBE_CONFIDENCE_LEVEL", "0.99")
        assert get_confidence_level() == 0.99

    def test_significance_env_out_of_range(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTPROBE_SIGNIFICANCE_LEVEL", "5")
        assert get_significance_level() == 0.05

    @pytest.mark.parametrize("value", [0.0, 1.0, -0.5])
    def test_rejects_out_of_range(self, value: float) -> None:
        with pytest.raises(ValueError):
            config(confidence_level=value)
        with pytest.raises(ValueError):
            config(significance_level=value)


class TestLimits:
    def test_max_iterations(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTPROBE_MAX_ITERATIONS", "50")
        assert get_max_iterations() == 50
        config(max_iterations=4)
        assert get_max_iterations() == 4

    def test_max_concurrency(self) -> None:
        config(max_concurrency=1)
        assert get_max_concurrency() == 1
        with pytest.raises(ValueError):
            config(max_concurrency=0)

    def test_reset_clears_everything(self) -> None:
        config(sample_size=2, max_iterations=2, max_concurrency=2)
        reset()
        assert get_sample_size() == 10
        assert get_max_iterations() == 10
        assert get_max_concurrency() == 5
