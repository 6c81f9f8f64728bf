"""agentprobe global configuration."""

from __future__ import annotations

import logging
import os

logger = logging.getLogger("agentprobe.config")

DEFAULT_SAMPLE_SIZE: int = 10
DEFAULT_CONFIDENCE_LEVEL: float = 0.95
DEFAULT_SIGNIFICANCE_LEVEL: float = 0.05
DEFAULT_MAX_ITERATIONS: int = 10
DEFAULT_MAX_CONCURRENCY: int = 5

_sample_size: int | None = None
_confidence_level: float | None = None
_significance_level: float | None = None
_max_iterations: int | None = None
_max_concurrency: int | None = None


def config(
    *,
    sample_size: int | None = None,
    confidence_level: float | None = None,
    significance_level: float | None = None,
    max_iterations: int | None = None,
    max_concurrency: int | None = None,
) -> dict[str, int | float]:
    """Configure agentprobe runtime defaults.

    Args:
        sample_size: Number of calls issued per statistical test.
            Can also be set via AGENTPROBE_SAMPLE_SIZE environment variable.
        confidence_level: Confidence level for intervals (0.0-1.0, exclusive).
            Can also be set via AGENTPROBE_CONFIDENCE_LEVEL.
        significance_level: p-value below which a result is significant.
            Can also be set via AGENTPROBE_SIGNIFICANCE_LEVEL.
        max_iterations: Message deliveries allowed per multi-agent workflow.
            Can also be set via AGENTPROBE_MAX_ITERATIONS.
        max_concurrency: Backend calls in flight at once while sampling.
            Can also be set via AGENTPROBE_MAX_CONCURRENCY.

    Returns:
        Current configuration state.
    """
    global _sample_size  # noqa: PLW0603
    global _confidence_level  # noqa: PLW0603
    global _significance_level  # noqa: PLW0603
    global _max_iterations  # noqa: PLW0603
    global _max_concurrency  # noqa: PLW0603

    if sample_size is not None:
        if sample_size < 1:
            raise ValueError(f"sample_size must be >= 1, got {sample_size}")
        _sample_size = sample_size
    if confidence_level is not None:
        if not 0.0 < confidence_level < 1.0:
            raise ValueError(
                f"confidence_level must be in (0.0, 1.0), got {confidence_level}"
            )
        _confidence_level = confidence_level
    if significance_level is not None:
        if not 0.0 < significance_level < 1.0:
            raise ValueError(
                f"significance_level must be in (0.0, 1.0), got {significance_level}"
            )
        _significance_level = significance_level
    if max_iterations is not None:
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        _max_iterations = max_iterations
    if max_concurrency is not None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        _max_concurrency = max_concurrency

    return {
        "sample_size": get_sample_size(),
        "confidence_level": get_confidence_level(),
        "significance_level": get_significance_level(),
        "max_iterations": get_max_iterations(),
        "max_concurrency": get_max_concurrency(),
    }


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if raw:
        try:
            value = int(raw)
        except ValueError:
            logger.warning("%s=%r is not a valid int; using default %d", name, raw, default)
            return default
        if value >= 1:
            return value
        logger.warning("%s=%r must be >= 1; using default %d", name, raw, default)
    return default


def _env_fraction(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if raw:
        try:
            value = float(raw)
        except ValueError:
            logger.warning("%s=%r is not a valid float; using default %s", name, raw, default)
            return default
        if 0.0 < value < 1.0:
            return value
        logger.warning("%s=%r must be in (0, 1); using default %s", name, raw, default)
    return default


def get_sample_size() -> int:
    """Return the configured sample size.

    Priority: config() call > AGENTPROBE_SAMPLE_SIZE env var > 10
    """
    if _sample_size is not None:
        return _sample_size
    return _env_int("AGENTPROBE_SAMPLE_SIZE", DEFAULT_SAMPLE_SIZE)


def get_confidence_level() -> float:
    """Return the configured confidence level.

    Priority: config() call > AGENTPROBE_CONFIDENCE_LEVEL env var > 0.95
    """
    if _confidence_level is not None:
        return _confidence_level
    return _env_fraction("AGENTPROBE_CONFIDENCE_LEVEL", DEFAULT_CONFIDENCE_LEVEL)


def get_significance_level() -> float:
    """Return the configured significance level (alpha).

    Priority: config() call > AGENTPROBE_SIGNIFICANCE_LEVEL env var > 0.05
    """
    if _significance_level is not None:
        return _significance_level
    return _env_fraction("AGENTPROBE_SIGNIFICANCE_LEVEL", DEFAULT_SIGNIFICANCE_LEVEL)


def get_max_iterations() -> int:
    """Return the configured multi-agent iteration cap.

    Priority: config() call > AGENTPROBE_MAX_ITERATIONS env var > 10
    """
    if _max_iterations is not None:
        return _max_iterations
    return _env_int("AGENTPROBE_MAX_ITERATIONS", DEFAULT_MAX_ITERATIONS)


def get_max_concurrency() -> int:
    """Return the configured sampling concurrency bound.

    Priority: config() call > AGENTPROBE_MAX_CONCURRENCY env var > 5
    """
    if _max_concurrency is not None:
        return _max_concurrency
    return _env_int("AGENTPROBE_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY)


def reset() -> None:
    """Reset configuration to defaults. Intended for test teardown."""
    global _sample_size  # noqa: PLW0603
    global _confidence_level  # noqa: PLW0603
    global _significance_level  # noqa: PLW0603
    global _max_iterations  # noqa: PLW0603
    global _max_concurrency  # noqa: PLW0603
    _sample_size = None
    _confidence_level = None
    _significance_level = None
    _max_iterations = None
    _max_concurrency = None
