"""Built-in metric factories for QualityEvaluator."""

from __future__ import annotations

import json
import re

from agentprobe.evaluator import Metric
from agentprobe.types import MetricResult

DEFAULT_ERROR_MARKERS: tuple[str, ...] = (
    "error",
    "exception",
    "traceback",
    "i cannot",
    "i can't",
    "undefined",
    "null",
)

_WORD_RE = re.compile(r"[a-z0-9]+")
_STOPWORDS = frozenset(
    "a an and are as at be by for from how in is it of on or that the this to what "
    "when where which who why with".split()
)


def _tokens(text: str) -> set[str]:
    return {t for t in _WORD_RE.findall(text.lower()) if t not in _STOPWORDS}


def _scored(
    name: str, score: float, threshold: float, details: str = "", **metadata: object
) -> MetricResult:
    return MetricResult(name=name, score=score, passed=score >= threshold, threshold=threshold,
                        details=details, metadata=metadata)


def length_metric(
    min_length: int = 1, max_length: int | None = None, threshold: float = 1.0
) -> Metric:
    """Full score inside [min_length, max_length]; proportional outside."""

    def calculate(input: str, output: str) -> MetricResult:
        length = len(output.strip())
        if length < min_length:
            score = length / min_length if min_length else 0.0
            details = f"{length} chars, below minimum {min_length}"
        elif max_length is not None and length > max_length:
            score = max_length / length
            details = f"{length} chars, above maximum {max_length}"
        else:
            score = 1.0
            details = f"{length} chars"
        return _scored("length", score, threshold, details, length=length)

    return Metric(name="length", calculate=calculate, threshold=threshold,
                  description="Output length within bounds")


def keyword_coverage_metric(keywords: list[str], threshold: float = 0.7) -> Metric:
    """Fraction of keywords present in the output (case-insensitive)."""
    if not keywords:
        raise ValueError("keyword_coverage_metric needs at least one keyword")

    def calculate(input: str, output: str) -> MetricResult:
        lowered = output.lower()
        found = [k for k in keywords if k.lower() in lowered]
        missing = [k for k in keywords if k.lower() not in lowered]
        return _scored(
            "keyword_coverage",
            len(found) / len(keywords),
            threshold,
            f"missing: {', '.join(missing)}" if missing else "all keywords present",
            found=found,
            missing=missing,
        )

    return Metric(name="keyword_coverage", calculate=calculate, threshold=threshold,
                  description="Expected keywords appear in output")


def relevance_metric(threshold: float = 0.3) -> Metric:
    """Share of the input's content words that the output echoes."""

    def calculate(input: str, output: str) -> float:
        wanted = _tokens(input)
        if not wanted:
            return 1.0
        return len(wanted & _tokens(output)) / len(wanted)

    return Metric(name="relevance", calculate=calculate, threshold=threshold,
                  description="Lexical overlap between input and output")


def json_format_metric(required_keys: list[str] | None = None, threshold: float = 1.0) -> Metric:
    """1.0 for a JSON object containing required_keys, partial credit for missing keys."""

    def calculate(input: str, output: str) -> MetricResult:
        try:
            parsed = json.loads(output)
        except json.JSONDecodeError as exc:
            return _scored("json_format", 0.0, threshold, f"invalid JSON: {exc.msg}")
        if not required_keys:
            return _scored("json_format", 1.0, threshold)
        if not isinstance(parsed, dict):
            return _scored("json_format", 0.0, threshold, "JSON is not an object")
        present = [k for k in required_keys if k in parsed]
        return _scored(
            "json_format", len(present) / len(required_keys), threshold,
            f"{len(present)}/{len(required_keys)} required keys",
        )

    return Metric(name="json_format", calculate=calculate, threshold=threshold,
                  description="Output parses as JSON with required keys")


def no_error_markers_metric(
    markers: tuple[str, ...] | list[str] = DEFAULT_ERROR_MARKERS, threshold: float = 1.0
) -> Metric:
    """0.0 if any error marker appears in the output, 1.0 otherwise."""

    def calculate(input: str, output: str) -> MetricResult:
        lowered = output.lower()
        hits = [m for m in markers if m in lowered]
        return _scored("no_error_markers", 0.0 if hits else 1.0, threshold,
                       f"found: {', '.join(hits)}" if hits else "")

    return Metric(name="no_error_markers", calculate=calculate, threshold=threshold,
                  description="Output contains no error markers")
