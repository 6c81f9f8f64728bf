from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Event type constants
# ---------------------------------------------------------------------------

EVENT_CALL: str = "call"
EVENT_RESULT: str = "result"
EVENT_HANDOFF: str = "handoff"

EVENT_TYPES: tuple[str, ...] = (EVENT_CALL, EVENT_RESULT, EVENT_HANDOFF)

# Mapping keys that mark an agent or tool result as a handoff.
HANDOFF_KEYS: tuple[str, ...] = ("handoff_to", "target_agent")

# ---------------------------------------------------------------------------
# Gate severity constants
# ---------------------------------------------------------------------------

SEVERITY_BLOCKER: str = "blocker"
SEVERITY_CRITICAL: str = "critical"
SEVERITY_WARNING: str = "warning"

SEVERITIES: tuple[str, ...] = (SEVERITY_BLOCKER, SEVERITY_CRITICAL, SEVERITY_WARNING)
BLOCKING_SEVERITIES: frozenset[str] = frozenset({SEVERITY_BLOCKER, SEVERITY_CRITICAL})

# ---------------------------------------------------------------------------
# Criterion scale constants
# ---------------------------------------------------------------------------

SCALE_BINARY: str = "binary"
SCALE_ORDINAL_5: str = "ordinal-5"
SCALE_ORDINAL_7: str = "ordinal-7"
SCALE_NUMERIC: str = "numeric"

SCALE_RANGES: dict[str, tuple[float, float] | None] = {
    SCALE_BINARY: (0, 1),
    SCALE_ORDINAL_5: (1, 5),
    SCALE_ORDINAL_7: (1, 7),
    SCALE_NUMERIC: None,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _serialize(value: Any) -> Any:
    """Recursively convert dataclass instances to dicts for JSON serialization."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def extract_handoff_target(value: Any) -> str | None:
    """Return the target agent named by a handoff-shaped result, else None."""
    if not isinstance(value, dict):
        return None
    for key in HANDOFF_KEYS:
        target = value.get(key)
        if isinstance(target, str) and target:
            return target
    return None


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CallRecord:
    """One call made against a substitute client. Immutable once recorded."""

    prompt: str
    messages: tuple[dict[str, Any], ...] | None = None
    config: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"prompt": self.prompt}
        if self.messages is not None:
            d["messages"] = [dict(m) for m in self.messages]
        if self.config is not None:
            d["config"] = dict(self.config)
        return d


@dataclass
class ToolResult:
    """Outcome of a tool execution.

    Exactly one of ``data`` / ``error`` is meaningful: ``data`` when
    ``success`` is True, ``error`` when it is False.
    """

    success: bool
    data: Any = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("A successful ToolResult cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("A failed ToolResult requires an error message")
        if not self.success and self.data is not None:
            raise ValueError("A failed ToolResult cannot carry data")

    @classmethod
    def ok(cls, data: Any = None) -> ToolResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> ToolResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": _serialize(self.data)}
        return {"success": False, "error": self.error}


@dataclass(frozen=True)
class ExecutionEvent:
    type: str
    actor: str
    payload: Any = None
    timestamp_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "actor": self.actor,
            "payload": _serialize(self.payload),
            "timestamp_ms": self.timestamp_ms,
        }


@dataclass(frozen=True)
class EvaluationCriterion:
    name: str
    description: str = ""
    scale: str = SCALE_ORDINAL_5
    weight: float = 1.0

    def __post_init__(self) -> None:
        if self.scale not in SCALE_RANGES:
            raise ValueError(
                f"Unknown scale {self.scale!r}; expected one of {sorted(SCALE_RANGES)}"
            )
        if self.weight < 0:
            raise ValueError(f"Criterion weight must be >= 0, got {self.weight}")

    def validate_rating(self, rating: float) -> None:
        """Raise ValueError if rating lies outside this criterion's scale."""
        bounds = SCALE_RANGES[self.scale]
        if bounds is None:
            return
        low, high = bounds
        if not low <= rating <= high:
            raise ValueError(
                f"Rating {rating} for {self.name!r} outside {self.scale} range [{low}, {high}]"
            )
        if self.scale != SCALE_NUMERIC and rating != int(rating):
            raise ValueError(f"Rating for {self.name!r} must be a whole number, got {rating}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "scale": self.scale,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EvaluationCriterion:
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            scale=data.get("scale", SCALE_ORDINAL_5),
            weight=data.get("weight", 1.0),
        )


@dataclass
class MetricResult:
    name: str
    score: float
    passed: bool
    threshold: float
    details: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "passed": self.passed,
            "threshold": self.threshold,
            "details": self.details,
            "metadata": _serialize(self.metadata),
        }


@dataclass
class QualityGateResult:
    gate_name: str
    severity: str
    passed: bool
    message: str = ""

    @property
    def blocking(self) -> bool:
        """True if this result failed at a severity that fails the run."""
        return not self.passed and self.severity in BLOCKING_SEVERITIES

    def to_dict(self) -> dict[str, Any]:
        return {
            "gate_name": self.gate_name,
            "severity": self.severity,
            "passed": self.passed,
            "message": self.message,
        }
