"""Severity-tagged quality gates with a CI-style verdict."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Union

from agentprobe.metrics import DEFAULT_ERROR_MARKERS
from agentprobe.types import (
    SEVERITIES,
    SEVERITY_BLOCKER,
    SEVERITY_CRITICAL,
    SEVERITY_WARNING,
    QualityGateResult,
)

logger = logging.getLogger("agentprobe.gates")

CheckOutcome = Union[bool, tuple[bool, str]]
Check = Callable[[str], CheckOutcome]

DEFAULT_HEDGING_PHRASES: tuple[str, ...] = (
    "i'm not sure",
    "i am not sure",
    "i think",
    "maybe",
    "possibly",
    "might be",
    "i don't know",
    "it is unclear",
)


@dataclass
class QualityGate:
    name: str
    check: Check
    severity: str = SEVERITY_BLOCKER
    description: str = ""

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity {self.severity!r}; expected one of {SEVERITIES}")


@dataclass
class QualityGateReport:
    results: list[QualityGateResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """False iff any blocker or critical gate failed."""
        return not any(r.blocking for r in self.results)

    @property
    def failed_gates(self) -> list[QualityGateResult]:
        return [r for r in self.results if not r.passed]

    @property
    def warnings(self) -> list[QualityGateResult]:
        return [r for r in self.results if not r.passed and r.severity == SEVERITY_WARNING]

    @property
    def summary(self) -> dict[str, dict[str, int]]:
        """Passed/failed counts per severity."""
        counts = {severity: {"passed": 0, "failed": 0} for severity in SEVERITIES}
        for r in self.results:
            counts[r.severity]["passed" if r.passed else "failed"] += 1
        return counts

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def format(self) -> str:
        """Human-readable report for CI logs."""
        verdict = "PASSED" if self.passed else "FAILED"
        lines = [f"Quality gates {verdict}"]
        for r in self.results:
            mark = "ok  " if r.passed else "FAIL"
            line = f"  [{mark}] {r.gate_name} ({r.severity})"
            if r.message and not r.passed:
                line += f": {r.message}"
            lines.append(line)
        counts = self.summary
        lines.append(
            "  " + ", ".join(
                f"{severity}: {c['failed']} failed / {c['passed'] + c['failed']}"
                for severity, c in counts.items()
            )
        )
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "summary": self.summary,
            "results": [r.to_dict() for r in self.results],
        }


class QualityGateRunner:
    """Runs ordered checks against one output.

    A check returning False, or raising, fails its gate. Only blocker and
    critical failures fail the run; warnings are advisory.
    """

    def __init__(self, gates: list[QualityGate] | None = None) -> None:
        self._gates: list[QualityGate] = list(gates or [])

    def add_gate(
        self,
        name: str,
        check: Check,
        severity: str = SEVERITY_BLOCKER,
        description: str = "",
    ) -> QualityGateRunner:
        self._gates.append(
            QualityGate(name=name, check=check, severity=severity, description=description)
        )
        return self

    @property
    def gates(self) -> list[QualityGate]:
        return list(self._gates)

    def run(self, output: str) -> QualityGateReport:
        report = QualityGateReport()
        for gate in self._gates:
            report.results.append(self._run_gate(gate, output))
        if not report.passed:
            logger.warning(
                "Quality gates failed: %s",
                ", ".join(f"{r.gate_name}({r.severity})" for r in report.failed_gates),
            )
        return report

    def _run_gate(self, gate: QualityGate, output: str) -> QualityGateResult:
        try:
            outcome = gate.check(output)
        except Exception as exc:
            logger.warning("Gate %r raised: %s", gate.name, exc)
            return QualityGateResult(
                gate_name=gate.name,
                severity=gate.severity,
                passed=False,
                message=f"Check raised {type(exc).__name__}: {exc}",
            )
        if isinstance(outcome, tuple):
            passed, message = bool(outcome[0]), str(outcome[1])
        else:
            passed, message = bool(outcome), ""
        if not message:
            message = gate.description if passed else (gate.description or "check failed")
        return QualityGateResult(
            gate_name=gate.name, severity=gate.severity, passed=passed, message=message
        )


# ---------------------------------------------------------------------------
# Built-in checks
# ---------------------------------------------------------------------------


def min_length(length: int) -> Check:
    def check(output: str) -> CheckOutcome:
        actual = len(output.strip())
        return actual >= length, f"length {actual}, minimum {length}"

    return check


def max_length(length: int) -> Check:
    def check(output: str) -> CheckOutcome:
        actual = len(output)
        return actual <= length, f"length {actual}, maximum {length}"

    return check


def no_error_markers(markers: tuple[str, ...] | list[str] = DEFAULT_ERROR_MARKERS) -> Check:
    """Fail on blank output or any marker appearing in it (case-insensitive)."""

    def check(output: str) -> CheckOutcome:
        if not output.strip():
            return False, "output is empty"
        lowered = output.lower()
        hits = [m for m in markers if m in lowered]
        if hits:
            return False, f"error markers found: {', '.join(hits)}"
        return True, "no error markers"

    return check


def confidence(phrases: tuple[str, ...] | list[str] = DEFAULT_HEDGING_PHRASES) -> Check:
    """Fail when the output hedges or is empty."""

    def check(output: str) -> CheckOutcome:
        if not output.strip():
            return False, "output is empty"
        lowered = output.lower()
        hits = [p for p in phrases if p in lowered]
        if hits:
            return False, f"hedging phrases: {', '.join(hits)}"
        return True, "confident"

    return check


def valid_json() -> Check:
    def check(output: str) -> CheckOutcome:
        try:
            json.loads(output)
        except json.JSONDecodeError as exc:
            return False, f"invalid JSON: {exc.msg} at position {exc.pos}"
        return True, "valid JSON"

    return check


def contains_all(values: list[str], case_sensitive: bool = False) -> Check:
    def check(output: str) -> CheckOutcome:
        haystack = output if case_sensitive else output.lower()
        missing = [v for v in values if (v if case_sensitive else v.lower()) not in haystack]
        if missing:
            return False, f"missing: {', '.join(missing)}"
        return True, "all values present"

    return check


def default_gates() -> QualityGateRunner:
    """Common gate set: non-trivial length, no error markers, confident tone."""
    return (
        QualityGateRunner()
        .add_gate("min_length", min_length(10), SEVERITY_BLOCKER)
        .add_gate("no_error_markers", no_error_markers(), SEVERITY_CRITICAL)
        .add_gate("confidence", confidence(), SEVERITY_WARNING)
    )
