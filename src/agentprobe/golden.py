"""Golden-set regression runs against a generation client."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from agentprobe.client import GenerationClient
from agentprobe.tools import schema_errors

logger = logging.getLogger("agentprobe.golden")

RULE_CONTAINS: str = "contains"
RULE_NOT_CONTAINS: str = "not_contains"
RULE_REGEX: str = "regex"
RULE_EQUALS: str = "equals"
RULE_MIN_LENGTH: str = "min_length"
RULE_MAX_LENGTH: str = "max_length"
RULE_JSON_SCHEMA: str = "json_schema"


def _check_contains(output: str, value: Any) -> str | None:
    if str(value).lower() not in output.lower():
        return f"expected output to contain {value!r}"
    return None


def _check_not_contains(output: str, value: Any) -> str | None:
    if str(value).lower() in output.lower():
        return f"expected output not to contain {value!r}"
    return None


def _check_regex(output: str, value: Any) -> str | None:
    if re.search(str(value), output) is None:
        return f"expected output to match /{value}/"
    return None


def _check_equals(output: str, value: Any) -> str | None:
    if output.strip() != str(value).strip():
        return f"expected output to equal {value!r}"
    return None


def _check_min_length(output: str, value: Any) -> str | None:
    if len(output.strip()) < int(value):
        return f"expected at least {value} chars, got {len(output.strip())}"
    return None


def _check_max_length(output: str, value: Any) -> str | None:
    if len(output) > int(value):
        return f"expected at most {value} chars, got {len(output)}"
    return None


def _check_json_schema(output: str, value: Any) -> str | None:
    try:
        parsed = json.loads(output)
    except json.JSONDecodeError as exc:
        return f"expected JSON output: {exc.msg}"
    errors = schema_errors(value, parsed)
    if errors:
        return "schema violations: " + "; ".join(errors)
    return None


RULE_CHECKS: dict[str, Callable[[str, Any], str | None]] = {
    RULE_CONTAINS: _check_contains,
    RULE_NOT_CONTAINS: _check_not_contains,
    RULE_REGEX: _check_regex,
    RULE_EQUALS: _check_equals,
    RULE_MIN_LENGTH: _check_min_length,
    RULE_MAX_LENGTH: _check_max_length,
    RULE_JSON_SCHEMA: _check_json_schema,
}


def _rule_value_error(rule_type: str, value: Any) -> str | None:
    """Describe why value cannot parameterise rule_type, or return None."""
    if value is None:
        return "missing 'value'"
    if rule_type == RULE_REGEX:
        try:
            re.compile(str(value))
        except re.error as exc:
            return f"invalid regex {value!r}: {exc}"
    elif rule_type in (RULE_MIN_LENGTH, RULE_MAX_LENGTH):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return f"expected a non-negative integer, got {value!r}"
    elif rule_type == RULE_JSON_SCHEMA:
        if not isinstance(value, dict):
            return f"expected a schema object, got {type(value).__name__}"
        try:
            Draft202012Validator.check_schema(value)
        except SchemaError as exc:
            return f"invalid schema: {exc.message}"
    return None


@dataclass
class GoldenCase:
    """A curated input with an exact expected output and/or validation rules."""

    id: str
    input: str
    expected: str | None = None
    rules: list[dict[str, Any]] = field(default_factory=list)
    description: str = ""

    def __post_init__(self) -> None:
        for rule in self.rules:
            if rule.get("type") not in RULE_CHECKS:
                raise ValueError(
                    f"Golden case {self.id!r}: unknown rule type {rule.get('type')!r}; "
                    f"expected one of {sorted(RULE_CHECKS)}"
                )
            problem = _rule_value_error(rule["type"], rule.get("value"))
            if problem is not None:
                raise ValueError(f"Golden case {self.id!r}: {rule['type']} rule {problem}")

    def validate(self, output: str) -> list[str]:
        """Return one error per violated expectation."""
        errors: list[str] = []
        if self.expected is not None:
            error = _check_equals(output, self.expected)
            if error:
                errors.append(error)
        for rule in self.rules:
            error = RULE_CHECKS[rule["type"]](output, rule.get("value"))
            if error:
                errors.append(error)
        return errors

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "input": self.input}
        if self.expected is not None:
            d["expected"] = self.expected
        if self.rules:
            d["rules"] = [dict(r) for r in self.rules]
        if self.description:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GoldenCase:
        return cls(
            id=str(data["id"]),
            input=data["input"],
            expected=data.get("expected"),
            rules=list(data.get("rules", [])),
            description=data.get("description", ""),
        )


@dataclass
class GoldenCaseResult:
    case_id: str
    passed: bool
    output: str = ""
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "case_id": self.case_id,
            "passed": self.passed,
            "output": self.output,
            "errors": list(self.errors),
        }


@dataclass
class GoldenSetReport:
    results: list[GoldenCaseResult] = field(default_factory=list)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.passed_count

    @property
    def success(self) -> bool:
        return self.failed_count == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def failures(self) -> list[GoldenCaseResult]:
        return [r for r in self.results if not r.passed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "passed": self.passed_count,
            "failed": self.failed_count,
            "results": [r.to_dict() for r in self.results],
        }


class GoldenSetRunner:
    """Runs golden cases through a client and validates every output."""

    def __init__(self, client: GenerationClient, config: dict[str, Any] | None = None) -> None:
        self._client = client
        self._config = config

    async def run_case(self, case: GoldenCase) -> GoldenCaseResult:
        try:
            output = await self._client.generate(case.input, self._config)
        except Exception as exc:
            logger.error("Error executing golden case %s: %s", case.id, exc)
            return GoldenCaseResult(
                case_id=case.id, passed=False, errors=[f"Execution error: {exc}"]
            )
        try:
            errors = case.validate(output)
        except Exception as exc:
            logger.error("Error validating golden case %s: %s", case.id, exc)
            return GoldenCaseResult(
                case_id=case.id, passed=False, output=output, errors=[f"Validation error: {exc}"]
            )
        if errors:
            logger.warning("Golden case %s failed: %s", case.id, "; ".join(errors))
        return GoldenCaseResult(case_id=case.id, passed=not errors, output=output, errors=errors)

    async def run(self, cases: list[GoldenCase]) -> GoldenSetReport:
        report = GoldenSetReport()
        for case in cases:
            report.results.append(await self.run_case(case))
        logger.info("Golden set: %d passed, %d failed", report.passed_count, report.failed_count)
        return report
