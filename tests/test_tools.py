"""Tests for the tool registry, chain validation and chain execution."""

from __future__ import annotations

from typing import Any

import pytest

from agentprobe.exceptions import ToolNotFoundError
from agentprobe.tools import ToolDefinition, ToolRegistry, schema_errors
from agentprobe.types import ToolResult


def _tool(
    name: str,
    outputs: dict[str, Any],
    required: list[str],
    execute: Any = None,
    inputs: dict[str, Any] | None = None,
) -> ToolDefinition:
    properties = inputs or {field: {"type": "string"} for field in required}
    return ToolDefinition(
        name=name,
        description=f"{name} tool",
        input_schema={"type": "object", "properties": properties, "required": required},
        output_schema={"type": "object", "properties": outputs},
        execute=execute or (lambda params: ToolResult.ok({})),
    )


# ---------------------------------------------------------------------------
# ToolResult
# ---------------------------------------------------------------------------


def test_tool_result_constructors() -> None:
    ok = ToolResult.ok({"x": 1})
    assert ok.success and ok.data == {"x": 1} and ok.error is None
    failed = ToolResult.fail("bad input")
    assert not failed.success and failed.error == "bad input" and failed.data is None


def test_tool_result_rejects_inconsistent_fields() -> None:
    with pytest.raises(ValueError):
        ToolResult(success=True, error="boom")
    with pytest.raises(ValueError):
        ToolResult(success=False)
    with pytest.raises(ValueError):
        ToolResult(success=False, data={"x": 1}, error="boom")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_registry_lookup(registry: ToolRegistry) -> None:
    assert registry.names == ["fetch", "transform", "save"]
    assert "fetch" in registry
    assert len(registry) == 3
    with pytest.raises(ToolNotFoundError, match="missing"):
        registry.get("missing")


# ---------------------------------------------------------------------------
# validate_chain
# ---------------------------------------------------------------------------


def test_compatible_chain_has_no_issues(registry: ToolRegistry) -> None:
    assert registry.validate_chain(["fetch", "transform", "save"]) == []


def test_missing_required_field_reported_once() -> None:
    registry = ToolRegistry(
        [
            _tool("A", outputs={"x": {"type": "string"}}, required=[]),
            _tool("B", outputs={}, required=["x", "y"]),
        ]
    )
    issues = registry.validate_chain(["A", "B"])
    assert len(issues) == 1
    assert issues[0].field == "y"
    assert (issues[0].index, issues[0].from_tool, issues[0].to_tool) == (0, "A", "B")


def test_incompatibility_reported_at_failing_pair_regardless_of_tail() -> None:
    registry = ToolRegistry(
        [
            _tool("X", outputs={"a": {"type": "string"}}, required=[]),
            _tool("Y", outputs={"b": {"type": "string"}}, required=["missing"]),
            _tool("Z", outputs={}, required=["b"]),
        ]
    )
    issues = registry.validate_chain(["X", "Y", "Z"])
    assert [(i.index, i.from_tool, i.to_tool, i.field) for i in issues] == [
        (0, "X", "Y", "missing")
    ]


def test_type_mismatch_reported() -> None:
    registry = ToolRegistry(
        [
            _tool("count", outputs={"n": {"type": "string"}}, required=[]),
            _tool("double", outputs={}, required=["n"], inputs={"n": {"type": "number"}}),
        ]
    )
    issues = registry.validate_chain(["count", "double"])
    assert len(issues) == 1
    assert issues[0].field == "n"
    assert "expects" in issues[0].reason


def test_integer_output_satisfies_number_input() -> None:
    registry = ToolRegistry(
        [
            _tool("count", outputs={"n": {"type": "integer"}}, required=[]),
            _tool("double", outputs={}, required=["n"], inputs={"n": {"type": "number"}}),
        ]
    )
    assert registry.validate_chain(["count", "double"]) == []


def test_unknown_tool_reported_not_raised(registry: ToolRegistry) -> None:
    issues = registry.validate_chain(["fetch", "nope"])
    assert len(issues) == 1
    assert issues[0].index == 1
    assert "Unknown tool" in issues[0].reason


def test_declared_transform_satisfies_field() -> None:
    registry = ToolRegistry(
        [
            _tool("A", outputs={"x": {"type": "string"}}, required=[]),
            _tool("B", outputs={}, required=["x", "y"]),
        ]
    )
    registry.register_transform("A", "B", lambda out: {**out, "y": "derived"}, provides=["y"])
    assert registry.validate_chain(["A", "B"]) == []


# ---------------------------------------------------------------------------
# execute_chain
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_execute_chain_success(registry: ToolRegistry) -> None:
    result = await registry.execute_chain(["fetch", "transform", "save"], {"url": "a.com"})
    assert result.success
    assert [s.tool for s in result.steps] == ["fetch", "transform", "save"]
    assert result.steps[1].output["summary"] == "PAGE ABOUT A.COM"
    assert result.output == {"saved": True, "id": "doc-1"}
    assert result.error is None


@pytest.mark.asyncio
async def test_execute_chain_preserves_prior_steps_on_failure(
    fetch_tool: ToolDefinition, save_tool: ToolDefinition
) -> None:
    def broken(params: dict[str, Any]) -> ToolResult:
        raise RuntimeError("transform service down")

    failing = ToolDefinition(
        name="transform",
        description="broken",
        input_schema={"type": "object", "required": ["content"]},
        output_schema={"type": "object", "properties": {"summary": {"type": "string"}}},
        execute=broken,
    )
    registry = ToolRegistry([fetch_tool, failing, save_tool])
    result = await registry.execute_chain(["fetch", "transform", "save"], {"url": "a.com"})

    assert not result.success
    assert len(result.steps) == 2
    assert result.steps[0].success
    assert not result.steps[1].success
    assert "transform service down" in (result.steps[1].error or "")
    assert result.failed_step is result.steps[1]


@pytest.mark.asyncio
async def test_execute_chain_invalid_input(registry: ToolRegistry) -> None:
    result = await registry.execute_chain(["fetch", "transform"], {"link": "a.com"})
    assert not result.success
    assert len(result.steps) == 1
    assert result.steps[0].error is not None
    assert result.steps[0].error.startswith("Invalid input for fetch")
    assert "url" in result.steps[0].error


@pytest.mark.asyncio
async def test_execute_chain_invalid_output(fetch_tool: ToolDefinition) -> None:
    liar = ToolDefinition(
        name="liar",
        description="returns the wrong shape",
        input_schema={"type": "object", "required": ["content"]},
        output_schema={
            "type": "object",
            "properties": {"summary": {"type": "string"}},
            "required": ["summary"],
        },
        execute=lambda params: ToolResult.ok({"summary": 42}),
    )
    registry = ToolRegistry([fetch_tool, liar])
    result = await registry.execute_chain(["fetch", "liar"], {"url": "a.com"})
    assert not result.success
    assert len(result.steps) == 2
    assert (result.steps[1].error or "").startswith("Invalid output from liar")
    assert "summary" in (result.steps[1].error or "")


@pytest.mark.asyncio
async def test_execute_chain_business_failure(fetch_tool: ToolDefinition) -> None:
    refuse = ToolDefinition(
        name="refuse",
        description="always declines",
        input_schema={"type": "object", "required": ["content"]},
        output_schema={"type": "object"},
        execute=lambda params: ToolResult.fail("content too short"),
    )
    registry = ToolRegistry([fetch_tool, refuse])
    result = await registry.execute_chain(["fetch", "refuse"], {"url": "a.com"})
    assert not result.success
    assert result.error == "content too short"


@pytest.mark.asyncio
async def test_execute_chain_rejects_incompatible_chain_without_running() -> None:
    calls: list[str] = []

    def record(params: dict[str, Any]) -> ToolResult:
        calls.append("A")
        return ToolResult.ok({"x": "1"})

    registry = ToolRegistry(
        [
            _tool("A", outputs={"x": {"type": "string"}}, required=[], execute=record),
            _tool("B", outputs={}, required=["x", "y"]),
        ]
    )
    result = await registry.execute_chain(["A", "B"], {})
    assert not result.success
    assert result.steps == []
    assert len(result.incompatibilities) == 1
    assert calls == []


@pytest.mark.asyncio
async def test_execute_chain_applies_transform_and_supports_async_tools() -> None:
    async def produce(params: dict[str, Any]) -> ToolResult:
        return ToolResult.ok({"x": "hello"})

    def consume(params: dict[str, Any]) -> ToolResult:
        return ToolResult.ok({"joined": f"{params['x']}-{params['y']}"})

    registry = ToolRegistry(
        [
            _tool("A", outputs={"x": {"type": "string"}}, required=[], execute=produce),
            _tool("B", outputs={"joined": {"type": "string"}}, required=["x", "y"], execute=consume),
        ]
    )
    registry.register_transform("A", "B", lambda out: {**out, "y": "world"}, provides=["y"])
    result = await registry.execute_chain(["A", "B"], {})
    assert result.success
    assert result.output == {"joined": "hello-world"}


@pytest.mark.asyncio
async def test_tool_returning_non_result_is_execution_failure() -> None:
    registry = ToolRegistry([_tool("raw", outputs={}, required=[], execute=lambda p: {"x": 1})])
    result = await registry.execute_chain(["raw"], {})
    assert not result.success
    assert "expected ToolResult" in (result.error or "")


def test_schema_errors_names_field() -> None:
    schema = {
        "type": "object",
        "properties": {"age": {"type": "integer"}},
        "required": ["age", "name"],
    }
    errors = schema_errors(schema, {"age": "old"})
    assert any("name" in e for e in errors)
    assert any(e.startswith("age:") for e in errors)


def test_chain_result_to_dict(registry: ToolRegistry) -> None:
    issues = registry.validate_chain(["save", "fetch"])
    assert issues[0].to_dict()["field"] == "url"
