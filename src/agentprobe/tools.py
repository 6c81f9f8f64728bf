"""Schema-typed tool registry with chain validation and execution."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft202012Validator

from agentprobe.exceptions import ToolNotFoundError
from agentprobe.types import ToolResult, _serialize

logger = logging.getLogger("agentprobe.tools")


@dataclass
class ToolDefinition:
    """A named tool with JSON-Schema input and output contracts.

    ``execute`` receives the validated input dict and returns a
    :class:`ToolResult` (sync or async). Business failures are returned as
    ``ToolResult.fail``; raised exceptions are treated as infrastructure
    failures.
    """

    name: str
    description: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any]
    execute: Callable[[dict[str, Any]], Any]

    @property
    def required_inputs(self) -> list[str]:
        return list(self.input_schema.get("required", []))

    @property
    def output_properties(self) -> dict[str, Any]:
        return dict(self.output_schema.get("properties", {}))

    async def invoke(self, params: dict[str, Any]) -> ToolResult:
        """Call execute, awaiting it if needed, and normalize the result."""
        result = self.execute(params)
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, ToolResult):
            raise TypeError(
                f"Tool {self.name!r} returned {type(result).__name__}, expected ToolResult"
            )
        return result


@dataclass
class ChainIncompatibility:
    """A contract mismatch between two adjacent tools in a chain."""

    index: int
    from_tool: str
    to_tool: str
    field: str | None
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "from_tool": self.from_tool,
            "to_tool": self.to_tool,
            "field": self.field,
            "reason": self.reason,
        }


@dataclass
class ChainStep:
    tool: str
    input: Any
    success: bool
    output: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "tool": self.tool,
            "input": _serialize(self.input),
            "success": self.success,
        }
        if self.success:
            d["output"] = _serialize(self.output)
        else:
            d["error"] = self.error
        return d


@dataclass
class ChainExecutionResult:
    success: bool
    steps: list[ChainStep] = field(default_factory=list)
    output: Any = None
    incompatibilities: list[ChainIncompatibility] = field(default_factory=list)

    @property
    def failed_step(self) -> ChainStep | None:
        """Return the step that halted the chain, if any."""
        for step in self.steps:
            if not step.success:
                return step
        return None

    @property
    def error(self) -> str | None:
        step = self.failed_step
        if step is not None:
            return step.error
        if self.incompatibilities:
            return "; ".join(i.reason for i in self.incompatibilities)
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "steps": [s.to_dict() for s in self.steps],
            "output": _serialize(self.output),
            "incompatibilities": [i.to_dict() for i in self.incompatibilities],
        }


@dataclass
class _Transform:
    fn: Callable[[dict[str, Any]], dict[str, Any]]
    provides: tuple[str, ...]


def schema_errors(schema: dict[str, Any], value: Any) -> list[str]:
    """Return readable ``field: message`` strings for every schema violation."""
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(value), key=lambda e: list(e.absolute_path))
    messages: list[str] = []
    for error in errors:
        path = ".".join(str(p) for p in error.absolute_path)
        if not path and error.validator == "required":
            # Top-level missing field: the field name is in the message.
            messages.append(error.message)
        else:
            messages.append(f"{path or '<root>'}: {error.message}")
    return messages


def _declared_type(schema: dict[str, Any] | None) -> str | list[str] | None:
    if not isinstance(schema, dict):
        return None
    return schema.get("type")


def _types_compatible(produced: Any, required: Any) -> bool:
    if produced is None or required is None:
        return True
    produced_set = set(produced) if isinstance(produced, list) else {produced}
    required_set = set(required) if isinstance(required, list) else {required}
    if "integer" in produced_set and "number" in required_set:
        produced_set = produced_set | {"number"}
    return produced_set <= required_set


class ToolRegistry:
    """Holds tool definitions and validates/executes tool chains."""

    def __init__(self, tools: list[ToolDefinition] | None = None) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._transforms: dict[tuple[str, str], _Transform] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> ToolRegistry:
        if tool.name in self._tools:
            logger.warning("Replacing previously registered tool %r", tool.name)
        self._tools[tool.name] = tool
        return self

    def register_transform(
        self,
        from_tool: str,
        to_tool: str,
        fn: Callable[[dict[str, Any]], dict[str, Any]],
        provides: list[str] | tuple[str, ...] = (),
    ) -> ToolRegistry:
        """Declare a mapping applied between from_tool's output and to_tool's input.

        provides lists the downstream input fields the transform makes
        available, so chain validation can account for them.
        """
        self._transforms[(from_tool, to_tool)] = _Transform(fn=fn, provides=tuple(provides))
        return self

    def get(self, name: str) -> ToolDefinition:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    # ── Static validation ──

    def validate_chain(self, names: list[str]) -> list[ChainIncompatibility]:
        """Check every adjacent pair in names for contract compatibility.

        Never raises: unknown tools are reported as incompatibilities.
        """
        issues: list[ChainIncompatibility] = []
        for position, name in enumerate(names):
            if name not in self._tools:
                issues.append(
                    ChainIncompatibility(
                        index=position,
                        from_tool=name,
                        to_tool=name,
                        field=None,
                        reason=f"Unknown tool {name!r}",
                    )
                )
        if issues:
            return issues

        for index in range(len(names) - 1):
            upstream = self._tools[names[index]]
            downstream = self._tools[names[index + 1]]
            issues.extend(self._pair_issues(index, upstream, downstream))
        return issues

    def _pair_issues(
        self, index: int, upstream: ToolDefinition, downstream: ToolDefinition
    ) -> list[ChainIncompatibility]:
        issues: list[ChainIncompatibility] = []
        produced = upstream.output_properties
        transform = self._transforms.get((upstream.name, downstream.name))
        provided = set(transform.provides) if transform is not None else set()
        wanted = downstream.input_schema.get("properties", {})

        for required in downstream.required_inputs:
            if required in provided:
                continue
            if required not in produced:
                issues.append(
                    ChainIncompatibility(
                        index=index,
                        from_tool=upstream.name,
                        to_tool=downstream.name,
                        field=required,
                        reason=(
                            f"{downstream.name} requires field {required!r} "
                            f"not produced by {upstream.name}"
                        ),
                    )
                )
                continue
            produced_type = _declared_type(produced[required])
            wanted_type = _declared_type(wanted.get(required))
            if not _types_compatible(produced_type, wanted_type):
                issues.append(
                    ChainIncompatibility(
                        index=index,
                        from_tool=upstream.name,
                        to_tool=downstream.name,
                        field=required,
                        reason=(
                            f"{upstream.name} produces {required!r} as {produced_type}, "
                            f"{downstream.name} expects {wanted_type}"
                        ),
                    )
                )
        return issues

    # ── Execution ──

    async def execute_chain(
        self, names: list[str], initial_input: dict[str, Any]
    ) -> ChainExecutionResult:
        """Run tools in order, validating every hand-over.

        Returns a structured result; steps completed before a failure are
        always kept.
        """
        incompatibilities = self.validate_chain(names)
        if incompatibilities:
            logger.warning(
                "Chain %s rejected: %d incompatibilities", " -> ".join(names), len(incompatibilities)
            )
            return ChainExecutionResult(success=False, incompatibilities=incompatibilities)

        steps: list[ChainStep] = []
        current: Any = initial_input
        for position, name in enumerate(names):
            tool = self._tools[name]

            input_errors = schema_errors(tool.input_schema, current)
            if input_errors:
                steps.append(
                    ChainStep(
                        tool=name,
                        input=current,
                        success=False,
                        error=f"Invalid input for {name}: {'; '.join(input_errors)}",
                    )
                )
                return ChainExecutionResult(success=False, steps=steps)

            try:
                result = await tool.invoke(current)
            except Exception as exc:
                logger.warning("Tool %r raised during chain execution: %s", name, exc)
                steps.append(
                    ChainStep(
                        tool=name,
                        input=current,
                        success=False,
                        error=f"Execution failed in {name}: {exc}",
                    )
                )
                return ChainExecutionResult(success=False, steps=steps)

            if not result.success:
                steps.append(
                    ChainStep(tool=name, input=current, success=False, error=result.error)
                )
                return ChainExecutionResult(success=False, steps=steps)

            output_errors = schema_errors(tool.output_schema, result.data)
            if output_errors:
                steps.append(
                    ChainStep(
                        tool=name,
                        input=current,
                        success=False,
                        error=f"Invalid output from {name}: {'; '.join(output_errors)}",
                    )
                )
                return ChainExecutionResult(success=False, steps=steps)

            steps.append(ChainStep(tool=name, input=current, success=True, output=result.data))
            current = result.data

            if position + 1 < len(names):
                next_name = names[position + 1]
                transform = self._transforms.get((name, next_name))
                if transform is None:
                    continue
                try:
                    current = transform.fn(current)
                except Exception as exc:
                    logger.warning("Transform %s -> %s raised: %s", name, next_name, exc)
                    steps.append(
                        ChainStep(
                            tool=next_name,
                            input=current,
                            success=False,
                            error=f"Transform from {name} to {next_name} failed: {exc}",
                        )
                    )
                    return ChainExecutionResult(success=False, steps=steps)

        return ChainExecutionResult(success=True, steps=steps, output=current)
