"""Shared test fixtures for agentprobe tests."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from agentprobe.config import reset
from agentprobe.mock_client import MockLLMClient
from agentprobe.tools import ToolDefinition, ToolRegistry
from agentprobe.types import ToolResult

pytest_plugins = ["pytester"]


@pytest.fixture(autouse=True)
def _reset_config() -> Generator[None, None, None]:
    reset()
    yield
    reset()


def _fetch(params: dict[str, Any]) -> ToolResult:
    return ToolResult.ok({"content": f"page about {params['url']}", "status": 200})


def _transform(params: dict[str, Any]) -> ToolResult:
    return ToolResult.ok({"summary": params["content"].upper(), "word_count": 3})


def _save(params: dict[str, Any]) -> ToolResult:
    return ToolResult.ok({"saved": True, "id": "doc-1"})


@pytest.fixture
def fetch_tool() -> ToolDefinition:
    return ToolDefinition(
        name="fetch",
        description="Fetch a URL",
        input_schema={
            "type": "object",
            "properties": {"url": {"type": "string"}},
            "required": ["url"],
        },
        output_schema={
            "type": "object",
            "properties": {"content": {"type": "string"}, "status": {"type": "integer"}},
            "required": ["content", "status"],
        },
        execute=_fetch,
    )


@pytest.fixture
def transform_tool() -> ToolDefinition:
    return ToolDefinition(
        name="transform",
        description="Summarize fetched content",
        input_schema={
            "type": "object",
            "properties": {"content": {"type": "string"}},
            "required": ["content"],
        },
        output_schema={
            "type": "object",
            "properties": {"summary": {"type": "string"}, "word_count": {"type": "integer"}},
            "required": ["summary"],
        },
        execute=_transform,
    )


@pytest.fixture
def save_tool() -> ToolDefinition:
    return ToolDefinition(
        name="save",
        description="Persist a summary",
        input_schema={
            "type": "object",
            "properties": {"summary": {"type": "string"}},
            "required": ["summary"],
        },
        output_schema={
            "type": "object",
            "properties": {"saved": {"type": "boolean"}, "id": {"type": "string"}},
            "required": ["saved"],
        },
        execute=_save,
    )


@pytest.fixture
def registry(
    fetch_tool: ToolDefinition, transform_tool: ToolDefinition, save_tool: ToolDefinition
) -> ToolRegistry:
    return ToolRegistry([fetch_tool, transform_tool, save_tool])


@pytest.fixture
def client() -> MockLLMClient:
    return (
        MockLLMClient()
        .set_response("Summarize", "OK")
        .set_response("plan", '{"steps": ["search", "write"]}')
    )
