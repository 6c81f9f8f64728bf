"""Research agent: plan subtasks, run a tool per subtask, synthesize a report."""

from __future__ import annotations

import json
from typing import Any

from agentprobe.client import GenerationClient
from agentprobe.tools import ToolDefinition
from agentprobe.types import ToolResult


class ResearchAgent:
    """Plans an investigation with the model, gathers evidence, then writes it up.

    The plan is requested as JSON: ``{"title": ..., "subtasks": [{"id",
    "description", "tool"}]}``. Each subtask's tool is called with its
    description as the query; failed subtasks are skipped in the synthesis.
    """

    def __init__(self, client: GenerationClient, tools: dict[str, ToolDefinition]) -> None:
        self.client = client
        self.tools = tools

    async def run(self, topic: str) -> dict[str, Any]:
        plan = json.loads(await self.client.generate(f"Create an investigation plan for: {topic}"))

        findings: list[str] = []
        failed: list[str] = []
        for subtask in plan["subtasks"]:
            tool = self.tools[subtask["tool"]]
            result = await tool.invoke({"query": subtask["description"]})
            if result.success:
                findings.extend(result.data["results"])
            else:
                failed.append(subtask["id"])

        summary = await self.client.generate(
            f"Synthesize findings on {topic}:\n" + "\n".join(f"- {f}" for f in findings)
        )
        return {
            "title": plan["title"],
            "summary": summary,
            "findings": findings,
            "failed_subtasks": failed,
        }


def _search(params: dict[str, Any]) -> ToolResult:
    return ToolResult.ok({"results": [f"article about {params['query']}"]})


search_tool = ToolDefinition(
    name="search",
    description="Search the web for a query",
    input_schema={
        "type": "object",
        "properties": {"query": {"type": "string"}},
        "required": ["query"],
    },
    output_schema={
        "type": "object",
        "properties": {"results": {"type": "array", "items": {"type": "string"}}},
        "required": ["results"],
    },
    execute=_search,
)
