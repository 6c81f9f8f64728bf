"""Harness for running an agent against a substitute client and tracked tools."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any

from agentprobe.mock_client import MockLLMClient
from agentprobe.result import AgentRunResult
from agentprobe.tools import ToolDefinition
from agentprobe.trace import TraceRecorder
from agentprobe.types import ExecutionEvent

logger = logging.getLogger("agentprobe.harness")

AgentFactory = Callable[[MockLLMClient, dict[str, ToolDefinition]], Any]


async def invoke_agent(agent: Any, message: Any) -> Any:
    """Call an agent object (``run`` method) or callable, awaiting if needed."""
    target = agent.run if hasattr(agent, "run") else agent
    if not callable(target):
        raise TypeError(f"Agent {agent!r} is neither callable nor has a run() method")
    output = target(message)
    if inspect.isawaitable(output):
        output = await output
    return output


class AgentTestHarness:
    """Composes a substitute client, tracked tools and an agent under test.

    The factory receives the client and a dict of tracked tools keyed by
    name, and returns the agent: either a callable or an object with a
    ``run`` method, sync or async, taking the input.

    Usage:
        harness = AgentTestHarness(
            lambda client, tools: ResearchAgent(client, tools),
            client=MockLLMClient().set_response("plan", '{"steps": []}'),
            tools=[search_tool],
        )
        result = await harness.execute("Impact of AI on testing")
        harness.assert_called_times("search", 1)
    """

    def __init__(
        self,
        agent_factory: AgentFactory,
        client: MockLLMClient | None = None,
        tools: list[ToolDefinition] | None = None,
        name: str = "agent",
    ) -> None:
        self.name = name
        self._factory = agent_factory
        self._client = client or MockLLMClient(name=name)
        self._recorder = TraceRecorder()
        self._tools: dict[str, ToolDefinition] = {
            tool.name: self._recorder.wrap_tool(tool) for tool in tools or []
        }

    @property
    def client(self) -> MockLLMClient:
        return self._client

    @property
    def recorder(self) -> TraceRecorder:
        return self._recorder

    @property
    def tools(self) -> dict[str, ToolDefinition]:
        return dict(self._tools)

    @property
    def events(self) -> list[ExecutionEvent]:
        return self._recorder.events

    async def execute(self, input: Any) -> AgentRunResult:
        """Run the agent once and capture outcome, timing and trace."""
        start_index = len(self._recorder)
        calls_before = self._client.call_count
        started = time.perf_counter()

        try:
            agent = self._factory(self._client, dict(self._tools))
            run = self._recorder.wrap(self.name, lambda message: invoke_agent(agent, message))
            output = await run(input)
        except Exception as exc:
            duration_ms = int((time.perf_counter() - started) * 1000)
            logger.warning("Agent %r failed: %s", self.name, exc)
            return AgentRunResult(
                success=False,
                error=str(exc) or type(exc).__name__,
                duration_ms=duration_ms,
                events=self._recorder.events[start_index:],
                llm_calls=self._client.call_count - calls_before,
            )

        return AgentRunResult(
            success=True,
            output=output,
            duration_ms=int((time.perf_counter() - started) * 1000),
            events=self._recorder.events[start_index:],
            llm_calls=self._client.call_count - calls_before,
        )

    def run(self, input: Any) -> AgentRunResult:
        """Run the agent synchronously. Must not be called from a running loop."""
        return asyncio.run(self.execute(input))

    # ── Assertion pass-throughs ──

    def assert_called_with(
        self, actor: str, pattern: dict[str, Any] | str | None = None
    ) -> ExecutionEvent:
        return self._recorder.assert_called_with(actor, pattern)

    def assert_call_order(self, expected: list[str]) -> None:
        self._recorder.assert_call_order(expected)

    def assert_called_times(self, actor: str, times: int) -> None:
        self._recorder.assert_called_times(actor, times)
