"""Multi-agent coordination testing with isolated clients and routed messages."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from agentprobe.config import get_max_iterations
from agentprobe.exceptions import AgentNotFoundError
from agentprobe.harness import invoke_agent
from agentprobe.mock_client import MockLLMClient
from agentprobe.trace import TraceRecorder
from agentprobe.types import EVENT_CALL, ExecutionEvent, _serialize, extract_handoff_target

logger = logging.getLogger("agentprobe.multi_agent")

MESSAGE_PENDING: str = "pending"
MESSAGE_DELIVERED: str = "delivered"
MESSAGE_PROCESSED: str = "processed"
MESSAGE_FAILED: str = "failed"


@dataclass
class AgentMessage:
    id: int
    from_agent: str
    to_agent: str
    content: Any
    status: str = MESSAGE_PENDING
    timestamp_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "from_agent": self.from_agent,
            "to_agent": self.to_agent,
            "content": _serialize(self.content),
            "status": self.status,
            "timestamp_ms": self.timestamp_ms,
        }


class MessageLog:
    """Ordered log of messages exchanged during one workflow run.

    Delivered messages are also appended to the receiving agent's queue.
    """

    def __init__(self) -> None:
        self._messages: list[AgentMessage] = []
        self._queues: dict[str, list[AgentMessage]] = {}

    def append(self, from_agent: str, to_agent: str, content: Any) -> AgentMessage:
        message = AgentMessage(
            id=len(self._messages) + 1,
            from_agent=from_agent,
            to_agent=to_agent,
            content=content,
            timestamp_ms=int(time.time() * 1000),
        )
        self._messages.append(message)
        return message

    @property
    def messages(self) -> list[AgentMessage]:
        return list(self._messages)

    def pending(self) -> list[AgentMessage]:
        return [m for m in self._messages if m.status == MESSAGE_PENDING]

    def deliver(self, message: AgentMessage) -> AgentMessage:
        message.status = MESSAGE_DELIVERED
        self._queues.setdefault(message.to_agent, []).append(message)
        return message

    def queue(self, agent: str) -> list[AgentMessage]:
        return list(self._queues.get(agent, []))

    @property
    def queues(self) -> dict[str, list[AgentMessage]]:
        return {agent: list(q) for agent, q in self._queues.items()}

    def __len__(self) -> int:
        return len(self._messages)


@dataclass
class Channel:
    from_agent: str
    to_agent: str
    route: Callable[[Any], bool] | None = None

    def accepts(self, output: Any) -> bool:
        return self.route is None or bool(self.route(output))


@dataclass
class WorkflowResult:
    success: bool
    outputs: dict[str, list[Any]] = field(default_factory=dict)
    messages: list[AgentMessage] = field(default_factory=list)
    queues: dict[str, list[AgentMessage]] = field(default_factory=dict)
    iterations: int = 0
    events: list[ExecutionEvent] = field(default_factory=list)
    error: str | None = None
    terminated: bool = False
    final_output: Any = None

    @property
    def agent_sequence(self) -> list[str]:
        """Agents in the order they were invoked."""
        return [e.actor for e in self.events if e.type == EVENT_CALL]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "success": self.success,
            "iterations": self.iterations,
            "terminated": self.terminated,
            "outputs": _serialize(self.outputs),
            "messages": [m.to_dict() for m in self.messages],
            "queues": {a: [m.id for m in q] for a, q in self.queues.items()},
            "events": [e.to_dict() for e in self.events],
            "final_output": _serialize(self.final_output),
        }
        if self.error is not None:
            d["error"] = self.error
        return d


@dataclass
class _RegisteredAgent:
    factory: Callable[[MockLLMClient], Any]
    client: MockLLMClient


class MultiAgentTester:
    """Orchestrates several agents, each with its own substitute client.

    Usage:
        tester = MultiAgentTester()
        tester.register_agent("planner", make_planner).set_response("plan", "...")
        tester.register_agent("writer", make_writer).set_response("write", "...")
        tester.add_channel("planner", "writer")
        result = await tester.execute_workflow("planner", "topic", max_iterations=5)
    """

    def __init__(self) -> None:
        self._agents: dict[str, _RegisteredAgent] = {}
        self._channels: list[Channel] = []

    def register_agent(self, name: str, factory: Callable[[MockLLMClient], Any]) -> MockLLMClient:
        """Register an agent; return the client private to it for fixture setup."""
        if name in self._agents:
            raise ValueError(f"Agent {name!r} is already registered")
        client = MockLLMClient(name=name)
        self._agents[name] = _RegisteredAgent(factory=factory, client=client)
        return client

    def client(self, name: str) -> MockLLMClient:
        return self._get(name).client

    def add_channel(
        self,
        from_agent: str,
        to_agent: str,
        route: Callable[[Any], bool] | None = None,
    ) -> MultiAgentTester:
        """Declare that from_agent's outputs may be sent to to_agent.

        route decides per output whether it is forwarded; without one every
        output is forwarded.
        """
        self._get(from_agent)
        self._get(to_agent)
        self._channels.append(Channel(from_agent=from_agent, to_agent=to_agent, route=route))
        return self

    @property
    def agents(self) -> list[str]:
        return list(self._agents)

    @property
    def channels(self) -> list[Channel]:
        return list(self._channels)

    def _get(self, name: str) -> _RegisteredAgent:
        try:
            return self._agents[name]
        except KeyError:
            raise AgentNotFoundError(name) from None

    def _route(self, log: MessageLog, sender: str, output: Any) -> str | None:
        """Post output along sender's channels. Return an error string on a bad handoff."""
        if output is None:
            return None
        outgoing = [c for c in self._channels if c.from_agent == sender]
        target = extract_handoff_target(output)
        if target is not None:
            matching = [c for c in outgoing if c.to_agent == target]
            if not matching:
                return f"{sender} handed off to {target!r} without a declared channel"
            log.append(sender, target, output)
            return None
        for channel in outgoing:
            if channel.accepts(output):
                log.append(sender, channel.to_agent, output)
        return None

    async def execute_workflow(
        self,
        start_agent: str,
        input: Any,
        max_iterations: int | None = None,
    ) -> WorkflowResult:
        """Run start_agent on input, then deliver pending messages until none remain.

        Each delivery counts as one iteration. Reaching max_iterations while
        messages are still pending terminates the run as a failure.
        """
        limit = max_iterations if max_iterations is not None else get_max_iterations()
        if limit < 1:
            raise ValueError(f"max_iterations must be >= 1, got {limit}")
        self._get(start_agent)

        recorder = TraceRecorder()
        log = MessageLog()
        outputs: dict[str, list[Any]] = {}
        instances: dict[str, Any] = {}
        iterations = 0
        final_output: Any = None

        def _result(success: bool, error: str | None = None, terminated: bool = False) -> WorkflowResult:
            return WorkflowResult(
                success=success,
                outputs=outputs,
                messages=log.messages,
                queues=log.queues,
                iterations=iterations,
                events=recorder.events,
                error=error,
                terminated=terminated,
                final_output=final_output,
            )

        async def _run(name: str, message: Any) -> Any:
            if name not in instances:
                registered = self._agents[name]
                instances[name] = registered.factory(registered.client)
            agent = instances[name]
            run = recorder.wrap(name, lambda content: invoke_agent(agent, content))
            output = await run(message)
            outputs.setdefault(name, []).append(output)
            return output

        try:
            final_output = await _run(start_agent, input)
        except Exception as exc:
            logger.warning("Workflow start agent %r failed: %s", start_agent, exc)
            return _result(False, f"{start_agent} failed: {exc}")

        routing_error = self._route(log, start_agent, final_output)
        if routing_error is not None:
            return _result(False, routing_error)

        while True:
            pending = log.pending()
            if not pending:
                break
            if iterations >= limit:
                logger.warning(
                    "Workflow from %r hit max_iterations=%d with %d pending messages",
                    start_agent, limit, len(pending),
                )
                return _result(
                    False,
                    f"Workflow exceeded max_iterations={limit} with "
                    f"{len(pending)} pending messages",
                    terminated=True,
                )

            delivered = log.deliver(pending[0])
            iterations += 1

            try:
                output = await _run(delivered.to_agent, delivered.content)
            except Exception as exc:
                delivered.status = MESSAGE_FAILED
                logger.warning("Agent %r failed on message %d: %s", delivered.to_agent, delivered.id, exc)
                return _result(False, f"{delivered.to_agent} failed: {exc}")
            delivered.status = MESSAGE_PROCESSED
            if output is not None:
                final_output = output

            routing_error = self._route(log, delivered.to_agent, output)
            if routing_error is not None:
                return _result(False, routing_error)

        return _result(True)
