"""Agent execution result model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from agentprobe.types import EVENT_CALL, EVENT_HANDOFF, ExecutionEvent, _serialize


@dataclass
class AgentRunResult:
    """Result of a single harnessed agent execution."""

    success: bool
    output: Any = None
    error: str | None = None
    duration_ms: int = 0
    events: list[ExecutionEvent] = field(default_factory=list)
    llm_calls: int = 0

    @property
    def call_sequence(self) -> list[str]:
        """Actors in the order they were called."""
        return [e.actor for e in self.events if e.type == EVENT_CALL]

    def tool_calls(self, agent_name: str | None = None) -> list[str]:
        """Return call actors other than agent_name (the agent itself)."""
        return [actor for actor in self.call_sequence if actor != agent_name]

    @property
    def handoffs(self) -> list[ExecutionEvent]:
        return [e for e in self.events if e.type == EVENT_HANDOFF]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "success": self.success,
            "output": _serialize(self.output),
            "duration_ms": self.duration_ms,
            "llm_calls": self.llm_calls,
            "events": [e.to_dict() for e in self.events],
        }
        if self.error is not None:
            d["error"] = self.error
        return d
