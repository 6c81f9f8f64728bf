"""Generation-service contract consumed by agentprobe.

Production backends and :class:`~agentprobe.mock_client.MockLLMClient` are
interchangeable implementations of :class:`GenerationClient`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class ChatMessage:
    role: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatResponse:
    content: str
    tool_calls: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"content": self.content}
        if self.tool_calls:
            d["tool_calls"] = [dict(c) for c in self.tool_calls]
        return d


@runtime_checkable
class GenerationClient(Protocol):
    """Narrow contract for a generative text backend."""

    async def generate(self, prompt: str, config: dict[str, Any] | None = None) -> str:
        """Return generated text for prompt."""
        ...

    async def chat(self, messages: list[dict[str, Any]] | list[ChatMessage]) -> ChatResponse:
        """Return the assistant reply to an ordered list of messages."""
        ...


def normalize_messages(
    messages: list[dict[str, Any]] | list[ChatMessage],
) -> list[dict[str, Any]]:
    """Return messages as plain ``{"role", "content"}`` dicts."""
    normalized: list[dict[str, Any]] = []
    for message in messages:
        if isinstance(message, ChatMessage):
            normalized.append(message.to_dict())
        else:
            normalized.append(dict(message))
    return normalized
