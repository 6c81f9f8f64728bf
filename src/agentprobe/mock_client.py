"""Deterministic substitute for a generative backend."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from typing import Any, Union

from agentprobe.client import ChatMessage, ChatResponse, normalize_messages
from agentprobe.exceptions import ResponseExhaustedError, UnregisteredCallError
from agentprobe.types import CallRecord

logger = logging.getLogger("agentprobe.mock_client")

Pattern = Union[str, "re.Pattern[str]", Callable[[str], bool]]
Response = Union[str, ChatResponse]


def _matches(pattern: Pattern, prompt: str) -> bool:
    if isinstance(pattern, str):
        return pattern in prompt
    if isinstance(pattern, re.Pattern):
        return pattern.search(prompt) is not None
    return bool(pattern(prompt))


def _describe(pattern: Pattern) -> str:
    if isinstance(pattern, str):
        return pattern
    if isinstance(pattern, re.Pattern):
        return f"re:{pattern.pattern}"
    return getattr(pattern, "__name__", repr(pattern))


class MockLLMClient:
    """Pattern-keyed substitute client with call history.

    Registrations are scanned in insertion order and the first match wins.
    A prompt matching nothing raises :class:`UnregisteredCallError`; there is
    no default response.

    Usage:
        client = MockLLMClient().set_response("Summarize", "OK")
        assert await client.generate("Summarize this: ...") == "OK"
    """

    def __init__(
        self,
        responses: dict[str, Response] | None = None,
        name: str | None = None,
    ) -> None:
        self.name = name
        self._registrations: list[tuple[Pattern, Response]] = []
        self._history: list[CallRecord] = []
        self._generator: Iterator[Response] | Callable[[str], Response] | None = None
        for pattern, response in (responses or {}).items():
            self.set_response(pattern, response)

    # ── Fixture setup ──

    def set_response(self, pattern: Pattern, response: Response) -> MockLLMClient:
        """Register response for prompts matched by pattern.

        pattern may be a substring, a compiled regular expression, or a
        predicate over the prompt.
        """
        self._registrations.append((pattern, response))
        return self

    def set_response_generator(
        self, source: Iterable[Response] | Callable[[str], Response]
    ) -> MockLLMClient:
        """Script responses call by call.

        source is either an iterable consumed one item per call, or a
        callable invoked with each prompt. Raising StopIteration from the
        callable, or running out of items, fails the call as unexpected.
        While set, the generator takes precedence over pattern registrations.
        """
        if callable(source):
            self._generator = source
        else:
            self._generator = iter(source)
        return self

    @property
    def registrations(self) -> list[tuple[Pattern, Response]]:
        return list(self._registrations)

    # ── History ──

    @property
    def call_history(self) -> tuple[CallRecord, ...]:
        return tuple(self._history)

    @property
    def call_count(self) -> int:
        return len(self._history)

    @property
    def prompts(self) -> list[str]:
        return [record.prompt for record in self._history]

    def calls_matching(self, pattern: Pattern) -> list[CallRecord]:
        """Return recorded calls whose prompt matches pattern."""
        return [r for r in self._history if _matches(pattern, r.prompt)]

    def reset(self) -> None:
        """Clear call history, keeping registrations."""
        self._history.clear()

    def clear(self) -> None:
        """Clear call history, registrations and any response generator."""
        self._history.clear()
        self._registrations.clear()
        self._generator = None

    # ── Generation contract ──

    async def generate(self, prompt: str, config: dict[str, Any] | None = None) -> str:
        """Return the registered response text for prompt."""
        self._history.append(
            CallRecord(prompt=prompt, config=dict(config) if config is not None else None)
        )
        response = self._resolve(prompt)
        if isinstance(response, ChatResponse):
            return response.content
        return response

    async def chat(self, messages: list[dict[str, Any]] | list[ChatMessage]) -> ChatResponse:
        """Answer using the content of the final message."""
        normalized = normalize_messages(messages)
        prompt = str(normalized[-1].get("content", "")) if normalized else ""
        self._history.append(
            CallRecord(prompt=prompt, messages=tuple(dict(m) for m in normalized))
        )
        response = self._resolve(prompt)
        if isinstance(response, ChatResponse):
            return ChatResponse(
                content=response.content,
                tool_calls=[dict(call) for call in response.tool_calls],
            )
        return ChatResponse(content=response)

    def _resolve(self, prompt: str) -> Response:
        if self._generator is not None:
            return self._next_scripted(prompt)
        for pattern, response in self._registrations:
            if _matches(pattern, prompt):
                logger.debug("Mock %s matched pattern %r", self.name or "client", _describe(pattern))
                return response
        logger.warning("Unregistered mock call: %r", prompt[:200])
        raise UnregisteredCallError(prompt)

    def _next_scripted(self, prompt: str) -> Response:
        generator = self._generator
        try:
            if isinstance(generator, Iterator):
                return next(generator)
            assert generator is not None
            return generator(prompt)
        except StopIteration:
            logger.warning("Mock response generator exhausted at prompt %r", prompt[:200])
            raise ResponseExhaustedError(prompt) from None
