"""Execution trace recording and trace assertions."""

from __future__ import annotations

import functools
import inspect
import re
import time
from collections.abc import Callable
from typing import Any

from agentprobe.tools import ToolDefinition
from agentprobe.types import (
    EVENT_CALL,
    EVENT_HANDOFF,
    EVENT_RESULT,
    EVENT_TYPES,
    ExecutionEvent,
    ToolResult,
    extract_handoff_target,
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _payload_matches(payload: Any, pattern: dict[str, Any] | str | None) -> bool:
    if pattern is None:
        return True
    if isinstance(pattern, dict):
        if not isinstance(payload, dict):
            return False
        return all(key in payload and payload[key] == value for key, value in pattern.items())
    return re.search(pattern, repr(payload)) is not None


class TraceRecorder:
    """Append-only log of execution events for one test run.

    A recorder is owned by the harness or test that creates it and is passed
    explicitly to whatever it wraps. :meth:`record` is the only mutation.

    Usage:
        recorder = TraceRecorder()
        search = recorder.wrap("search", search_fn)
        await search({"q": "x"})
        recorder.assert_called_times("search", 1)
    """

    def __init__(self) -> None:
        self._events: list[ExecutionEvent] = []

    def record(self, event_type: str, actor: str, payload: Any = None) -> ExecutionEvent:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type {event_type!r}; expected one of {EVENT_TYPES}")
        event = ExecutionEvent(
            type=event_type, actor=actor, payload=payload, timestamp_ms=_now_ms()
        )
        self._events.append(event)
        return event

    def _record_outcome(self, actor: str, result: Any) -> None:
        if isinstance(result, ToolResult):
            payload: Any = result.to_dict()
            target = extract_handoff_target(result.data)
        else:
            payload = result
            target = extract_handoff_target(result)
        self.record(EVENT_RESULT, actor, payload)
        if target is not None:
            self.record(EVENT_HANDOFF, actor, {"from": actor, "to": target, "data": payload})

    # ── Wrapping ──

    def wrap(self, actor: str, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Return fn wrapped so each invocation is logged under actor.

        The wrapper keeps fn's sync/async nature. The call payload is the
        single positional argument when there is exactly one, otherwise a
        dict of ``args`` and ``kwargs``. Exceptions are logged as a result
        carrying ``error`` and re-raised.
        """

        def _call_payload(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
            if len(args) == 1 and not kwargs:
                return args[0]
            if not args:
                return dict(kwargs)
            return {"args": list(args), "kwargs": dict(kwargs)}

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                self.record(EVENT_CALL, actor, _call_payload(args, kwargs))
                try:
                    result = await fn(*args, **kwargs)
                except Exception as exc:
                    self.record(EVENT_RESULT, actor, {"error": str(exc)})
                    raise
                self._record_outcome(actor, result)
                return result

            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            self.record(EVENT_CALL, actor, _call_payload(args, kwargs))
            try:
                result = fn(*args, **kwargs)
            except Exception as exc:
                self.record(EVENT_RESULT, actor, {"error": str(exc)})
                raise
            if inspect.isawaitable(result):
                return self._finish_awaitable(actor, result)
            self._record_outcome(actor, result)
            return result

        return wrapper

    async def _finish_awaitable(self, actor: str, awaitable: Any) -> Any:
        try:
            result = await awaitable
        except Exception as exc:
            self.record(EVENT_RESULT, actor, {"error": str(exc)})
            raise
        self._record_outcome(actor, result)
        return result

    def wrap_tool(self, tool: ToolDefinition) -> ToolDefinition:
        """Return a copy of tool whose execute is recorded under the tool's name."""
        return ToolDefinition(
            name=tool.name,
            description=tool.description,
            input_schema=tool.input_schema,
            output_schema=tool.output_schema,
            execute=self.wrap(tool.name, tool.execute),
        )

    # ── Queries ──

    @property
    def events(self) -> list[ExecutionEvent]:
        return list(self._events)

    def calls(self, actor: str | None = None) -> list[ExecutionEvent]:
        return [
            e for e in self._events
            if e.type == EVENT_CALL and (actor is None or e.actor == actor)
        ]

    def results(self, actor: str | None = None) -> list[ExecutionEvent]:
        return [
            e for e in self._events
            if e.type == EVENT_RESULT and (actor is None or e.actor == actor)
        ]

    def handoffs(self) -> list[ExecutionEvent]:
        return [e for e in self._events if e.type == EVENT_HANDOFF]

    @property
    def call_sequence(self) -> list[str]:
        """Actors in the order their call events were recorded."""
        return [e.actor for e in self._events if e.type == EVENT_CALL]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    # ── Assertions ──

    def assert_called_with(
        self, actor: str, pattern: dict[str, Any] | str | None = None
    ) -> ExecutionEvent:
        """Assert at least one call to actor matches pattern; return the first match.

        pattern is a dict whose items must all appear in the call payload, or
        a regular expression searched in the payload's repr.
        """
        for event in self.calls(actor):
            if _payload_matches(event.payload, pattern):
                return event
        seen = [e.payload for e in self.calls(actor)]
        raise AssertionError(
            f"Expected a call to {actor!r} matching {pattern!r}; recorded payloads: {seen!r}"
        )

    def assert_call_order(self, expected: list[str]) -> None:
        """Assert the recorded call sequence matches expected position by position.

        Only call events are considered; calls after ``len(expected)`` are
        ignored.
        """
        actual = self.call_sequence
        if len(actual) < len(expected):
            raise AssertionError(
                f"Expected call order {expected!r}, but only {len(actual)} calls "
                f"were recorded: {actual!r}"
            )
        for position, name in enumerate(expected):
            if actual[position] != name:
                raise AssertionError(
                    f"Call order mismatch at position {position}: expected {name!r}, "
                    f"got {actual[position]!r} (sequence {actual!r})"
                )

    def assert_called_times(self, actor: str, times: int) -> None:
        count = len(self.calls(actor))
        if count != times:
            raise AssertionError(f"Expected {actor!r} to be called {times} times, got {count}")

    def assert_not_called(self, actor: str) -> None:
        self.assert_called_times(actor, 0)
