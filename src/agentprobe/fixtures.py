"""JSON persistence for mock registrations and golden sets."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from agentprobe.client import ChatResponse
from agentprobe.exceptions import FixtureFormatError
from agentprobe.golden import GoldenCase
from agentprobe.mock_client import MockLLMClient


def _read_json(path: str | Path) -> Any:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Fixture file not found: {file_path}")
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise FixtureFormatError(f"{file_path}: invalid JSON ({exc.msg})") from exc


def _write_json(path: str | Path, data: Any) -> None:
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def save_mock_fixtures(client: MockLLMClient, path: str | Path) -> None:
    """Write client's registrations as ``{"responses": [...]}``.

    Predicate patterns cannot be persisted and raise FixtureFormatError.
    """
    entries: list[dict[str, Any]] = []
    for pattern, response in client.registrations:
        entry: dict[str, Any]
        if isinstance(pattern, str):
            entry = {"pattern": pattern}
        elif isinstance(pattern, re.Pattern):
            entry = {"pattern": pattern.pattern, "regex": True}
        else:
            raise FixtureFormatError(
                f"Cannot persist predicate pattern {pattern!r}; use a string or regex"
            )
        entry["response"] = response.to_dict() if isinstance(response, ChatResponse) else response
        entries.append(entry)
    _write_json(path, {"responses": entries})


def load_mock_fixtures(path: str | Path, client: MockLLMClient | None = None) -> MockLLMClient:
    """Register every persisted response on client (a new one if omitted)."""
    data = _read_json(path)
    if not isinstance(data, dict) or not isinstance(data.get("responses"), list):
        raise FixtureFormatError(f"{path}: expected an object with a 'responses' list")

    target = client or MockLLMClient()
    for index, entry in enumerate(data["responses"]):
        if not isinstance(entry, dict) or "pattern" not in entry or "response" not in entry:
            raise FixtureFormatError(f"{path}: responses[{index}] needs 'pattern' and 'response'")
        pattern: Any = entry["pattern"]
        if entry.get("regex"):
            try:
                pattern = re.compile(pattern)
            except re.error as exc:
                raise FixtureFormatError(f"{path}: responses[{index}] bad regex: {exc}") from exc
        response = entry["response"]
        if isinstance(response, dict):
            if "content" not in response:
                raise FixtureFormatError(f"{path}: responses[{index}] response needs 'content'")
            response = ChatResponse(
                content=response["content"], tool_calls=list(response.get("tool_calls", []))
            )
        elif not isinstance(response, str):
            raise FixtureFormatError(f"{path}: responses[{index}] response must be text")
        target.set_response(pattern, response)
    return target


def save_golden_set(cases: list[GoldenCase], path: str | Path) -> None:
    _write_json(path, [case.to_dict() for case in cases])


def load_golden_set(path: str | Path) -> list[GoldenCase]:
    """Load a list of golden cases; each needs at least ``id`` and ``input``."""
    data = _read_json(path)
    if not isinstance(data, list):
        raise FixtureFormatError(f"{path}: expected a list of golden cases")
    cases: list[GoldenCase] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict) or "id" not in entry or "input" not in entry:
            raise FixtureFormatError(f"{path}: case [{index}] needs 'id' and 'input'")
        try:
            cases.append(GoldenCase.from_dict(entry))
        except ValueError as exc:
            raise FixtureFormatError(f"{path}: {exc}") from exc
    return cases
