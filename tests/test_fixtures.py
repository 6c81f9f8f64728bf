"""Tests for fixture and golden-set persistence."""

from __future__ import annotations

import json
import re
from pathlib import Path

import pytest

from agentprobe.client import ChatResponse
from agentprobe.exceptions import FixtureFormatError
from agentprobe.fixtures import (
    load_golden_set,
    load_mock_fixtures,
    save_golden_set,
    save_mock_fixtures,
)
from agentprobe.golden import GoldenCase
from agentprobe.mock_client import MockLLMClient


@pytest.mark.asyncio
async def test_saved_fixtures_reload_with_same_behaviour(tmp_path: Path) -> None:
    original = (
        MockLLMClient()
        .set_response("weather", "Sunny")
        .set_response(re.compile(r"order \d+"), "Shipped")
        .set_response("search", ChatResponse(content="ok", tool_calls=[{"name": "search"}]))
    )
    path = tmp_path / "mocks" / "support.json"
    save_mock_fixtures(original, path)

    data = json.loads(path.read_text())
    assert data["responses"][1] == {"pattern": r"order \d+", "regex": True, "response": "Shipped"}

    loaded = load_mock_fixtures(path)
    assert await loaded.generate("weather today") == "Sunny"
    assert await loaded.generate("where is order 42") == "Shipped"
    response = await loaded.chat([{"role": "user", "content": "search docs"}])
    assert response.tool_calls == [{"name": "search"}]


def test_predicate_patterns_cannot_be_saved(tmp_path: Path) -> None:
    client = MockLLMClient().set_response(lambda p: True, "anything")
    with pytest.raises(FixtureFormatError, match="predicate"):
        save_mock_fixtures(client, tmp_path / "m.json")


@pytest.mark.asyncio
async def test_load_into_existing_client(tmp_path: Path) -> None:
    path = tmp_path / "m.json"
    path.write_text(json.dumps({"responses": [{"pattern": "b", "response": "B"}]}))
    client = MockLLMClient().set_response("a", "A")
    assert load_mock_fixtures(path, client) is client
    assert await client.generate("b") == "B"
    assert len(client.registrations) == 2


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        json.dumps([]),
        json.dumps({"responses": [{"pattern": "a"}]}),
        json.dumps({"responses": [{"pattern": "(", "regex": True, "response": "x"}]}),
        json.dumps({"responses": [{"pattern": "a", "response": 3}]}),
        json.dumps({"responses": [{"pattern": "a", "response": {"tool_calls": []}}]}),
    ],
)
def test_malformed_fixture_files(tmp_path: Path, payload: str) -> None:
    path = tmp_path / "bad.json"
    path.write_text(payload)
    with pytest.raises(FixtureFormatError):
        load_mock_fixtures(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_mock_fixtures(tmp_path / "nope.json")


def test_golden_set_round_trip(tmp_path: Path) -> None:
    cases = [
        GoldenCase(id="1", input="2+2", expected="4"),
        GoldenCase(id="2", input="hi", rules=[{"type": "contains", "value": "hello"}]),
    ]
    path = tmp_path / "golden.json"
    save_golden_set(cases, path)
    assert load_golden_set(path) == cases


def test_golden_set_validation(tmp_path: Path) -> None:
    path = tmp_path / "golden.json"
    path.write_text(json.dumps([{"id": "1"}]))
    with pytest.raises(FixtureFormatError, match="needs 'id' and 'input'"):
        load_golden_set(path)

    path.write_text(json.dumps([{"id": "1", "input": "x", "rules": [{"type": "vibes"}]}]))
    with pytest.raises(FixtureFormatError, match="unknown rule type"):
        load_golden_set(path)

    path.write_text(json.dumps([{"id": "1", "input": "x", "rules": [{"type": "regex", "value": "("}]}]))
    with pytest.raises(FixtureFormatError, match="invalid regex"):
        load_golden_set(path)
