"""Tests for pytest plugin registration and fixtures."""

from __future__ import annotations

import pytest

from agentprobe.mock_client import MockLLMClient
from agentprobe.plugin import SessionGateRunner, _session_gate_reports
from agentprobe.trace import TraceRecorder


def test_plugin_markers(pytestconfig: pytest.Config) -> None:
    """agentprobe markers are registered."""
    marker_names = []
    for m in pytestconfig.getini("markers"):
        if isinstance(m, str):
            marker_names.append(m.split(":")[0].strip())
    assert "agentprobe" in marker_names
    assert "statistical" in marker_names


@pytest.mark.asyncio
async def test_mock_llm_fixture(mock_llm: MockLLMClient) -> None:
    mock_llm.set_response("hello", "hi")
    assert await mock_llm.generate("hello there") == "hi"
    assert mock_llm.call_count == 1


def test_trace_recorder_fixture(trace_recorder: TraceRecorder) -> None:
    assert len(trace_recorder) == 0


def test_quality_gates_fixture_records_reports(quality_gates: SessionGateRunner) -> None:
    before = len(_session_gate_reports)
    quality_gates.add_gate("non_empty", lambda output: bool(output.strip()))
    report = quality_gates.run("content")
    assert report.passed
    assert len(_session_gate_reports) == before + 1
    assert _session_gate_reports[-1][0].endswith("test_quality_gates_fixture_records_reports")


def test_gate_report_in_terminal_summary(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(
        """
        def test_output(quality_gates):
            quality_gates.add_gate("no_maybe", lambda o: "maybe" not in o, "warning")
            quality_gates.add_gate("short", lambda o: len(o) < 5, "blocker")
            assert not quality_gates.run("maybe too long").passed
        """
    )
    result = pytester.runpytest_subprocess("--probe-gate-report")
    result.assert_outcomes(passed=1)
    result.stdout.fnmatch_lines(
        [
            "*agentprobe Quality Gates*",
            "Gate runs: 1, failing: 1",
            "*[[]FAIL[]] short (blocker)*",
        ]
    )


def test_sample_size_option(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(
        """
        from agentprobe.config import get_sample_size

        def test_size():
            assert get_sample_size() == 3
        """
    )
    result = pytester.runpytest_subprocess("--probe-sample-size", "3")
    result.assert_outcomes(passed=1)
