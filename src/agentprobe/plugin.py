"""agentprobe pytest plugin, registered via entry point."""

from __future__ import annotations

import logging
from collections.abc import Generator
from typing import Any

import pytest

from agentprobe.config import config as configure
from agentprobe.config import reset as reset_config
from agentprobe.gates import QualityGateReport, QualityGateRunner
from agentprobe.mock_client import MockLLMClient
from agentprobe.trace import TraceRecorder

logger = logging.getLogger("agentprobe.plugin")

# Session-level gate report accumulator, filled by the quality_gates fixture
_session_gate_reports: list[tuple[str, QualityGateReport]] = []


def pytest_configure(config: pytest.Config) -> None:
    """Register agentprobe markers and apply CLI overrides."""
    config.addinivalue_line("markers", "agentprobe: mark test as an agentprobe agent test")
    config.addinivalue_line(
        "markers",
        "statistical: mark test as sampling a non-deterministic backend repeatedly",
    )
    sample_size: int | None = config.getoption("--probe-sample-size", default=None)
    if sample_size is not None:
        configure(sample_size=sample_size)
        logger.debug("Statistical sample size overridden to %d", sample_size)


def pytest_unconfigure(config: pytest.Config) -> None:
    _session_gate_reports.clear()
    if config.getoption("--probe-sample-size", default=None) is not None:
        reset_config()


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add agentprobe-specific CLI options."""
    group = parser.getgroup("agentprobe", "agentprobe agent testing")
    group.addoption(
        "--probe-sample-size",
        default=None,
        type=int,
        help="Override the number of samples drawn per statistical test",
    )
    group.addoption(
        "--probe-gate-report",
        action="store_true",
        default=False,
        help="Print a quality gate report at the end of the test session",
    )


def pytest_terminal_summary(
    terminalreporter: Any, exitstatus: int, config: pytest.Config
) -> None:
    """Print gate results if --probe-gate-report is set."""
    if not config.getoption("--probe-gate-report", default=False):
        return

    terminalreporter.write_sep("=", "agentprobe Quality Gates")
    if not _session_gate_reports:
        terminalreporter.write_line("No quality gates were run this session.")
        return
    failed = [(node, r) for node, r in _session_gate_reports if not r.passed]
    terminalreporter.write_line(
        f"Gate runs: {len(_session_gate_reports)}, failing: {len(failed)}"
    )
    for node_id, report in _session_gate_reports:
        if report.passed and not report.warnings:
            continue
        terminalreporter.write_line(node_id)
        for line in report.format().splitlines():
            terminalreporter.write_line(f"  {line}")


class SessionGateRunner(QualityGateRunner):
    """QualityGateRunner that records every report for the session summary."""

    def __init__(self, node_id: str) -> None:
        super().__init__()
        self._node_id = node_id

    def run(self, output: str) -> QualityGateReport:
        report = super().run(output)
        _session_gate_reports.append((self._node_id, report))
        return report


@pytest.fixture
def mock_llm() -> Generator[MockLLMClient, None, None]:
    """A fresh substitute client; strict about unregistered prompts."""
    client = MockLLMClient(name="mock_llm")
    yield client
    client.clear()


@pytest.fixture
def trace_recorder() -> TraceRecorder:
    """A per-test execution trace recorder."""
    return TraceRecorder()


@pytest.fixture
def quality_gates(request: pytest.FixtureRequest) -> SessionGateRunner:
    """An empty gate runner whose reports appear in --probe-gate-report."""
    return SessionGateRunner(node_id=request.node.nodeid)
