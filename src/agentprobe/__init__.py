"""agentprobe: testing and evaluation for non-deterministic agent systems."""

from __future__ import annotations

from agentprobe.ab_testing import ABTestFramework, ABTestReport, ABVariant, WeightedEvaluator
from agentprobe.client import ChatMessage, ChatResponse, GenerationClient
from agentprobe.config import config
from agentprobe.evaluator import EvaluationReport, Metric, QualityEvaluator
from agentprobe.exceptions import (
    AgentNotFoundError,
    AgentProbeError,
    FixtureError,
    FixtureFormatError,
    ResponseExhaustedError,
    ToolNotFoundError,
    UnregisteredCallError,
)
from agentprobe.fixtures import (
    load_golden_set,
    load_mock_fixtures,
    save_golden_set,
    save_mock_fixtures,
)
from agentprobe.gates import QualityGate, QualityGateReport, QualityGateRunner
from agentprobe.golden import GoldenCase, GoldenSetReport, GoldenSetRunner
from agentprobe.harness import AgentTestHarness
from agentprobe.human_eval import HumanEvaluationManager, InterRaterReliability
from agentprobe.mock_client import MockLLMClient
from agentprobe.multi_agent import MultiAgentTester, WorkflowResult
from agentprobe.result import AgentRunResult
from agentprobe.statistical import (
    PromptComparison,
    StatisticalTestResult,
    StatisticalTestRunner,
)
from agentprobe.tools import (
    ChainExecutionResult,
    ChainIncompatibility,
    ToolDefinition,
    ToolRegistry,
)
from agentprobe.trace import TraceRecorder
from agentprobe.types import (
    EvaluationCriterion,
    ExecutionEvent,
    MetricResult,
    QualityGateResult,
    ToolResult,
)

__version__: str = "0.1.0"

__all__ = [
    # Core types
    "EvaluationCriterion",
    "ExecutionEvent",
    "MetricResult",
    "QualityGateResult",
    "ToolResult",
    # Configuration
    "config",
    # Generation contract
    "ChatMessage",
    "ChatResponse",
    "GenerationClient",
    "MockLLMClient",
    # Tools
    "ToolDefinition",
    "ToolRegistry",
    "ChainIncompatibility",
    "ChainExecutionResult",
    # Tracing and harnesses
    "TraceRecorder",
    "AgentTestHarness",
    "AgentRunResult",
    "MultiAgentTester",
    "WorkflowResult",
    # Evaluation
    "Metric",
    "QualityEvaluator",
    "EvaluationReport",
    "StatisticalTestRunner",
    "StatisticalTestResult",
    "PromptComparison",
    "ABTestFramework",
    "ABTestReport",
    "ABVariant",
    "WeightedEvaluator",
    "QualityGate",
    "QualityGateRunner",
    "QualityGateReport",
    "HumanEvaluationManager",
    "InterRaterReliability",
    # Golden sets and fixtures
    "GoldenCase",
    "GoldenSetRunner",
    "GoldenSetReport",
    "load_golden_set",
    "save_golden_set",
    "load_mock_fixtures",
    "save_mock_fixtures",
    # Exceptions
    "AgentProbeError",
    "FixtureError",
    "UnregisteredCallError",
    "ResponseExhaustedError",
    "FixtureFormatError",
    "ToolNotFoundError",
    "AgentNotFoundError",
    # Version
    "__version__",
]
