"""agentprobe exception hierarchy.

Only infrastructure and fixture problems are exceptions. Quality failures,
schema violations and gate failures are reported as result values.
"""

from __future__ import annotations


class AgentProbeError(Exception):
    """Base class for all agentprobe exceptions."""


class FixtureError(AgentProbeError):
    """A test fixture is missing or has been used up.

    Attributes:
        prompt: The prompt that could not be answered.
    """

    def __init__(self, prompt: str, message: str) -> None:
        self.prompt = prompt
        super().__init__(message)


class UnregisteredCallError(FixtureError):
    """Raised when no registered mock pattern matches a prompt."""

    def __init__(self, prompt: str) -> None:
        super().__init__(
            prompt,
            f"Unregistered call: no mock response matches prompt {prompt!r}. "
            "Register one with set_response().",
        )


class ResponseExhaustedError(FixtureError):
    """Raised when a scripted response generator has no responses left."""

    def __init__(self, prompt: str) -> None:
        super().__init__(
            prompt,
            f"Unexpected call: response generator exhausted at prompt {prompt!r}.",
        )


class FixtureFormatError(AgentProbeError):
    """Raised when a persisted fixture or golden-set file is malformed."""


class ToolNotFoundError(AgentProbeError, KeyError):
    """Raised when a tool name is not present in a ToolRegistry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not registered: {name!r}")

    def __str__(self) -> str:
        return str(self.args[0])


class AgentNotFoundError(AgentProbeError, KeyError):
    """Raised when a multi-agent workflow references an unknown agent."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Agent not registered: {name!r}")

    def __str__(self) -> str:
        return str(self.args[0])
