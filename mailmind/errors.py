"""
Agent Errors
============

Only ConfigurationError and UpstreamError (and cancellation) end a request.
Tool failures and unparseable extraction output are folded back into the
working context so the model can correct itself.

When a fatal error escapes the agent loop, the loop attaches the steps it
recorded so far as `error.trace` before re-raising the same exception.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mailmind.agent.trace import StepRecord


class AgentError(Exception):
    """Base class for agent errors. Carries the partial step trace."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.trace: list["StepRecord"] = []


class ConfigurationError(AgentError):
    """No credential (or another required setting) is configured."""


class UpstreamError(AgentError):
    """
    A model endpoint returned a non-success response.

    Attributes:
        status: HTTP status code, or None for transport failures
        body: Response body text (or transport error description)
    """

    def __init__(self, status: int | None, body: str):
        if status is None:
            message = f"Model request failed: {body}"
        else:
            message = f"Model request failed with HTTP {status}: {body}"
        super().__init__(message)
        self.status = status
        self.body = body


class ToolExecutionError(AgentError):
    """Raised by tool implementations; always turned into an observation."""


class AgentCancelled(AgentError):
    """The caller raised the cancellation signal while the loop was running."""
