"""
Tool Executor
=============

Runs tool calls for the agent loop and formats what comes back.

Whatever the tool returns (a dict, a list, a plain string, an error
message) becomes observation content the same way: JSON-encoded and
prefixed with "Observation:". A tool that raises does not end the request;
its error is turned into an "Error: ..." observation so the model can try
something else.
"""

import json
from dataclasses import dataclass
from typing import Any

from mailmind.agent.parser import ToolCall
from mailmind.tools import ToolInvoker
from mailmind.utils.logger import Logger

logger = Logger("ToolExecutor")

OBSERVATION_PREFIX = "Observation: "


@dataclass(frozen=True)
class ToolCallResult:
    """
    Result of executing a tool call.

    Attributes:
        call: The tool call that was executed
        value: Raw tool output (JSON-serializable or string)
        failed: True when the tool raised
    """
    call: ToolCall
    value: Any
    failed: bool = False

    def to_observation(self) -> str:
        return format_observation(self.value)


def format_observation(value: Any) -> str:
    """Encode a tool result (or error string) as an observation message."""
    return OBSERVATION_PREFIX + json.dumps(value, ensure_ascii=False, default=str)


class ToolExecutor:
    """
    Wraps a ToolInvoker with uniform error handling.

    Example:
        executor = ToolExecutor(registry)
        result = await executor.execute(ToolCall("get_time", ""))
        context.append("user", result.to_observation())
    """

    def __init__(self, invoker: ToolInvoker):
        self.invoker = invoker

    async def execute(self, call: ToolCall) -> ToolCallResult:
        logger.info(f"Executing tool: {call.name}", {"param": call.param})

        try:
            value = await self.invoker.execute(call.name, call.param)
        except Exception as e:
            logger.warning(f"Tool {call.name} failed: {e}")
            return ToolCallResult(call=call, value=f"Error: {e}", failed=True)

        logger.debug(f"Tool {call.name} returned", {"type": type(value).__name__})
        return ToolCallResult(call=call, value=value)
