"""
Tools System
============

Tools are functions the agent can call to look things up or act on the
user's behalf. The model never calls them directly: it writes

    Action: tool_name("parameter")

and the agent executes the named tool with that single string parameter.
The result (any JSON-serializable value, or a plain string) is fed back to
the model as an observation.

This module provides:
- ToolInvoker: the interface the agent loop depends on
- Tool: definition of one tool
- ToolRegistry: a ToolInvoker backed by registered Tool objects, which also
  renders the numbered tool catalogue interpolated into the persona prompt
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from mailmind.utils.logger import Logger

logger = Logger("Tools")


class ToolInvoker(Protocol):
    """
    Executes a tool by name.

    Returns a JSON-serializable value or a string. A string may be a plain
    answer or an error message; callers treat both as observation content.
    """

    async def execute(self, name: str, param: str) -> Any: ...


@dataclass
class Tool:
    """
    Definition of a single-parameter tool.

    Attributes:
        name: Identifier the model uses in Action: name("...")
        description: One-line description shown to the model
        execute: Async function receiving the (possibly empty) parameter
        param_name: Name of the parameter as shown in the catalogue,
            or None for tools that take no parameter

    Example:
        async def count_unread(_: str) -> dict:
            return {"unread_count": 3}

        tool = Tool(
            name="count_unread_messages",
            description="Count all unread messages in the inbox.",
            execute=count_unread,
        )
    """
    name: str
    description: str
    execute: Callable[[str], Awaitable[Any]]
    param_name: str | None = None

    def signature(self) -> str:
        return f"{self.name}({self.param_name or ''})"


class ToolRegistry:
    """
    Central registry of available tools.

    Example:
        registry = ToolRegistry()
        registry.register(get_time_tool)

        print(registry.describe())
        # 1. get_time(): Get the current system date, time, and day of the week.

        result = await registry.execute("get_time", "")
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """
        Register a tool.

        Raises:
            ValueError: If a tool with this name already exists
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")

        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def describe(self) -> str:
        """
        Render the numbered tool catalogue for prompts.

        Returns:
            One line per tool: "N. name(param): description"
        """
        return "\n".join(
            f"{index}. {tool.signature()}: {tool.description}"
            for index, tool in enumerate(self._tools.values(), start=1)
        )

    async def execute(self, name: str, param: str) -> Any:
        """
        Execute a tool by name.

        Unknown tools and tools that raise produce an error string instead
        of an exception, so the model can see what went wrong and adapt.
        """
        tool = self.get(name)
        if not tool:
            logger.warning(f"Unknown tool requested: {name}")
            return f"Unknown tool: {name}"

        try:
            logger.info(f"Executing tool: {name}")
            return await tool.execute(param)
        except Exception as e:
            logger.error(f"Tool execution failed: {name}", e)
            return f"Error: {e}"


__all__ = [
    "Tool",
    "ToolInvoker",
    "ToolRegistry",
]
