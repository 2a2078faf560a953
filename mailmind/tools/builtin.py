"""
Built-in Tools
==============

Tools that need nothing but the local machine. Mail-provider tools
(search, tagging, briefings) are supplied by the host application and
registered alongside these.
"""

from datetime import datetime
from typing import Any

from mailmind.tools import Tool, ToolRegistry


async def get_time(_: str = "") -> dict[str, Any]:
    """Current local date/time, weekday and timezone name."""
    now = datetime.now().astimezone()
    return {
        "current_time": now.strftime("%Y-%m-%d %H:%M:%S"),
        "weekday": now.strftime("%A"),
        "timezone": now.tzname(),
    }


get_time_tool = Tool(
    name="get_time",
    description="Get the current system date, time, and day of the week.",
    execute=get_time,
)


def register_builtin_tools(registry: ToolRegistry) -> ToolRegistry:
    registry.register(get_time_tool)
    return registry
