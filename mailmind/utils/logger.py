"""
Logging
=======

Context-tagged console logging for the agent.

Every component creates its own logger with a context tag so that a
single request can be followed through planning, reasoning, tool calls
and compression:

    [2026-01-31T10:30:00] [INFO] [Agent] Iteration 3: decision=CALL_TOOL
    [2026-01-31T10:30:01] [DEBUG] [Gateway] Calling mid tier

The minimum level comes from LOG_LEVEL. Output is coloured only on a
terminal and never when NO_COLOR is set.

    from mailmind.utils.logger import Logger

    logger = Logger("Agent")
    logger.info("Starting loop")

    planner_logger = logger.child("Planner")
    planner_logger.debug("Plan created", {"chars": 412})
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO


class LogLevel(IntEnum):
    """Numeric severities; a logger emits everything at or above its minimum."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


# Label and ANSI colour per level
_STYLES: dict[LogLevel, tuple[str, str]] = {
    LogLevel.DEBUG: ("DEBUG", "\033[36m"),
    LogLevel.INFO: ("INFO", "\033[32m"),
    LogLevel.WARNING: ("WARN", "\033[33m"),
    LogLevel.ERROR: ("ERROR", "\033[31m"),
}
_RESET = "\033[0m"
_DIM = "\033[2m"

_ALIASES = {"WARN": LogLevel.WARNING}


def parse_log_level(value: str | None) -> LogLevel:
    """
    Parse a level name such as "debug" or "WARN".

    Unknown or empty values fall back to INFO.
    """
    name = (value or "").strip().upper()
    if name in _ALIASES:
        return _ALIASES[name]
    return LogLevel.__members__.get(name, LogLevel.INFO)


def _use_color(stream: TextIO) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class Logger:
    """
    Console logger bound to one component.

    Example:
        logger = Logger("Gateway")
        logger.debug("Calling model", {"tier": "mid", "model": "gpt-5-mini"})

        logger.child("Retry").info("...")   # logs as [Gateway:Retry]
    """

    def __init__(self, context: str = "", level: LogLevel | None = None):
        """
        Args:
            context: Tag printed with every line (e.g. "Agent", "Planner")
            level: Minimum level to emit; defaults to LOG_LEVEL from the environment
        """
        self.context = context
        self._min_level = level if level is not None else parse_log_level(os.getenv("LOG_LEVEL"))

    def child(self, child_context: str) -> "Logger":
        """A logger tagged "<parent>:<child>" with the same minimum level."""
        context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(context, level=self._min_level)

    def set_level(self, level: LogLevel) -> None:
        self._min_level = level

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self._min_level

    def _emit(self, level: LogLevel, message: str, data: dict[str, Any] | None) -> None:
        if not self.is_enabled_for(level):
            return

        # Warnings and errors go to stderr so they survive stdout redirection
        stream = sys.stderr if level >= LogLevel.WARNING else sys.stdout
        label, color = _STYLES[level]
        stamp = datetime.now().isoformat(timespec="seconds")
        tag = f"[{self.context}] " if self.context else ""
        payload = json.dumps(data, indent=2, default=str, ensure_ascii=False) if data else None

        if _use_color(stream):
            line = f"{_DIM}[{stamp}]{_RESET} {color}[{label}]{_RESET} {tag}{message}"
            payload = payload and f"{_DIM}{payload}{_RESET}"
        else:
            line = f"[{stamp}] [{label}] {tag}{message}"

        print(line, file=stream)
        if payload:
            print(payload, file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Prompt sizes, raw output lengths and other tracing detail."""
        self._emit(LogLevel.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._emit(LogLevel.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Recoverable problems such as parse failures or failing tools."""
        self._emit(LogLevel.WARNING, message, data)

    def error(self, message: str, error: BaseException | None = None) -> None:
        """
        Log an error, with the exception's type and text when one is given.
        """
        details = None
        if error is not None:
            details = {"error_type": type(error).__name__, "error_message": str(error)}
        self._emit(LogLevel.ERROR, message, details)


logger = Logger("MailMind")
