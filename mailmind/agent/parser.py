"""
Response Parsing
================

The agent talks to the models in plain text with a handful of markers:

    Thought: I need the unread count first.
    Decision: CALL_TOOL

    Action: count_unread_messages("")

    Final Answer: You have 3 unread emails.

Models do not follow formats reliably, so every function here is tolerant:
none of them raise on malformed text. Missing markers degrade to "no
action" and the whole text becomes the thought/answer. All marker
patterns live in this module so a format change touches one place.
"""

import re
from dataclasses import dataclass
from enum import Enum


# Action: tool_name("param")  or  Action: tool_name()
ACTION_PATTERN = re.compile(r'Action:\s*(\w+)\((?:"([^"]*)")?\)', re.IGNORECASE)
ACTION_MARKER = re.compile(r"Action:", re.IGNORECASE)
FINAL_ANSWER_MARKER = re.compile(r"Final Answer:", re.IGNORECASE)
LEADING_THOUGHT_LABEL = re.compile(r"^\s*Thought:", re.IGNORECASE)

THOUGHT_MARKER = "Thought:"
DECISION_MARKER = "Decision:"


class Decision(str, Enum):
    """Outcome of one reasoning iteration."""
    CALL_TOOL = "CALL_TOOL"
    ANSWER = "ANSWER"


@dataclass(frozen=True)
class ToolCall:
    """A tool name plus its single string parameter (possibly empty)."""
    name: str
    param: str = ""


@dataclass(frozen=True)
class ReActParse:
    """
    Result of parsing a Thought/Action/Final Answer response.

    Attributes:
        thought: Reasoning text with the "Thought:" label removed
        has_action: Whether an Action: tool("param") call was found
        tool_name: Tool name when has_action is True
        tool_param: Tool parameter when has_action is True ("" if omitted)
        final_answer: Answer text when there is no action
    """
    thought: str
    has_action: bool
    tool_name: str | None = None
    tool_param: str | None = None
    final_answer: str | None = None


@dataclass(frozen=True)
class DecisionParse:
    thought: str
    decision: Decision


def _strip_thought_label(text: str) -> str:
    return LEADING_THOUGHT_LABEL.sub("", text, count=1).strip()


def parse_react_response(text: str) -> ReActParse:
    """
    Parse a single-model ReAct response.

    Precedence: an Action call wins over a Final Answer marker; with
    neither, the whole text is both the thought and the answer.
    """
    text = text or ""

    match = ACTION_PATTERN.search(text)
    if match:
        before_action = ACTION_MARKER.split(text, maxsplit=1)[0]
        return ReActParse(
            thought=_strip_thought_label(before_action),
            has_action=True,
            tool_name=match.group(1),
            tool_param=match.group(2) or "",
        )

    final_split = FINAL_ANSWER_MARKER.split(text, maxsplit=1)
    if len(final_split) == 2:
        thought, answer = final_split
        return ReActParse(
            thought=_strip_thought_label(thought),
            has_action=False,
            final_answer=answer.strip(),
        )

    whole = _strip_thought_label(text)
    return ReActParse(thought=whole, has_action=False, final_answer=whole)


def parse_decision(text: str) -> DecisionParse:
    """
    Parse a "Thought: ... Decision: ..." response.

    The decision is CALL_TOOL if the text after "Decision:" contains
    CALL_TOOL (case-insensitive); anything else, including a missing
    marker, means ANSWER. Extra prose around the markers is allowed.
    """
    text = text or ""

    body, has_decision, decision_text = text.partition(DECISION_MARKER)
    if THOUGHT_MARKER in body:
        body = body.split(THOUGHT_MARKER, 1)[1]
    thought = body.strip()

    decision = Decision.ANSWER
    if has_decision and Decision.CALL_TOOL.value in decision_text.upper():
        decision = Decision.CALL_TOOL

    return DecisionParse(thought=thought, decision=decision)


def parse_tool_call(text: str) -> ToolCall | None:
    """
    Extract a tool call from low-tier extraction output.

    Returns None when no Action pattern is present; callers treat that as a
    recoverable parse failure.
    """
    match = ACTION_PATTERN.search(text or "")
    if not match:
        return None
    return ToolCall(name=match.group(1), param=match.group(2) or "")


def clean_final_answer(text: str) -> str:
    """
    Remove Thought:/Final Answer: wrappers from a final-answer response.

    Text containing an Action call is returned trimmed but otherwise as-is.
    """
    parsed = parse_react_response(text)
    if parsed.has_action or not parsed.final_answer:
        return (text or "").strip()
    return parsed.final_answer
