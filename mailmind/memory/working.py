"""
Working Memory
==============

The agent's working memory for a single request.

A request starts from the conversation history the caller hands in and
grows as the agent reasons: every model response is appended as an
assistant turn and every tool observation as a user turn. Working memory
is owned by exactly one agent run and is never shared between requests.

Turns themselves are immutable. The only way a turn disappears is when the
whole context is replaced by a compressed summary (see compressor.py).
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Literal


Role = Literal["system", "user", "assistant"]

VALID_ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class ConversationTurn:
    """
    A single model-visible message.

    Attributes:
        role: "system", "user" or "assistant"
        content: The message text
    """
    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in VALID_ROLES:
            raise ValueError(f"Invalid role: {self.role!r}")

    def to_dict(self) -> dict:
        """Convert to dictionary format for LLM API calls."""
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> "ConversationTurn":
        return cls(role=data["role"], content=str(data.get("content") or ""))


class ExecutionContext:
    """
    Ordered, append-only list of turns for the current request.

    Example:
        ctx = ExecutionContext.from_history(history)
        ctx.append("assistant", "Thought: ...\\nDecision: CALL_TOOL")
        ctx.append("user", 'Observation: {"unread_count": 3}')

        total = ctx.total_chars()
    """

    def __init__(self, turns: Iterable[ConversationTurn] = ()):
        self._turns: list[ConversationTurn] = list(turns)

    @classmethod
    def from_history(
        cls,
        history: Iterable["ConversationTurn | dict"]
    ) -> "ExecutionContext":
        """
        Seed a context from caller-owned history.

        Accepts ConversationTurn objects or {"role", "content"} dicts.
        """
        turns = [
            turn if isinstance(turn, ConversationTurn) else ConversationTurn.from_dict(turn)
            for turn in history
        ]
        return cls(turns)

    def append(self, role: Role, content: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, content=content)
        self._turns.append(turn)
        return turn

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    def total_chars(self) -> int:
        """Total character length of all turn contents."""
        return sum(len(turn.content) for turn in self._turns)

    def to_messages(self) -> list[dict]:
        return [turn.to_dict() for turn in self._turns]

    def render_transcript(self) -> str:
        """
        Serialize as plain text for summarization.

        Format: one "ROLE: content" block per turn, separated by blank lines.
        """
        return "\n\n".join(
            f"{turn.role.upper()}: {turn.content}" for turn in self._turns
        )

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(self._turns)

    def __repr__(self) -> str:
        return f"ExecutionContext(turns={len(self._turns)}, chars={self.total_chars()})"
