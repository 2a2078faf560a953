"""
Short-Term Memory
=================

In-memory conversation history per session.

The agent itself is stateless between requests: each run starts from the
history the caller passes in. SessionHistory is the caller-side store the
command-line front end uses for that history.

Design Notes:
- Lives only in RAM (cleared on restart)
- Keeps at most max_messages per session, dropping the oldest
- A failed turn is recorded as metadata on the user message; no assistant
  message is invented for it
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mailmind.memory.working import ConversationTurn


@dataclass
class Message:
    """
    A single stored message.

    Attributes:
        role: "user", "assistant" or "system"
        content: The message text
        timestamp: When the message was added
        metadata: Extra data (agent trace, failure details)
    """
    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(role=self.role, content=self.content)


class SessionHistory:
    """
    Per-session message storage.

    Example:
        sessions = SessionHistory(max_messages=40)

        sessions.add_message("default", "user", "Any mail from Alice?")
        result = await loop.run(sessions.get_recent("default"))
        sessions.add_message("default", "assistant", result.final_answer,
                             metadata=result.to_metadata())
    """

    def __init__(self, max_messages: int = 50):
        self.max_messages = max_messages
        self._sessions: dict[str, list[Message]] = {}

    def add_message(
        self,
        session_id: str,
        role: str,
        content: str,
        metadata: dict | None = None
    ) -> Message:
        """
        Append a message, trimming the oldest ones beyond max_messages.
        """
        messages = self._sessions.setdefault(session_id, [])
        message = Message(role=role, content=content, metadata=metadata or {})
        messages.append(message)

        if len(messages) > self.max_messages:
            self._sessions[session_id] = messages[-self.max_messages:]

        return message

    def record_failure(self, session_id: str, error: BaseException) -> None:
        """
        Mark the latest user message as failed.

        The conversation keeps the user message but gains no assistant
        reply, so the failure is visible instead of papered over.
        """
        for message in reversed(self._sessions.get(session_id, [])):
            if message.role == "user":
                message.metadata["failed"] = True
                message.metadata["error"] = str(error)
                return

    def get_recent(self, session_id: str, limit: int = 20) -> list[ConversationTurn]:
        """
        Recent messages as agent history, oldest first.

        Failed user turns are skipped so a retry does not repeat them.
        """
        messages = [
            message for message in self._sessions.get(session_id, [])
            if not message.metadata.get("failed")
        ]
        return [message.to_turn() for message in messages[-limit:]]

    def get_all_messages(self, session_id: str) -> list[Message]:
        return list(self._sessions.get(session_id, []))

    def clear(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
