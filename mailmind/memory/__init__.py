"""
Memory System
=============

Two layers, with different owners:

1. WORKING: the per-request context the agent reasons over
   (ConversationTurn, ExecutionContext). Owned by one agent run.
2. SHORT-TERM: per-session conversation history kept by the caller
   between requests (SessionHistory). The agent never touches it; the
   caller feeds it in as the seed of the next request.

Compression of working memory lives with the agent
(mailmind.agent.compressor) because it needs a model call.
"""

from mailmind.memory.working import ConversationTurn, ExecutionContext
from mailmind.memory.short_term import SessionHistory

__all__ = [
    "ConversationTurn",
    "ExecutionContext",
    "SessionHistory",
]
