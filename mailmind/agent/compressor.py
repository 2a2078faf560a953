"""
Memory Compression
==================

Keeps the working context from growing without bound.

At the top of every iteration the agent asks the compressor to check the
context. Below the threshold nothing happens and the SAME context object
is returned. Above it, the mid-tier model summarizes the whole
conversation and the context is replaced by a single system turn holding
that summary.

    12,400 chars of turns  ──►  [system] "[Compressed memory]\\n<summary>"

The summary length is not capped here; a model that echoes its input back
would make compression ineffective.
"""

from mailmind.agent.gateway import ModelCaller, Tier
from mailmind.memory.working import ConversationTurn, ExecutionContext
from mailmind.prompts import COMPRESSED_MEMORY_LABEL, DEFAULT_COMPRESS
from mailmind.utils.logger import Logger

logger = Logger("Compressor")

DEFAULT_THRESHOLD = 12000


class MemoryCompressor:
    """
    Replaces an oversized context with a model-written summary.

    Example:
        compressor = MemoryCompressor(gateway, threshold=12000)
        context = await compressor.maybe_compress(context)
    """

    def __init__(
        self,
        gateway: ModelCaller,
        threshold: int = DEFAULT_THRESHOLD,
        instruction: str = DEFAULT_COMPRESS
    ):
        self.gateway = gateway
        self.threshold = threshold
        self.instruction = instruction

    def needs_compression(self, context: ExecutionContext) -> bool:
        return context.total_chars() > self.threshold

    async def maybe_compress(self, context: ExecutionContext) -> ExecutionContext:
        """
        Compress the context if it is over budget.

        Returns:
            The input context unchanged, or a new one-turn context
        """
        if not self.needs_compression(context):
            return context

        logger.info(
            "Compressing working memory",
            {"turns": len(context), "chars": context.total_chars(), "threshold": self.threshold},
        )

        summary = await self.gateway.call(
            Tier.MID,
            [
                ConversationTurn("system", self.instruction),
                ConversationTurn("user", context.render_transcript()),
            ],
        )

        compressed = ExecutionContext([
            ConversationTurn("system", f"{COMPRESSED_MEMORY_LABEL}\n{summary.strip()}")
        ])
        logger.debug("Compression finished", {"chars_after": compressed.total_chars()})
        return compressed
