"""
Planning
========

The high-tier model writes a short plan once per request and is asked
again every few iterations whether the plan still holds.

Review policy: only on iterations that are multiples of the review
interval (3, 6, 9, ... with the default of 3), and only after a tool call.
If the review answer contains "looks good" the plan is kept; anything
else becomes the new plan verbatim.
"""

from typing import Iterable

from mailmind.agent.context import MessageBuilder
from mailmind.agent.gateway import ModelCaller, Tier
from mailmind.memory.working import ConversationTurn
from mailmind.prompts import PLAN_KEEP_PHRASE
from mailmind.utils.logger import Logger

logger = Logger("Planner")


class PlanManager:
    """Creates and periodically reviews the agent's plan."""

    def __init__(
        self,
        gateway: ModelCaller,
        messages: MessageBuilder,
        review_interval: int = 3
    ):
        self.gateway = gateway
        self.messages = messages
        self.review_interval = review_interval

    async def create_plan(self, history: Iterable[ConversationTurn]) -> str:
        """
        Ask the high tier for a 3-5 step plan.

        Trivial requests get an explicit "no complex plan needed" answer;
        the raw response is the plan either way.
        """
        plan = await self.gateway.call(Tier.HIGH, self.messages.planning(history))
        plan = plan.strip()
        logger.info("Plan created", {"chars": len(plan)})
        return plan

    def should_review(self, iteration: int) -> bool:
        return self.review_interval > 0 and iteration % self.review_interval == 0

    async def review_plan(
        self,
        context: Iterable[ConversationTurn],
        current_plan: str
    ) -> str:
        """
        Ask the high tier whether the plan is still valid.

        Returns:
            current_plan itself when the review says it looks good,
            otherwise the full review response as the replacement plan
        """
        response = await self.gateway.call(
            Tier.HIGH, self.messages.review(context, current_plan)
        )
        if PLAN_KEEP_PHRASE in response.lower():
            logger.debug("Plan review: keeping current plan")
            return current_plan

        new_plan = response.strip()
        logger.info("Plan review: plan replaced", {"chars": len(new_plan)})
        return new_plan
