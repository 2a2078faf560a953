"""
Message Assembly
================

Builds the exact message list for every kind of model call the agent
makes. Keeping this in one place means the loop only decides WHAT to ask
and never how the prompt is laid out.

Every call that reasons about the conversation gets the same persona
system message (with the tool catalogue interpolated), followed by the
working context, followed by one instruction turn:

    [system]    persona + tools (+ current plan)
    [...]       working context turns
    [user]      instruction for this call
"""

from typing import Iterable

from mailmind.memory.working import ConversationTurn
from mailmind.prompts import (
    BUDGET_EXHAUSTED_PROMPT,
    DECISION_FORMAT,
    EXTRACTION_PROMPT,
    TOOL_SECTION,
    PromptSet,
)


class MessageBuilder:
    """
    Assembles model inputs from prompts, tools and context.

    Example:
        builder = MessageBuilder(prompts, catalogue=registry.describe())
        messages = builder.reasoning(context, plan)
    """

    def __init__(self, prompts: PromptSet, catalogue: str = ""):
        """
        Initialize the builder.

        Args:
            prompts: Instruction texts (defaults or configured overrides)
            catalogue: Numbered tool list, as produced by ToolRegistry.describe()
        """
        self.prompts = prompts
        self.catalogue = catalogue.strip()

    def persona(self, plan: str | None = None) -> ConversationTurn:
        """The system message shared by planning, reasoning and answering."""
        content = self.prompts.persona
        if self.catalogue:
            content += "\n" + TOOL_SECTION.format(catalogue=self.catalogue)
        if plan:
            content += f"\n\nCurrent plan:\n{plan}"
        return ConversationTurn("system", content)

    def planning(self, history: Iterable[ConversationTurn]) -> list[ConversationTurn]:
        return [self.persona(), *history, ConversationTurn("user", self.prompts.plan)]

    def review(
        self,
        context: Iterable[ConversationTurn],
        plan: str
    ) -> list[ConversationTurn]:
        instruction = f"Current plan:\n{plan}\n\n{self.prompts.review}"
        return [self.persona(), *context, ConversationTurn("user", instruction)]

    def reasoning(
        self,
        context: Iterable[ConversationTurn],
        plan: str
    ) -> list[ConversationTurn]:
        instruction = f"{self.prompts.thought}\n\n{DECISION_FORMAT}"
        return [self.persona(plan), *context, ConversationTurn("user", instruction)]

    def extraction(self, thought: str) -> list[ConversationTurn]:
        """Strict tool-call extraction input for the low tier."""
        catalogue = self.catalogue or "(no tools available)"
        return [
            ConversationTurn("system", EXTRACTION_PROMPT.format(catalogue=catalogue)),
            ConversationTurn("user", f"Thought: {thought}"),
        ]

    def final_answer(
        self,
        context: Iterable[ConversationTurn],
        plan: str
    ) -> list[ConversationTurn]:
        return [self.persona(plan), *context, ConversationTurn("user", self.prompts.final)]

    def budget_exhausted(
        self,
        context: Iterable[ConversationTurn],
        max_iterations: int
    ) -> list[ConversationTurn]:
        instruction = BUDGET_EXHAUSTED_PROMPT.format(max_iterations=max_iterations)
        return [self.persona(), *context, ConversationTurn("user", instruction)]
