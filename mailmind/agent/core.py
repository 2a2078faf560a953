"""
Agent Core
==========

The plan / reason / act loop that answers one user message.

Three model tiers cooperate around the tool boundary:

    User history
         │
         ▼
    HIGH: create plan ──────────────────────────────┐ (recorded once)
         │                                          │
         ▼                                          │
    ┌─► iteration += 1 ── over budget? ── yes ──► HIGH: forced summary ─┐
    │        │ no                                                       │
    │        ▼                                                          │
    │   compress working memory if > threshold (MID)                    │
    │        │                                                          │
    │        ▼                                                          │
    │   MID: Thought + Decision                                         │
    │        │                                                          │
    │   CALL_TOOL ─────────────── ANSWER                                │
    │        │                       │                                  │
    │        ▼                       ▼                                  │
    │   LOW: extract Action     MID: final answer ───────────────► Done ◄┘
    │        │
    │   parsed? ── no ──► error observation ─┐
    │        │ yes                           │
    │        ▼                               │
    │   execute tool, add observation        │
    │   every 3rd iteration: HIGH review     │
    └────────┴───────────────────────────────┘

Model failures (missing credential, upstream errors) end the request at
once; the steps recorded so far are attached to the exception as
`error.trace`. Tool failures and unparseable extraction output are fed back
to the model as observations instead.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Sequence

from mailmind.agent.cancellation import CancellationToken, fire_and_forget
from mailmind.agent.compressor import MemoryCompressor
from mailmind.agent.context import MessageBuilder
from mailmind.agent.gateway import ModelCaller, Tier
from mailmind.agent.parser import Decision, clean_final_answer, parse_decision, parse_tool_call
from mailmind.agent.planner import PlanManager
from mailmind.agent.tools_executor import OBSERVATION_PREFIX, ToolExecutor
from mailmind.agent.trace import (
    ActionStep,
    ErrorStep,
    ObservationStep,
    PlanStep,
    PlanUpdateStep,
    StepRecord,
    ThoughtStep,
    trace_to_dicts,
)
from mailmind.errors import AgentError
from mailmind.memory.working import ConversationTurn, ExecutionContext
from mailmind.prompts import AUTO_SUMMARY_MARKER, PARSE_FAILURE_OBSERVATION, PromptSet
from mailmind.tools import ToolInvoker
from mailmind.utils.config import AgentConfig, Config
from mailmind.utils.logger import Logger

logger = Logger("Agent")

StepListener = Callable[[StepRecord], Awaitable[None]]


@dataclass
class AgentResult:
    """
    Outcome of one agent run.

    Attributes:
        final_answer: Text to show the user
        trace: Every step recorded during the run, in order
        plan: The plan in force when the run ended
        iterations: Reasoning iterations actually performed
        budget_exhausted: True when the answer is a forced summary
    """
    final_answer: str
    trace: list[StepRecord] = field(default_factory=list)
    plan: str = ""
    iterations: int = 0
    budget_exhausted: bool = False

    def to_metadata(self) -> dict[str, Any]:
        """JSON-serializable metadata to store with the assistant message."""
        return {
            "plan": self.plan,
            "iterations": self.iterations,
            "budget_exhausted": self.budget_exhausted,
            "trace": trace_to_dicts(self.trace),
        }


class _CancellableGateway:
    """Races every model call against a cancellation token."""

    def __init__(self, gateway: ModelCaller, token: CancellationToken):
        self._gateway = gateway
        self._token = token

    async def call(self, tier: Tier, messages: Sequence[ConversationTurn]) -> str:
        return await self._token.run(self._gateway.call(tier, messages))


class AgentLoop:
    """
    Orchestrates planning, reasoning, tool use and answering.

    An AgentLoop holds only read-only collaborators; all per-request state
    (working context, trace, plan, iteration counter) lives inside run(),
    so one loop object can serve many requests one after another.

    Example:
        loop = AgentLoop.from_config(get_config(), gateway, registry)

        result = await loop.run([
            {"role": "user", "content": "How many unread emails do I have?"}
        ])
        print(result.final_answer)
        store(result.to_metadata())
    """

    def __init__(
        self,
        gateway: ModelCaller,
        tools: ToolInvoker,
        *,
        catalogue: str = "",
        prompts: PromptSet | None = None,
        config: AgentConfig | None = None,
        on_step: StepListener | None = None
    ):
        """
        Initialize the loop.

        Args:
            gateway: Model access for the three tiers
            tools: Executes tool calls
            catalogue: Numbered tool descriptions shown to the models
            prompts: Instruction texts (defaults when None)
            config: Iteration budget, compression threshold, review interval
            on_step: Optional async observer notified of each recorded step;
                notifications are not awaited by the loop
        """
        self.gateway = gateway
        self.tools = ToolExecutor(tools)
        self.prompts = prompts or PromptSet()
        self.config = config or AgentConfig()
        self.messages = MessageBuilder(self.prompts, catalogue)
        self.on_step = on_step

    @classmethod
    def from_config(
        cls,
        config: Config,
        gateway: ModelCaller,
        registry: Any,
        on_step: StepListener | None = None
    ) -> "AgentLoop":
        """Build a loop from a configuration snapshot and a ToolRegistry."""
        return cls(
            gateway,
            registry,
            catalogue=registry.describe(),
            prompts=config.prompts,
            config=config.agent,
            on_step=on_step,
        )

    async def run(
        self,
        history: Iterable["ConversationTurn | dict"],
        cancel: CancellationToken | None = None,
        trace: list[StepRecord] | None = None
    ) -> AgentResult:
        """
        Answer the latest user message in `history`.

        Args:
            history: Conversation so far, ending with the user's message
            cancel: Optional token; raising it aborts the run
            trace: Optional list to record steps into, so a caller can
                inspect partial progress if the run is interrupted

        Returns:
            AgentResult with the answer and the full step trace

        Raises:
            ConfigurationError, UpstreamError: A model call failed
            AgentCancelled: The token was raised
        """
        seed = ExecutionContext.from_history(history)
        steps: list[StepRecord] = trace if trace is not None else []

        gateway: ModelCaller = self.gateway
        if cancel is not None:
            gateway = _CancellableGateway(self.gateway, cancel)

        logger.info("Starting agent run", {"history_turns": len(seed)})
        try:
            return await self._run(gateway, seed, steps, cancel)
        except AgentError as e:
            e.trace = list(steps)
            logger.error(f"Agent run aborted after {len(steps)} steps", e)
            raise

    async def _run(
        self,
        gateway: ModelCaller,
        seed: ExecutionContext,
        steps: list[StepRecord],
        cancel: CancellationToken | None
    ) -> AgentResult:
        planner = PlanManager(gateway, self.messages, self.config.review_interval)
        compressor = MemoryCompressor(
            gateway, self.config.compression_threshold, self.prompts.compress
        )

        # Planning
        plan = await planner.create_plan(seed.turns)
        self._record(steps, PlanStep(plan=plan))

        context = ExecutionContext(seed.turns)
        iteration = 0

        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()

            iteration += 1
            if iteration > self.config.max_iterations:
                return await self._forced_summary(gateway, context, plan, steps)

            context = await compressor.maybe_compress(context)

            raw = await gateway.call(Tier.MID, self.messages.reasoning(context, plan))
            parsed = parse_decision(raw)
            context.append("assistant", raw)

            thought = parsed.thought or raw.strip()
            self._record(steps, ThoughtStep(thought=thought, iteration=iteration))
            logger.info(f"Iteration {iteration}: decision={parsed.decision.value}")

            if parsed.decision is Decision.ANSWER:
                answer = await gateway.call(
                    Tier.MID, self.messages.final_answer(context, plan)
                )
                logger.info(f"Answered after {iteration} iteration(s)")
                return AgentResult(
                    final_answer=clean_final_answer(answer),
                    trace=steps,
                    plan=plan,
                    iterations=iteration,
                )

            plan = await self._tool_step(
                gateway, planner, context, plan, thought, iteration, steps, cancel
            )

    async def _tool_step(
        self,
        gateway: ModelCaller,
        planner: PlanManager,
        context: ExecutionContext,
        plan: str,
        thought: str,
        iteration: int,
        steps: list[StepRecord],
        cancel: CancellationToken | None
    ) -> str:
        """
        Extract, run and observe one tool call. Returns the (maybe revised) plan.
        """
        extraction = await gateway.call(Tier.LOW, self.messages.extraction(thought))
        call = parse_tool_call(extraction)

        if call is None:
            logger.warning(
                "Could not parse a tool action from extraction output",
                {"output": extraction[:200]},
            )
            context.append("user", OBSERVATION_PREFIX + PARSE_FAILURE_OBSERVATION)
            self._record(steps, ErrorStep(error=PARSE_FAILURE_OBSERVATION))
            return plan

        self._record(steps, ActionStep(tool=call.name, param=call.param))

        pending = self.tools.execute(call)
        result = await (cancel.run(pending) if cancel is not None else pending)

        context.append("user", result.to_observation())
        self._record(steps, ObservationStep(value=result.value))

        if planner.should_review(iteration):
            revised = await planner.review_plan(context.turns, plan)
            if revised != plan:
                self._record(steps, PlanUpdateStep(plan=revised))
                return revised
        return plan

    async def _forced_summary(
        self,
        gateway: ModelCaller,
        context: ExecutionContext,
        plan: str,
        steps: list[StepRecord]
    ) -> AgentResult:
        max_iterations = self.config.max_iterations
        logger.warning(f"Iteration budget of {max_iterations} exhausted, summarizing")

        summary = await gateway.call(
            Tier.HIGH, self.messages.budget_exhausted(context, max_iterations)
        )
        return AgentResult(
            final_answer=f"{AUTO_SUMMARY_MARKER} {summary.strip()}",
            trace=steps,
            plan=plan,
            iterations=max_iterations,
            budget_exhausted=True,
        )

    def _record(self, steps: list[StepRecord], step: StepRecord) -> None:
        steps.append(step)
        if self.on_step is not None:
            fire_and_forget(self.on_step(step), name=f"on-step-{step.kind}")
