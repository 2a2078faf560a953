import asyncio
import json
from datetime import datetime

import pytest

from mailmind.agent.cancellation import CancellationToken
from mailmind.agent.core import AgentLoop
from mailmind.agent.gateway import Tier
from mailmind.agent.trace import (
    ActionStep,
    ErrorStep,
    ObservationStep,
    PlanStep,
    PlanUpdateStep,
    ThoughtStep,
)
from mailmind.errors import AgentCancelled, ConfigurationError, ToolExecutionError, UpstreamError
from mailmind.memory.working import ConversationTurn
from mailmind.prompts import (
    AUTO_SUMMARY_MARKER,
    COMPRESSED_MEMORY_LABEL,
    PARSE_FAILURE_OBSERVATION,
)
from tests.conftest import make_agent_config
from tests.fakes import FakeGateway, FakeToolInvoker, tool_loop_high

CALL_TOOL = "Thought: I need more information.\nDecision: CALL_TOOL"
ANSWER = "Thought: I have what I need.\nDecision: ANSWER"


def kinds(trace) -> list[str]:
    return [step.kind for step in trace]


def make_loop(gateway, tools=None, **config) -> AgentLoop:
    return AgentLoop(
        gateway,
        tools or FakeToolInvoker(),
        catalogue="1. get_time(): Get the current time.",
        config=make_agent_config(**config),
    )


@pytest.mark.asyncio
async def test_greeting_is_answered_in_one_iteration_without_tools(fake_tools):
    gateway = FakeGateway(
        high=["No complex plan needed"],
        mid=["Thought: The user is greeting me.\nDecision: ANSWER", "Hello! How can I help with your mail?"],
    )
    loop = make_loop(gateway, fake_tools)

    result = await loop.run([ConversationTurn("user", "hi")])

    assert result.final_answer == "Hello! How can I help with your mail?"
    assert result.iterations == 1
    assert result.budget_exhausted is False
    assert kinds(result.trace) == ["plan", "thought"]
    assert result.trace[0] == PlanStep(plan="No complex plan needed")
    assert result.trace[1] == ThoughtStep(thought="The user is greeting me.", iteration=1)
    assert fake_tools.calls == []
    assert gateway.calls_for(Tier.LOW) == []


@pytest.mark.asyncio
async def test_tool_call_then_answer(user_history):
    tools = FakeToolInvoker(results={"count_unread_messages": {"unread_count": 3}})
    gateway = FakeGateway(
        high=["1. Count unread\n2. Answer"],
        mid=[CALL_TOOL, ANSWER, "Final Answer: You have 3 unread emails."],
        low=['Action: count_unread_messages("")'],
    )
    loop = make_loop(gateway, tools)

    result = await loop.run(user_history)

    assert result.final_answer == "You have 3 unread emails."
    assert result.iterations == 2
    assert kinds(result.trace) == ["plan", "thought", "action", "observation", "thought"]
    assert result.trace[2] == ActionStep(tool="count_unread_messages", param="")
    assert result.trace[3] == ObservationStep(value={"unread_count": 3})
    assert tools.calls == [{"name": "count_unread_messages", "param": ""}]

    # The second reasoning call sees the raw first response and the observation
    second_reasoning = gateway.calls_for(Tier.MID)[1]["messages"]
    contents = [turn.content for turn in second_reasoning]
    assert CALL_TOOL in contents
    assert 'Observation: {"unread_count": 3}' in contents


@pytest.mark.asyncio
async def test_extraction_prompt_is_derived_from_thought(user_history):
    gateway = FakeGateway(
        mid=["Thought: search for invoices from Alice\nDecision: CALL_TOOL", ANSWER, "done"],
        low=['Action: search_emails("invoice")'],
    )
    loop = make_loop(gateway)

    await loop.run(user_history)

    [extraction] = gateway.calls_for(Tier.LOW)
    assert extraction["messages"][-1].content == "Thought: search for invoices from Alice"
    assert "get_time" in extraction["messages"][0].content


@pytest.mark.asyncio
async def test_reasoning_prompt_includes_plan_and_decision_format(user_history):
    gateway = FakeGateway(high=["1. Do the thing"], mid=[ANSWER, "ok"])
    loop = make_loop(gateway)

    await loop.run(user_history)

    reasoning = gateway.calls_for(Tier.MID)[0]["messages"]
    assert "Current plan:\n1. Do the thing" in reasoning[0].content
    assert reasoning[1] == user_history[0]
    assert "Decision: CALL_TOOL or ANSWER" in reasoning[-1].content


@pytest.mark.asyncio
@pytest.mark.parametrize("budget", [1, 3, 5, 15])
async def test_budget_exhaustion_forces_summary_after_exactly_n_iterations(budget, user_history):
    tools = FakeToolInvoker()
    gateway = FakeGateway(high=tool_loop_high, mid=[CALL_TOOL], low=['Action: get_time("")'])
    loop = make_loop(gateway, tools, max_iterations=budget)

    result = await loop.run(user_history)

    assert result.budget_exhausted is True
    assert result.iterations == budget
    assert result.final_answer.startswith(AUTO_SUMMARY_MARKER)
    assert "could not finish" in result.final_answer
    assert len(gateway.calls_for(Tier.MID)) == budget
    assert len(tools.calls) == budget
    thoughts = [step for step in result.trace if isinstance(step, ThoughtStep)]
    assert [step.iteration for step in thoughts] == list(range(1, budget + 1))
    assert "exhausted your step budget" in gateway.last_user_text(Tier.HIGH)


@pytest.mark.asyncio
async def test_plan_review_runs_only_on_multiples_of_three(user_history):
    reviews = []

    def high(messages):
        instruction = messages[-1].content
        if "still valid" in instruction:
            reviews.append(instruction)
            return f"Revised plan {len(reviews)}"
        if "exhausted your step budget" in instruction:
            return "summary"
        return "Initial plan"

    gateway = FakeGateway(high=high, mid=[CALL_TOOL], low=['Action: get_time("")'])
    loop = make_loop(gateway, max_iterations=10)

    result = await loop.run(user_history)

    assert len(reviews) == 3
    updates = []
    current_iteration = None
    for step in result.trace:
        if isinstance(step, ThoughtStep):
            current_iteration = step.iteration
        if isinstance(step, PlanUpdateStep):
            updates.append((current_iteration, step.plan))
    assert updates == [(3, "Revised plan 1"), (6, "Revised plan 2"), (9, "Revised plan 3")]
    assert result.plan == "Revised plan 3"


@pytest.mark.asyncio
async def test_unchanged_plan_after_review_records_no_update(user_history):
    gateway = FakeGateway(high=tool_loop_high, mid=[CALL_TOOL], low=['Action: get_time("")'])
    loop = make_loop(gateway, max_iterations=6)

    result = await loop.run(user_history)

    assert "planUpdate" not in kinds(result.trace)
    high_instructions = [call["messages"][-1].content for call in gateway.calls_for(Tier.HIGH)]
    assert sum("still valid" in text for text in high_instructions) == 2


@pytest.mark.asyncio
async def test_malformed_extraction_records_error_and_continues(user_history):
    tools = FakeToolInvoker()
    gateway = FakeGateway(
        mid=[CALL_TOOL, CALL_TOOL, ANSWER, "Here you go."],
        low=["I think we should look at the inbox.", 'Action: get_time("")'],
    )
    loop = make_loop(gateway, tools)

    result = await loop.run(user_history)

    assert result.final_answer == "Here you go."
    assert result.iterations == 3
    assert kinds(result.trace) == [
        "plan", "thought", "error", "thought", "action", "observation", "thought"
    ]
    assert result.trace[2] == ErrorStep(error=PARSE_FAILURE_OBSERVATION)
    assert len(tools.calls) == 1
    second_reasoning = [turn.content for turn in gateway.calls_for(Tier.MID)[1]["messages"]]
    assert f"Observation: {PARSE_FAILURE_OBSERVATION}" in second_reasoning


@pytest.mark.asyncio
async def test_tool_failure_becomes_observation(user_history):
    tools = FakeToolInvoker(results={"get_time": ToolExecutionError("clock unavailable")})
    gateway = FakeGateway(mid=[CALL_TOOL, ANSWER, "Sorry, I could not read the clock."])
    loop = make_loop(gateway, tools)

    result = await loop.run(user_history)

    assert result.final_answer == "Sorry, I could not read the clock."
    assert ObservationStep(value="Error: clock unavailable") in result.trace


@pytest.mark.asyncio
async def test_upstream_error_on_planning_aborts_before_any_thought(user_history):
    error = UpstreamError(503, "service unavailable")
    gateway = FakeGateway(high=[error])
    loop = make_loop(gateway)

    with pytest.raises(UpstreamError) as exc_info:
        await loop.run(user_history)

    assert exc_info.value is error
    assert exc_info.value.trace == []
    assert gateway.calls_for(Tier.MID) == []


@pytest.mark.asyncio
async def test_upstream_error_mid_run_carries_partial_trace(user_history):
    gateway = FakeGateway(
        mid=[CALL_TOOL, UpstreamError(502, "bad gateway")],
        low=['Action: get_time("")'],
    )
    loop = make_loop(gateway)

    with pytest.raises(UpstreamError) as exc_info:
        await loop.run(user_history)

    assert exc_info.value.status == 502
    assert kinds(exc_info.value.trace) == ["plan", "thought", "action", "observation"]


@pytest.mark.asyncio
async def test_configuration_error_is_not_recovered(user_history):
    gateway = FakeGateway(mid=[ConfigurationError("no key")])
    loop = make_loop(gateway)

    with pytest.raises(ConfigurationError) as exc_info:
        await loop.run(user_history)

    assert kinds(exc_info.value.trace) == ["plan"]


@pytest.mark.asyncio
async def test_large_context_is_compressed_before_reasoning():
    history = [ConversationTurn("user", "Summarize this thread: " + "x" * 500)]
    gateway = FakeGateway(
        mid=["Alice asked for a summary of a long thread.", ANSWER, "Summary ready."],
    )
    loop = make_loop(gateway, compression_threshold=200)

    result = await loop.run(history)

    assert result.final_answer == "Summary ready."
    compression, reasoning, _ = gateway.calls_for(Tier.MID)
    assert "memory management assistant" in compression["messages"][0].content
    assert reasoning["messages"][1].content.startswith(COMPRESSED_MEMORY_LABEL)
    assert len(reasoning["messages"]) == 3


@pytest.mark.asyncio
async def test_cancel_before_start_raises_without_model_calls(user_history):
    gateway = FakeGateway()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(AgentCancelled) as exc_info:
        await make_loop(gateway).run(user_history, cancel=token)

    assert exc_info.value.trace == []


@pytest.mark.asyncio
async def test_cancel_aborts_in_flight_call_and_keeps_partial_trace(user_history):
    gateway = FakeGateway(mid=[ANSWER], delays={Tier.MID: 10.0})
    token = CancellationToken()
    steps = []

    asyncio.get_running_loop().call_later(0.05, token.cancel)
    with pytest.raises(AgentCancelled) as exc_info:
        await asyncio.wait_for(make_loop(gateway).run(user_history, cancel=token, trace=steps), 2)

    assert kinds(exc_info.value.trace) == ["plan"]
    assert kinds(steps) == ["plan"]
    assert gateway.cancelled_calls == 1


@pytest.mark.asyncio
async def test_step_listener_is_notified_without_blocking(user_history):
    seen = []

    async def listener(step):
        seen.append(step.kind)

    gateway = FakeGateway(mid=[CALL_TOOL, ANSWER, "ok"])
    loop = AgentLoop(gateway, FakeToolInvoker(), on_step=listener)

    result = await loop.run(user_history)
    await asyncio.sleep(0)

    assert seen == kinds(result.trace)


@pytest.mark.asyncio
async def test_history_dicts_are_accepted_and_metadata_is_json(user_history):
    gateway = FakeGateway(mid=[CALL_TOOL, ANSWER, "ok"])
    loop = make_loop(gateway)

    result = await loop.run([{"role": "user", "content": "What time is it?"}])
    metadata = json.loads(json.dumps(result.to_metadata()))

    assert metadata["iterations"] == 2
    assert [step["type"] for step in metadata["trace"]] == kinds(result.trace)
    assert metadata["trace"][2] == {"type": "action", "tool": "get_time", "param": ""}


@pytest.mark.asyncio
async def test_metadata_serializes_tool_results_json_cannot_encode(user_history):
    sent_at = datetime(2026, 1, 1, 9, 30)
    tools = FakeToolInvoker(results={"get_time": {"now": sent_at, "tags": {"inbox"}}})
    gateway = FakeGateway(mid=[CALL_TOOL, ANSWER, "It is 9:30."])
    loop = make_loop(gateway, tools)

    result = await loop.run(user_history)
    metadata = json.loads(json.dumps(result.to_metadata()))

    assert metadata["trace"][3] == {
        "type": "observation",
        "value": {"now": str(sent_at), "tags": str({"inbox"})},
    }
    assert result.trace[3] == ObservationStep(value={"now": sent_at, "tags": {"inbox"}})


@pytest.mark.asyncio
async def test_runs_do_not_share_context(user_history):
    gateway = FakeGateway(mid=[ANSWER, "first", ANSWER, "second"])
    loop = make_loop(gateway)

    await loop.run(user_history)
    await loop.run([ConversationTurn("user", "Another question")])

    third_reasoning = gateway.calls_for(Tier.MID)[2]["messages"]
    contents = [turn.content for turn in third_reasoning]
    assert "How many unread emails do I have?" not in contents
    assert "Another question" in contents
