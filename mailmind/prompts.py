"""
Prompt Texts
============

Default instructions for every model call the agent makes, plus the fixed
markers the loop relies on when reading model output back.

Each instruction can be overridden through configuration (see
mailmind.utils.config); the markers cannot, because the parser and the
loop depend on them.
"""

from dataclasses import dataclass, replace


# Fixed markers
PLAN_KEEP_PHRASE = "looks good"
COMPRESSED_MEMORY_LABEL = "[Compressed memory]"
AUTO_SUMMARY_MARKER = "[Auto-summary]"
PARSE_FAILURE_OBSERVATION = (
    "Error: failed to parse tool action from the extraction model output."
)
LANGUAGE_SENTINEL = "IMPORTANT: Output in"


DEFAULT_PERSONA = (
    "You are an intelligent Thunderbird Email Agent.\n"
    "Your goal is to assist the user with email tasks."
)

DEFAULT_PLAN = (
    "Based on the conversation, please create a concise text-based plan (3-5 steps) "
    "to solve the user's latest request. If the request is simple (like \"hi\"), "
    "just say \"No complex plan needed\"."
)

DEFAULT_REVIEW = (
    "Based on recent observations, is this plan still valid? If needed, provide a "
    "revised plan. If valid, just say \"Plan looks good\"."
)

DEFAULT_THOUGHT = (
    "Task: Analyze the current situation. Do we need to use a tool to get more "
    "information, or can we answer the user now?"
)

DEFAULT_FINAL = "Please provide the final answer to the user request."

DEFAULT_COMPRESS = (
    "You are a memory management assistant. Please summarize the following "
    "conversation history into a concise summary, retaining all key facts, "
    "retrieved email info, and current progress so the Agent can continue."
)

DECISION_FORMAT = (
    "Respond in exactly this format:\n"
    "Thought: <your reasoning>\n"
    "Decision: CALL_TOOL or ANSWER"
)

TOOL_SECTION = """
Available tools:
{catalogue}

Final answers should be concise and lead with the result. Do not end with
offers of further help unless the user asks for it."""

EXTRACTION_PROMPT = """You convert an agent's reasoning into exactly one tool call.

Available tools:
{catalogue}

Output a single line and nothing else, in this exact format:
Action: tool_name("parameter")

Use an empty string for tools that take no parameter, e.g. Action: get_time("")"""

BUDGET_EXHAUSTED_PROMPT = (
    "You have exhausted your step budget ({max_iterations} steps) without reaching "
    "a final answer. Summarize for the user what was accomplished so far and what "
    "failed or remains unresolved."
)


@dataclass(frozen=True)
class PromptSet:
    """
    The instruction texts used by the agent.

    Example:
        prompts = PromptSet().with_overrides(plan="Always plan in 3 steps.")
    """
    persona: str = DEFAULT_PERSONA
    plan: str = DEFAULT_PLAN
    review: str = DEFAULT_REVIEW
    thought: str = DEFAULT_THOUGHT
    final: str = DEFAULT_FINAL
    compress: str = DEFAULT_COMPRESS

    def with_overrides(self, **overrides: str | None) -> "PromptSet":
        """Return a copy with every non-empty override applied."""
        changes = {key: value for key, value in overrides.items() if value}
        if not changes:
            return self
        return replace(self, **changes)
