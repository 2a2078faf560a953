import pytest

from mailmind.agent.parser import (
    Decision,
    ToolCall,
    clean_final_answer,
    parse_decision,
    parse_react_response,
    parse_tool_call,
)


def test_react_action_extracts_tool_param_and_thought():
    text = 'Thought: I should look for invoices.\nAction: search_emails("invoice")'
    parsed = parse_react_response(text)
    assert parsed.has_action is True
    assert parsed.tool_name == "search_emails"
    assert parsed.tool_param == "invoice"
    assert parsed.thought == "I should look for invoices."
    assert parsed.final_answer is None


def test_react_action_is_case_insensitive_and_allows_empty_param():
    parsed = parse_react_response("thought: need the clock\naction: get_time()")
    assert parsed.has_action is True
    assert parsed.tool_name == "get_time"
    assert parsed.tool_param == ""
    assert parsed.thought == "need the clock"


def test_react_action_with_empty_quoted_param():
    parsed = parse_react_response('Action: count_unread_messages("")')
    assert parsed.tool_name == "count_unread_messages"
    assert parsed.tool_param == ""
    assert parsed.thought == ""


def test_react_action_wins_over_final_answer():
    text = 'Final Answer: maybe\nAction: get_time("")'
    parsed = parse_react_response(text)
    assert parsed.has_action is True
    assert parsed.tool_name == "get_time"


def test_react_final_answer_marker():
    text = "Thought: I know this.\nFinal Answer:   You have 3 unread emails.  "
    parsed = parse_react_response(text)
    assert parsed.has_action is False
    assert parsed.final_answer == "You have 3 unread emails."
    assert parsed.thought == "I know this."


def test_react_final_answer_marker_is_case_insensitive():
    parsed = parse_react_response("final answer: done")
    assert parsed.has_action is False
    assert parsed.final_answer == "done"


def test_react_without_markers_uses_whole_text():
    parsed = parse_react_response("Thought:  Just say hello back. ")
    assert parsed.has_action is False
    assert parsed.thought == "Just say hello back."
    assert parsed.final_answer == "Just say hello back."


@pytest.mark.parametrize("text", ["", "Action: (broken", 'Action: search_emails("unterminated)', None])
def test_react_never_raises_on_malformed_text(text):
    parsed = parse_react_response(text)
    assert parsed.has_action is False


def test_decision_call_tool():
    parsed = parse_decision("Thought: I need the unread count.\nDecision: CALL_TOOL")
    assert parsed.decision is Decision.CALL_TOOL
    assert parsed.thought == "I need the unread count."


def test_decision_is_lenient_about_case_and_prose():
    text = "Some preamble.\nThought: check mail\nDecision: I will call_tool now, obviously."
    parsed = parse_decision(text)
    assert parsed.decision is Decision.CALL_TOOL
    assert parsed.thought == "check mail"


@pytest.mark.parametrize(
    "text",
    [
        "Thought: all set\nDecision: ANSWER",
        "Thought: I can answer directly.",
        "Decision: maybe later",
        "",
    ],
)
def test_decision_defaults_to_answer(text):
    assert parse_decision(text).decision is Decision.ANSWER


def test_decision_without_thought_marker_uses_text_before_decision():
    parsed = parse_decision("Need data first.\nDecision: CALL_TOOL")
    assert parsed.thought == "Need data first."


def test_parse_tool_call_extracts_call():
    assert parse_tool_call('Sure.\nAction: search_by_tag("Important")') == ToolCall(
        "search_by_tag", "Important"
    )


def test_parse_tool_call_returns_none_without_match():
    assert parse_tool_call("I would search the inbox for Alice.") is None
    assert parse_tool_call("") is None


def test_clean_final_answer_strips_wrappers():
    assert clean_final_answer("Final Answer: 3 unread.") == "3 unread."
    assert clean_final_answer("Thought: You have 3 unread.") == "You have 3 unread."
    assert clean_final_answer("  plain text  ") == "plain text"
