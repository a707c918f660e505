import pytest

from llm_agent.domain.exceptions import EmptyResponse, NetworkError
from llm_agent.domain.models import ConversationEntry, InferenceResult
from llm_agent.providers.mock_client import CANNED_RESPONSES, MockModelClient, ScriptedModelClient, extract_search_query
from llm_agent.tools.definitions import default_tool_schemas


def _user(text):
    return [ConversationEntry(role="user", content=text)]


def test_extract_search_query():
    assert extract_search_query("search for AI news") == "AI news"
    assert extract_search_query("Find") == "AI developments 2025"
    assert extract_search_query("look up the weather") == "the weather"


def test_mock_requests_search():
    res = MockModelClient().infer(_user("search for AI news"), default_tool_schemas())
    assert res.text == "I'll search for that information for you."
    call = res.tool_calls[0]
    assert call.id == "call_1"
    assert call.name == "google_search"
    assert call.arguments == {"query": "AI news", "num_results": 5}


def test_mock_requests_code_and_api():
    client = MockModelClient()
    code = client.infer(_user("calculate the factorial of 10"), default_tool_schemas())
    assert code.tool_calls[0].name == "execute_python"
    assert "factorial(10)" in code.tool_calls[0].arguments["code"]

    api = client.infer(_user("fetch the api data"), default_tool_schemas())
    assert api.tool_calls[0].name == "ai_pipe_request"
    assert api.tool_calls[0].id == "call_2"


def test_mock_only_requests_offered_tools():
    res = MockModelClient().infer(_user("search for AI news"), [])
    assert res.tool_calls == []
    assert res.text in CANNED_RESPONSES


def test_mock_summarizes_after_tool_results():
    conversation = _user("search for x") + [
        ConversationEntry(role="assistant", content="I'll search"),
        ConversationEntry(role="tool", content='{"success": true}', tool_call_id="call_1", name="google_search"),
        ConversationEntry(
            role="tool",
            content='{"success": false, "error": "boom"}',
            tool_call_id="call_2",
            name="execute_python",
        ),
    ]
    res = MockModelClient().infer(conversation, default_tool_schemas())
    assert res.tool_calls == []
    assert "google_search: completed successfully" in res.text
    assert "execute_python: failed (boom)" in res.text


def test_scripted_client_replays_and_raises():
    client = ScriptedModelClient([InferenceResult(text="a"), NetworkError(code="NETWORK_ERROR", message="down")])
    assert client.infer(_user("x"), []).text == "a"
    with pytest.raises(NetworkError):
        client.infer(_user("x"), [])
    with pytest.raises(EmptyResponse):
        client.infer(_user("x"), [])
    assert len(client.calls) == 3
