import pytest

from llm_agent.domain.exceptions import InferenceFailure, RateLimitError
from llm_agent.domain.models import ConversationEntry, LLMConfig, ToolCallRequest
from llm_agent.providers.anthropic_client import AnthropicClient
from llm_agent.tools.definitions import default_tool_schemas


class SettingsStub:
    http_timeout = 1.0


def _install(monkeypatch, status=200, body=None, captured=None):
    captured = captured if captured is not None else {}

    class Resp:
        status_code = status
        text = "err"

        def json(self):
            return body

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, json=None, headers=None, **kw):
            captured.update({"url": url, "json": json, "headers": headers})
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)
    return captured


def _client():
    cfg = LLMConfig(provider_id="anthropic", model_id="claude-3-haiku", api_key="ak")
    return AnthropicClient(cfg, SettingsStub(), system_prompt="SYS")


def test_anthropic_payload_and_tool_use(monkeypatch):
    captured = _install(
        monkeypatch,
        body={
            "content": [
                {"type": "text", "text": "Let me search."},
                {"type": "tool_use", "id": "toolu_1", "name": "google_search", "input": {"query": "AI"}},
            ],
            "usage": {"input_tokens": 10, "output_tokens": 5},
        },
    )
    conversation = [
        ConversationEntry(role="user", content="find"),
        ConversationEntry(
            role="assistant",
            content="ok",
            tool_calls=[
                ToolCallRequest(id="a", name="google_search", arguments={"query": "x"}),
                ToolCallRequest(id="b", name="execute_python", arguments={"code": "1"}),
            ],
        ),
        ConversationEntry(role="tool", content="r1", tool_call_id="a", name="google_search"),
        ConversationEntry(role="tool", content="r2", tool_call_id="b", name="execute_python"),
    ]
    res = _client().infer(conversation, default_tool_schemas())

    assert captured["url"] == "https://api.anthropic.com/v1/messages"
    assert captured["headers"]["x-api-key"] == "ak"
    assert captured["headers"]["anthropic-version"] == "2023-06-01"
    payload = captured["json"]
    assert payload["system"] == "SYS"
    assert payload["tools"][0]["input_schema"]["properties"]["query"]["type"] == "string"
    msgs = payload["messages"]
    assert [m["role"] for m in msgs] == ["user", "assistant", "user"]
    assert [b["type"] for b in msgs[1]["content"]] == ["text", "tool_use", "tool_use"]
    assert [b["tool_use_id"] for b in msgs[2]["content"]] == ["a", "b"]

    assert res.text == "Let me search."
    assert res.tool_calls[0].id == "toolu_1"
    assert res.tool_calls[0].arguments == {"query": "AI"}
    assert res.usage == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}


def test_anthropic_rate_limit(monkeypatch):
    _install(monkeypatch, status=429, body={})
    with pytest.raises(RateLimitError):
        _client().infer([ConversationEntry(role="user", content="hi")], [])


def test_anthropic_malformed_response(monkeypatch):
    _install(monkeypatch, body={"type": "error"})
    with pytest.raises(InferenceFailure) as exc:
        _client().infer([ConversationEntry(role="user", content="hi")], [])
    assert exc.value.code == "PARSE_ERROR"
