import json

from llm_agent.domain.models import InferenceResult, LLMConfig, ToolCallRequest, ToolConfig, ToolResult, ToolSetting


def test_tool_result_content_success_and_failure():
    ok = ToolResult.ok(query="q", results=[1, 2])
    assert json.loads(ok.to_content()) == {"query": "q", "results": [1, 2], "success": True}

    bad = ToolResult.failure("boom", error_code="NETWORK_ERROR", code="x")
    data = json.loads(bad.to_content())
    assert data["success"] is False
    assert data["error"] == "boom"
    assert data["error_code"] == "NETWORK_ERROR"
    assert data["code"] == "x"


def test_inference_result_emptiness():
    assert InferenceResult().is_empty
    assert InferenceResult(text="   ").is_empty
    assert not InferenceResult(text="hi").is_empty
    assert not InferenceResult(tool_calls=[ToolCallRequest(id="1", name="google_search")]).is_empty


def test_llm_config_is_configured():
    assert not LLMConfig().is_configured
    assert not LLMConfig(provider_id="openai", model_id="gpt-4", api_key="  ").is_configured
    assert LLMConfig(provider_id="openai", model_id="gpt-4", api_key="sk").is_configured


def test_tool_config_absent_tool_is_disabled():
    cfg = ToolConfig(tools={"google_search": ToolSetting(enabled=True, credentials={"k": "v"})})
    assert cfg.is_enabled("google_search")
    assert not cfg.is_enabled("execute_python")
    assert cfg.credentials_for("execute_python") == {}

    creds = cfg.credentials_for("google_search")
    creds["k"] = "changed"
    assert cfg.tools["google_search"].credentials["k"] == "v"

    cfg.set_enabled("execute_python", True)
    assert cfg.is_enabled("execute_python")
