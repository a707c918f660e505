import pytest

from llm_agent.domain.exceptions import ApiError, ValidationError
from llm_agent.domain.models import InferenceResult, LLMConfig
from llm_agent.providers import (
    AnthropicClient,
    MockModelClient,
    OpenAICompatibleClient,
    ScriptedModelClient,
    check_connection,
    create_model_client,
)
from llm_agent.providers.registry import get_provider_config


class SettingsStub:
    default_provider = "mock"
    http_timeout = 1.0


def test_unconfigured_falls_back_to_mock():
    assert isinstance(create_model_client(LLMConfig(), SettingsStub()), MockModelClient)
    cfg = LLMConfig(provider_id="openai", model_id="gpt-4", api_key="")
    assert isinstance(create_model_client(cfg, SettingsStub()), MockModelClient)


def test_factory_selects_client_by_api_style():
    openai = create_model_client(LLMConfig("openai", "gpt-4", "k"), SettingsStub())
    assert isinstance(openai, OpenAICompatibleClient)
    aipipe = create_model_client(LLMConfig("aipipe", "openai/gpt-4", "k"), SettingsStub())
    assert isinstance(aipipe, OpenAICompatibleClient)
    assert aipipe.base_url == "https://aipipe.org/openrouter/v1"
    anthropic = create_model_client(LLMConfig("Anthropic", "claude-3-haiku", "k"), SettingsStub())
    assert isinstance(anthropic, AnthropicClient)


def test_factory_unknown_provider():
    with pytest.raises(ValidationError):
        create_model_client(LLMConfig("nope", "m", "k"), SettingsStub())


def test_provider_registry_lookup():
    assert get_provider_config("GEMINI").id == "gemini"
    with pytest.raises(KeyError):
        get_provider_config("nope")


def test_check_connection():
    assert check_connection(ScriptedModelClient([InferenceResult(text="pong")]))
    assert not check_connection(ScriptedModelClient([ApiError(code="API_ERROR", message="bad key")]))
    assert not check_connection(ScriptedModelClient([RuntimeError("boom")]))
    assert check_connection(MockModelClient())
