"""Provider 目录。

配置界面里可选的 LLM Provider 及其默认 base_url、可选模型，
以及每个 Provider 使用哪种 API 风格（OpenAI 兼容 / Anthropic Messages / 本地 mock）。"""

from dataclasses import dataclass, field
from typing import List, Literal, Mapping


ApiStyle = Literal["openai", "anthropic", "mock"]


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    id: str
    name: str
    base_url: str
    models: List[str]
    api_style: ApiStyle = "openai"
    requires_key: bool = True
    description: str = ""
    max_tokens: int = 4096
    default_temperature: float = 0.7
    extra_headers: dict = field(default_factory=dict)


OPENAI_CONFIG = ProviderConfig(
    id="openai",
    name="OpenAI GPT",
    base_url="https://api.openai.com/v1",
    models=["gpt-4", "gpt-4-turbo", "gpt-3.5-turbo"],
)

ANTHROPIC_CONFIG = ProviderConfig(
    id="anthropic",
    name="Anthropic Claude",
    base_url="https://api.anthropic.com/v1",
    models=["claude-3-sonnet", "claude-3-haiku"],
    api_style="anthropic",
    extra_headers={"anthropic-version": "2023-06-01"},
)

# Gemini 走官方的 OpenAI 兼容端点
GEMINI_CONFIG = ProviderConfig(
    id="gemini",
    name="Google Gemini",
    base_url="https://generativelanguage.googleapis.com/v1beta/openai",
    models=["gemini-pro", "gemini-pro-vision"],
)

AIPIPE_CONFIG = ProviderConfig(
    id="aipipe",
    name="AI Pipe",
    base_url="https://aipipe.org/openrouter/v1",
    models=["openai/gpt-4", "anthropic/claude-3-sonnet"],
    description="Access LLMs without backend via AI Pipe proxy",
)

MOCK_CONFIG = ProviderConfig(
    id="mock",
    name="Offline mock",
    base_url="",
    models=["mock"],
    api_style="mock",
    requires_key=False,
    description="Deterministic canned responses, no network",
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openai": OPENAI_CONFIG,
    "anthropic": ANTHROPIC_CONFIG,
    "gemini": GEMINI_CONFIG,
    "aipipe": AIPIPE_CONFIG,
    "mock": MOCK_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
