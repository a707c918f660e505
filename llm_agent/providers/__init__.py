"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Model Client 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供各厂商的具体实现 (openai_client、anthropic_client) 以及离线的 mock_client。
"""

from llm_agent.config.settings import settings
from llm_agent.domain.exceptions import BusinessError, ValidationError
from llm_agent.domain.models import ConversationEntry, LLMConfig
from llm_agent.infrastructure.logging.logger import logger
from llm_agent.providers.anthropic_client import AnthropicClient
from llm_agent.providers.base import ModelClient
from llm_agent.providers.mock_client import MockModelClient, ScriptedModelClient
from llm_agent.providers.openai_client import OpenAICompatibleClient
from llm_agent.providers.registry import PROVIDER_REGISTRY, get_provider_config


def create_model_client(llm_config: LLMConfig, cfg=settings) -> ModelClient:
    """根据 LLMConfig 创建 Model Client。

    未完整配置（provider/model/api_key 任一缺失）或显式选择 mock 时，
    返回离线的 MockModelClient。
    """

    provider_id = (llm_config.provider_id or cfg.default_provider or "mock").lower()
    if provider_id == "mock" or not llm_config.is_configured:
        return MockModelClient()
    try:
        provider = get_provider_config(provider_id)
    except KeyError:
        raise ValidationError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {provider_id}")
    if provider.api_style == "anthropic":
        return AnthropicClient(llm_config, cfg)
    return OpenAICompatibleClient(llm_config, cfg)


def check_connection(client: ModelClient) -> bool:
    """发一条极短的请求验证 Provider 可用，任何失败都返回 False。"""

    probe = [ConversationEntry(role="user", content="ping")]
    try:
        result = client.infer(probe, [])
    except BusinessError as e:
        logger.warning(
            "Connection check failed",
            extra={"extra": {"provider": getattr(client, "name", "?"), "code": e.code, "error": e.message}},
        )
        return False
    except Exception as e:  # noqa: BLE001
        logger.warning(
            "Connection check failed",
            extra={"extra": {"provider": getattr(client, "name", "?"), "error": str(e)}},
        )
        return False
    return not result.is_empty


__all__ = [
    "AnthropicClient",
    "MockModelClient",
    "ModelClient",
    "OpenAICompatibleClient",
    "PROVIDER_REGISTRY",
    "ScriptedModelClient",
    "check_connection",
    "create_model_client",
]
