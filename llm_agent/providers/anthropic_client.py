"""Anthropic Messages API 适配器。

与 OpenAICompatibleClient 结构一致，差异在于：
- system prompt 是顶层字段，不在 messages 里。
- 助手的工具调用是 tool_use 内容块，工具结果以 user 角色的 tool_result 块回传。
- 连续的同角色消息需要合并（多个工具结果合并为一条 user 消息）。
"""

from typing import Any, Dict, List, Optional, Sequence

import httpx

from llm_agent.config.settings import settings
from llm_agent.domain.exceptions import (
    ApiError,
    InferenceFailure,
    MissingCredentials,
    NetworkError,
    RateLimitError,
)
from llm_agent.domain.models import (
    ConversationEntry,
    InferenceResult,
    LLMConfig,
    ToolCallRequest,
    ToolSchema,
)
from llm_agent.prompts import load_system_prompt
from llm_agent.providers.registry import ANTHROPIC_CONFIG, ProviderConfig


class AnthropicClient:
    def __init__(self, llm_config: LLMConfig, cfg=settings, system_prompt: Optional[str] = None):
        self._llm = llm_config
        self._settings = cfg
        self._provider: ProviderConfig = ANTHROPIC_CONFIG
        self._system_prompt = load_system_prompt() if system_prompt is None else system_prompt
        self.name = self._provider.id

    @property
    def base_url(self) -> str:
        return (self._llm.base_url or self._provider.base_url).rstrip("/")

    def infer(self, conversation: Sequence[ConversationEntry], tools: Sequence[ToolSchema]) -> InferenceResult:
        if not self._llm.api_key:
            raise MissingCredentials(code="MISSING_API_KEY", message=f"{self._provider.name}: API key not set")
        payload = self._build_payload(conversation, tools)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    f"{self.base_url}/messages",
                    json=payload,
                    headers={
                        "x-api-key": self._llm.api_key,
                        "Content-Type": "application/json",
                        **self._provider.extra_headers,
                    },
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message=f"{self._provider.name} rate limit")
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise InferenceFailure(code="PARSE_ERROR", message=f"Invalid JSON from provider: {e}")
        return self._parse_response(data)

    def _build_payload(self, conversation: Sequence[ConversationEntry], tools: Sequence[ToolSchema]) -> dict:
        payload: Dict[str, Any] = {
            "model": self._llm.model_id,
            "max_tokens": self._provider.max_tokens,
            "temperature": self._provider.default_temperature,
            "messages": self._to_messages(conversation),
        }
        if self._system_prompt:
            payload["system"] = self._system_prompt
        if tools:
            payload["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.to_json_schema()} for t in tools
            ]
        return payload

    @staticmethod
    def _to_messages(conversation: Sequence[ConversationEntry]) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        for entry in conversation:
            if entry.role == "tool":
                role = "user"
                blocks = [{"type": "tool_result", "tool_use_id": entry.tool_call_id, "content": entry.content}]
            else:
                role = entry.role
                blocks = []
                if entry.content:
                    blocks.append({"type": "text", "text": entry.content})
                for call in entry.tool_calls or []:
                    blocks.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})
            if not blocks:
                continue
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"].extend(blocks)
            else:
                messages.append({"role": role, "content": blocks})
        return messages

    @staticmethod
    def _parse_response(data: dict) -> InferenceResult:
        if "content" not in data:
            raise InferenceFailure(code="PARSE_ERROR", message="Provider response has no content")
        texts: List[str] = []
        calls: List[ToolCallRequest] = []
        for idx, block in enumerate(data.get("content") or []):
            if block.get("type") == "text" and block.get("text"):
                texts.append(block["text"])
            elif block.get("type") == "tool_use":
                raw_input = block.get("input")
                calls.append(
                    ToolCallRequest(
                        id=block.get("id") or f"tool_use_{idx}",
                        name=block.get("name") or "",
                        arguments=raw_input if isinstance(raw_input, dict) else {},
                    )
                )
        usage_raw = data.get("usage") or {}
        usage = None
        if usage_raw:
            prompt = usage_raw.get("input_tokens", 0)
            completion = usage_raw.get("output_tokens", 0)
            usage = {"prompt_tokens": prompt, "completion_tokens": completion, "total_tokens": prompt + completion}
        return InferenceResult(text="\n".join(texts) or None, tool_calls=calls, usage=usage)
