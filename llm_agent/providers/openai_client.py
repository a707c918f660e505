"""OpenAI 兼容 Provider 适配器（OpenAI / Gemini / AI Pipe）。

本模块负责：

1. 接收会话记录与可用工具声明。
2. 将其转换为 {base_url}/chat/completions 的 HTTP 请求格式。
3. 调用 HTTP 接口并处理网络/API 异常。
4. 将响应 JSON 解析为统一的 InferenceResult（含工具调用）。

换句话说，这里就是“厂商 JSON ⇄ 项目内部统一模型”的核心转换层，
Anthropic 等非兼容厂商参考此文件的结构实现对应的 Client。
"""

import json
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
from llm_agent.providers.registry import ProviderConfig, get_provider_config


class OpenAICompatibleClient:
    """OpenAI chat/completions 风格的客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - infer: 对外统一调用入口，返回 InferenceResult。
    """

    def __init__(self, llm_config: LLMConfig, cfg=settings, system_prompt: Optional[str] = None):
        # llm_config 里包含 provider、model、api_key、base_url
        self._llm = llm_config
        self._settings = cfg
        self._provider: ProviderConfig = get_provider_config(llm_config.provider_id or "openai")
        self._system_prompt = load_system_prompt() if system_prompt is None else system_prompt
        self.name = self._provider.id

    @property
    def base_url(self) -> str:
        return (self._llm.base_url or self._provider.base_url).rstrip("/")

    def infer(self, conversation: Sequence[ConversationEntry], tools: Sequence[ToolSchema]) -> InferenceResult:
        """执行一次非流式推理。

        步骤：
        1. 校验 API key。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 解析第一条 choice 为 InferenceResult。
        """

        if not self._llm.api_key:
            # 配置缺失走 MissingCredentials，方便循环统一处理
            raise MissingCredentials(code="MISSING_API_KEY", message=f"{self._provider.name}: API key not set")
        payload = self._build_payload(conversation, tools)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._llm.api_key}",
                        "Content-Type": "application/json",
                        **self._provider.extra_headers,
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
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
        """将会话记录转成 chat/completions 所需的请求 JSON。"""

        msgs: List[Dict[str, Any]] = []
        if self._system_prompt:
            msgs.append({"role": "system", "content": self._system_prompt})
        msgs.extend(self._entry_to_payload(e) for e in conversation)
        payload: Dict[str, Any] = {
            "model": self._llm.model_id,
            "messages": msgs,
            "temperature": self._provider.default_temperature,
            "max_tokens": self._provider.max_tokens,
        }
        if tools:
            payload["tools"] = [self._serialize_tool(tool) for tool in tools]
            payload["tool_choice"] = "auto"
        return payload

    def _parse_response(self, data: dict) -> InferenceResult:
        choices = data.get("choices") or []
        if not choices:
            raise InferenceFailure(code="PARSE_ERROR", message="Provider response has no choices")
        msg = choices[0].get("message") or {}
        usage_raw = data.get("usage") or {}
        usage = None
        if usage_raw:
            usage = {
                "prompt_tokens": usage_raw.get("prompt_tokens", 0),
                "completion_tokens": usage_raw.get("completion_tokens", 0),
                "total_tokens": usage_raw.get("total_tokens", 0),
            }
        return InferenceResult(
            text=msg.get("content") or None,
            tool_calls=self._parse_tool_calls(msg),
            usage=usage,
        )

    @staticmethod
    def _serialize_tool(tool: ToolSchema) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.to_json_schema(),
            },
        }

    def _parse_tool_calls(self, payload: Dict[str, Any]) -> List[ToolCallRequest]:
        tool_calls: List[ToolCallRequest] = []
        for idx, call in enumerate(payload.get("tool_calls") or []):
            func = call.get("function") or {}
            tool_calls.append(
                ToolCallRequest(
                    id=call.get("id") or f"tool_call_{idx}",
                    name=func.get("name") or call.get("name") or "",
                    arguments=self._parse_arguments(func.get("arguments")),
                )
            )

        # 部分兼容实现仍会返回旧版 function_call 字段
        function_call = payload.get("function_call")
        if function_call:
            tool_calls.append(
                ToolCallRequest(
                    id=function_call.get("id") or "function_call",
                    name=function_call.get("name") or "",
                    arguments=self._parse_arguments(function_call.get("arguments")),
                )
            )
        return tool_calls

    @staticmethod
    def _parse_arguments(raw: Any) -> Dict[str, Any]:
        """解析工具调用的 arguments 字段。

        arguments 通常是 JSON 字符串，这里做一层 json.loads 尝试，
        失败时保留原始字符串到 `_raw`，交给工具校验去报错。
        """

        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str):
            if not raw.strip():
                return {}
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                return {"_raw": raw}
            return parsed if isinstance(parsed, dict) else {"_raw": raw}
        return {}

    @staticmethod
    def _entry_to_payload(entry: ConversationEntry) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": entry.role, "content": entry.content}
        if entry.tool_calls:
            payload["content"] = entry.content or None
            payload["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments, ensure_ascii=False),
                    },
                }
                for call in entry.tool_calls
            ]
        if entry.tool_call_id:
            payload["tool_call_id"] = entry.tool_call_id
        if entry.role == "tool" and entry.name:
            payload["name"] = entry.name
        return payload
