"""统一的会话、工具与配置数据模型。

本模块定义了 Agent 循环在各组件之间共享的标准数据结构：

- ConversationEntry: 会话中的一条记录（user/assistant/tool）。
- ToolCallRequest: 模型发起的一次工具调用请求。
- ToolSchema: 暴露给模型的工具声明（名称、描述、参数 schema）。
- ToolResult: 工具执行结果（结构化 payload + 成功/失败标记）。
- InferenceResult: Model Client 单次推理的统一返回。
- AgentSessionState: 由 AgentLoopController 独占的会话状态。
- LLMConfig / ToolConfig: Configuration Store 持久化的两份配置。

所有 Provider 适配器、工具执行器和循环控制器都只依赖这些模型。
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional


# 会话角色。system prompt 不属于会话，由 Provider 适配层在请求时注入。
Role = Literal["user", "assistant", "tool"]


@dataclass
class ToolCallRequest:
    """模型发起的一次工具调用请求，由循环控制器恰好消费一次。"""

    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConversationEntry:
    """会话中的一条记录。

    - role: user / assistant / tool。
    - content: 纯文本内容；tool 记录保存序列化后的 ToolResult。
    - tool_calls: assistant 记录上模型请求的工具调用（按请求顺序）。
    - tool_call_id: tool 记录对应的调用 id。
    - name: tool 记录对应的工具名。
    """

    role: Role
    content: str
    tool_calls: Optional[List[ToolCallRequest]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ToolSchema:
    """一个可供模型调用的工具声明（不可变）。"""

    name: str
    display_name: str
    description: str
    parameters: Dict[str, Any]
    required: tuple = ()

    def to_json_schema(self) -> Dict[str, Any]:
        """渲染为完整的 JSON schema object。"""

        return {
            "type": "object",
            "properties": dict(self.parameters),
            "required": list(self.required),
        }


@dataclass
class ToolResult:
    """工具执行结果。

    payload 为工具自身的结构化输出；失败时 error 携带可读错误信息，
    error_code 携带机器可读错误码（如 VALIDATION_ERROR）。
    """

    success: bool
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, **payload: Any) -> "ToolResult":
        return cls(success=True, payload=payload)

    @classmethod
    def failure(cls, error: str, error_code: str = "EXECUTION_FAULT", **payload: Any) -> "ToolResult":
        return cls(success=False, payload=payload, error=error, error_code=error_code)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.payload)
        data["success"] = self.success
        if not self.success:
            data["error"] = self.error or "unknown error"
            if self.error_code:
                data["error_code"] = self.error_code
        return data

    def to_content(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


@dataclass
class InferenceResult:
    """Model Client 单次推理的返回：文本、工具调用，或两者兼有。"""

    text: Optional[str] = None
    tool_calls: List[ToolCallRequest] = field(default_factory=list)
    usage: Optional[Dict[str, int]] = None

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    @property
    def is_empty(self) -> bool:
        return not self.has_text and not self.tool_calls


class AgentStatus(str, Enum):
    """循环对外可观察的状态。"""

    READY = "Ready"
    THINKING = "Thinking"
    EXECUTING = "Executing"
    ERROR = "Error"


@dataclass
class AgentSessionState:
    """由 AgentLoopController 独占的会话状态。"""

    conversation: List[ConversationEntry] = field(default_factory=list)
    loop_active: bool = False
    status: AgentStatus = AgentStatus.READY


@dataclass
class LLMConfig:
    """LLM Provider 选择与凭据。"""

    provider_id: Optional[str] = None
    model_id: Optional[str] = None
    api_key: str = ""
    base_url: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.provider_id and self.model_id and self.api_key.strip())


@dataclass
class ToolSetting:
    """单个工具的启用状态与可选凭据。"""

    enabled: bool = True
    credentials: Dict[str, str] = field(default_factory=dict)


@dataclass
class ToolConfig:
    """工具名 → ToolSetting 的映射。未出现的工具视为禁用。"""

    tools: Dict[str, ToolSetting] = field(default_factory=dict)

    def is_enabled(self, name: str) -> bool:
        setting = self.tools.get(name)
        return bool(setting and setting.enabled)

    def credentials_for(self, name: str) -> Dict[str, str]:
        setting = self.tools.get(name)
        return dict(setting.credentials) if setting else {}

    def set_enabled(self, name: str, enabled: bool) -> None:
        self.tools.setdefault(name, ToolSetting(enabled=enabled)).enabled = enabled
