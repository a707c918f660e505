"""Model Client 抽象接口。

上层 AgentLoopController 不直接依赖具体厂商的 HTTP API，而是依赖此协议：

- 每个厂商实现一个 ModelClient（如 OpenAICompatibleClient）。
- 负责：把会话记录与可用工具转成具体 API 请求，并把响应解析为 InferenceResult。

这样可以在不改循环代码的前提下接入更多厂商，也可以用确定性的替身做测试。
"""

from typing import Protocol, Sequence

from llm_agent.domain.models import ConversationEntry, InferenceResult, ToolSchema


class ModelClient(Protocol):
    """Model Client 协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - infer(conversation, tools): 执行一次推理，返回文本和/或工具调用。
      网络、鉴权、解析失败抛 InferenceFailure 的子类。
    """

    name: str

    def infer(self, conversation: Sequence[ConversationEntry], tools: Sequence[ToolSchema]) -> InferenceResult:
        ...
