from typing import List, Protocol, Tuple

from llm_agent.domain.models import AgentStatus, ToolCallRequest, ToolResult


class AgentListener(Protocol):
    """UI 协作者协议。

    循环控制器在状态机的固定位置同步调用这些方法，不依赖其返回值。
    """

    def on_user_message(self, text: str) -> None:
        ...

    def on_assistant_message(self, text: str) -> None:
        ...

    def on_tool_call_started(self, call: ToolCallRequest) -> None:
        ...

    def on_tool_call_finished(self, name: str, result: ToolResult) -> None:
        ...

    def on_status_changed(self, status: AgentStatus) -> None:
        ...

    def on_error(self, message: str) -> None:
        ...


class NullListener:
    """什么也不做的 listener，用于无界面场景。"""

    def on_user_message(self, text: str) -> None:
        pass

    def on_assistant_message(self, text: str) -> None:
        pass

    def on_tool_call_started(self, call: ToolCallRequest) -> None:
        pass

    def on_tool_call_finished(self, name: str, result: ToolResult) -> None:
        pass

    def on_status_changed(self, status: AgentStatus) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


class RecordingListener(NullListener):
    """按顺序记录所有回调，便于测试和调试。"""

    def __init__(self) -> None:
        self.events: List[Tuple[str, object]] = []

    def on_user_message(self, text: str) -> None:
        self.events.append(("user", text))

    def on_assistant_message(self, text: str) -> None:
        self.events.append(("assistant", text))

    def on_tool_call_started(self, call: ToolCallRequest) -> None:
        self.events.append(("tool_started", call))

    def on_tool_call_finished(self, name: str, result: ToolResult) -> None:
        self.events.append(("tool_finished", (name, result)))

    def on_status_changed(self, status: AgentStatus) -> None:
        self.events.append(("status", status))

    def on_error(self, message: str) -> None:
        self.events.append(("error", message))

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.events]

    def statuses(self) -> List[AgentStatus]:
        return [payload for kind, payload in self.events if kind == "status"]
