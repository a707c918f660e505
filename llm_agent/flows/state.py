"""State definition for the agent loop graph."""

from __future__ import annotations

from typing import List, TypedDict

from llm_agent.domain.models import ToolCallRequest


class LoopState(TypedDict, total=False):
    """State shared across LangGraph nodes.

    会话本身保存在 AgentLoopController 的 AgentSessionState 中，
    这里只放单次运行的控制信息。
    """

    trace_id: str
    cycles: int
    pending_calls: List[ToolCallRequest]
