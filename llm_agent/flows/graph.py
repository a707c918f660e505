"""LangGraph construction for the agent loop: thinking ⇄ tools → END."""

from __future__ import annotations

from typing import Protocol

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from llm_agent.flows.state import LoopState
from llm_agent.infrastructure.logging.logger import logger


class LoopDriver(Protocol):
    """图节点委托的执行者（由 AgentLoopController 实现）。"""

    def think(self, state: LoopState) -> LoopState:
        ...

    def execute_tools(self, state: LoopState) -> LoopState:
        ...

    def abort_requested(self) -> bool:
        ...


def thinking_router(state: LoopState) -> str:
    if state.get("pending_calls"):
        return "tools"
    return "end"


def tools_router(state: LoopState, driver: LoopDriver) -> str:
    if driver.abort_requested():
        logger.info("tools_router.aborted", extra={"extra": {"trace_id": state.get("trace_id")}})
        return "end"
    return "thinking"


def build_loop_graph(driver: LoopDriver) -> CompiledStateGraph:
    graph = StateGraph(LoopState)
    graph.add_node("thinking", lambda s: driver.think(s))
    graph.add_node("tools", lambda s: driver.execute_tools(s))
    graph.set_entry_point("thinking")
    graph.add_conditional_edges("thinking", thinking_router, {"tools": "tools", "end": END})
    graph.add_conditional_edges("tools", lambda s: tools_router(s, driver), {"thinking": "thinking", "end": END})
    return graph.compile()


def recursion_limit_for(max_cycles: int) -> int:
    """每个周期占用 thinking + tools 两步，再留出收尾余量。"""

    return 2 * max_cycles + 5
