"""LLM Agent 顶层包。

该包提供一个对话式 Agent 前端的核心实现，
包括配置加载与持久化、领域模型、Provider 适配、工具注册与执行、
基于 LangGraph 的 Agent 循环以及命令行界面。
"""

from llm_agent.agents.agent_loop import AgentLoopController

__all__ = ["AgentLoopController"]
