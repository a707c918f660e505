"""Agent 循环控制器。

状态机：Idle → Thinking → (ExecutingTools → Thinking)* → Idle，任意阶段可进入 Error。

- Thinking：每个周期重新读取工具配置，得到可用工具列表后调用 Model Client，
  追加一条 assistant 记录（文本和/或工具调用），文本立即通知 listener。
- ExecutingTools：按请求顺序逐个执行工具调用，每个调用恰好追加一条 tool 记录；
  单个工具失败只会变成失败的 ToolResult，不会中断整批。
- Error：推理失败、空响应或超过最大周期数时，追加一条描述错误的 assistant 记录，
  通知 listener 后回到 Ready。已产生的历史不会回滚。

图结构在 llm_agent.flows.graph 中定义，本模块负责节点的具体逻辑。
"""

import logging
import threading
import time
from typing import Any, Dict, Optional
from uuid import uuid4

from llm_agent.config.settings import settings
from llm_agent.config.store import ConfigStore
from llm_agent.domain.exceptions import (
    BusinessError,
    EmptyResponse,
    InferenceFailure,
    LoopLimitExceeded,
    ToolDisabled,
)
from llm_agent.domain.listener import AgentListener, NullListener
from llm_agent.domain.models import (
    AgentSessionState,
    AgentStatus,
    ConversationEntry,
    ToolCallRequest,
    ToolConfig,
    ToolResult,
)
from llm_agent.flows.graph import build_loop_graph, recursion_limit_for
from llm_agent.flows.state import LoopState
from llm_agent.infrastructure.logging.logger import logger
from llm_agent.providers.base import ModelClient
from llm_agent.tools.registry import ToolRegistry


ERROR_PREFIX = "❌ Sorry, I encountered an error: "


class AgentLoopController:
    def __init__(
        self,
        model_client: ModelClient,
        registry: ToolRegistry,
        config_store: ConfigStore,
        listener: Optional[AgentListener] = None,
        cfg=settings,
    ):
        self._model = model_client
        self._registry = registry
        self._store = config_store
        self._listener: AgentListener = listener or NullListener()
        self._settings = cfg
        self._abort = threading.Event()
        self._graph = build_loop_graph(self)
        self.state = AgentSessionState()

    @property
    def is_busy(self) -> bool:
        return self.state.loop_active

    @property
    def conversation(self):
        return self.state.conversation

    def set_model_client(self, model_client: ModelClient) -> bool:
        """替换 Model Client（例如重新配置 Provider 后），运行中拒绝替换。"""

        if self.state.loop_active:
            return False
        self._model = model_client
        return True

    def submit(self, text: str) -> bool:
        """提交一条用户消息并同步运行循环直到回到 Idle。

        循环运行中或文本为空时拒绝，返回 False 且不改变任何状态。
        """

        if self.state.loop_active or not text or not text.strip():
            return False

        start_time = time.time()
        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}", "provider": getattr(self._model, "name", "?")}
        self.state.loop_active = True
        self._abort.clear()
        try:
            self.state.conversation.append(ConversationEntry(role="user", content=text))
            self._listener.on_user_message(text)
            self._log(logging.INFO, "Loop started", log_ctx, user_chars=len(text))
            max_cycles = int(self._settings.max_loop_cycles)
            initial: LoopState = {"trace_id": log_ctx["trace_id"], "cycles": 0, "pending_calls": []}
            try:
                final = self._graph.invoke(initial, config={"recursion_limit": recursion_limit_for(max_cycles)})
            except BusinessError as e:
                self._log(logging.WARNING, "Loop failed", log_ctx, code=e.code, error=e.message)
                self._fail(e.message)
            except Exception as e:  # noqa: BLE001 - 任何未预期错误都走 Error 状态
                logger.exception("Unexpected loop error", extra={"extra": dict(log_ctx)})
                self._fail(f"{type(e).__name__}: {e}")
            else:
                self._log(
                    logging.INFO,
                    "Loop finished",
                    log_ctx,
                    cycles=final.get("cycles", 0),
                    aborted=self._abort.is_set(),
                    elapsed_seconds=round(time.time() - start_time, 2),
                )
        finally:
            self.state.loop_active = False
            self._abort.clear()
            self._set_status(AgentStatus.READY)
        return True

    def abort(self) -> None:
        """请求在当前工具批次结束后停止循环（不会打断批次本身）。"""

        if self.state.loop_active:
            self._abort.set()

    def clear(self) -> bool:
        if self.state.loop_active:
            return False
        self.state.conversation.clear()
        return True

    # LoopDriver

    def abort_requested(self) -> bool:
        return self._abort.is_set()

    def think(self, state: LoopState) -> LoopState:
        cycles = state.get("cycles", 0)
        max_cycles = int(self._settings.max_loop_cycles)
        if cycles >= max_cycles:
            raise LoopLimitExceeded(max_cycles)

        tool_config = self._store.reload_tool_config()
        self._registry.configure(tool_config)
        tools = self._registry.available_tools(tool_config)
        self._set_status(AgentStatus.THINKING)

        try:
            result = self._model.infer(list(self.state.conversation), tools)
        except InferenceFailure:
            raise
        except Exception as e:  # noqa: BLE001 - 非协议内的模型错误统一包装
            raise InferenceFailure(code="MODEL_ERROR", message=f"{type(e).__name__}: {e}")
        if result is None or result.is_empty:
            raise EmptyResponse()

        calls = list(result.tool_calls)
        self.state.conversation.append(
            ConversationEntry(role="assistant", content=result.text or "", tool_calls=calls or None)
        )
        self._log(
            logging.INFO,
            "Inference completed",
            {"trace_id": state.get("trace_id")},
            cycle=cycles + 1,
            offered_tools=[t.name for t in tools],
            tool_calls=[c.name for c in calls],
            usage=result.usage,
        )
        if result.has_text:
            self._listener.on_assistant_message(result.text)

        state["cycles"] = cycles + 1
        state["pending_calls"] = calls
        return state

    def execute_tools(self, state: LoopState) -> LoopState:
        self._set_status(AgentStatus.EXECUTING)
        tool_config = self._store.tool_config
        for call in state.get("pending_calls") or []:
            self._listener.on_tool_call_started(call)
            result = self._run_call(call, tool_config)
            self.state.conversation.append(
                ConversationEntry(
                    role="tool",
                    content=result.to_content(),
                    tool_call_id=call.id,
                    name=call.name,
                )
            )
            self._log(
                logging.INFO,
                "Tool call finished",
                {"trace_id": state.get("trace_id")},
                tool_name=call.name,
                tool_call_id=call.id,
                success=result.success,
                error_code=result.error_code,
            )
            self._listener.on_tool_call_finished(call.name, result)
        state["pending_calls"] = []
        return state

    def _run_call(self, call: ToolCallRequest, tool_config: ToolConfig) -> ToolResult:
        registry = self._registry
        if (
            registry.knows(call.name)
            and not registry.is_enabled(call.name, tool_config)
            and not self._settings.allow_disabled_tools
        ):
            err = ToolDisabled(call.name)
            return ToolResult.failure(err.message, error_code=err.code)
        try:
            return registry.dispatch(call.name, call.arguments)
        except BusinessError as e:
            return ToolResult.failure(e.message, error_code=e.code)
        except Exception as e:  # noqa: BLE001 - 工具错误不能中断整批
            logger.exception("Tool dispatch crashed", extra={"extra": {"tool_name": call.name}})
            return ToolResult.failure(f"{type(e).__name__}: {e}", error_code="EXECUTION_FAULT")

    def _fail(self, message: str) -> None:
        text = f"{ERROR_PREFIX}{message}"
        self.state.conversation.append(ConversationEntry(role="assistant", content=text))
        self._listener.on_assistant_message(text)
        self._listener.on_error(message)
        self._set_status(AgentStatus.ERROR)

    def _set_status(self, status: AgentStatus) -> None:
        if self.state.status == status:
            return
        self.state.status = status
        self._listener.on_status_changed(status)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
