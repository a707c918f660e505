from typing import Any, Dict, List, Mapping, Optional

from llm_agent.config.settings import settings
from llm_agent.domain.exceptions import UnknownTool
from llm_agent.domain.models import ToolConfig, ToolResult, ToolSchema
from llm_agent.infrastructure.logging.logger import logger
from llm_agent.tools.base import ToolExecutor
from llm_agent.tools.code_execution import CodeExecutor
from llm_agent.tools.definitions import TOOL_SCHEMAS, ToolKind, resolve_kind
from llm_agent.tools.http_request import HttpRequestExecutor
from llm_agent.tools.search import SearchExecutor


class ToolRegistry:
    """ToolKind → 执行器的封闭注册表。

    - available_tools(config): 只返回启用的工具声明，顺序固定为 ToolKind 的声明顺序。
    - dispatch(name, arguments): 与启用状态无关；未知名称抛 UnknownTool，
      其余错误都折叠在返回的 ToolResult 里。
    """

    def __init__(self, executors: Mapping[ToolKind, ToolExecutor]):
        missing = [kind.value for kind in ToolKind if kind not in executors]
        if missing:
            raise ValueError(f"No executor registered for: {', '.join(missing)}")
        self._executors: Dict[ToolKind, ToolExecutor] = dict(executors)

    def available_tools(self, config: ToolConfig) -> List[ToolSchema]:
        return [TOOL_SCHEMAS[kind] for kind in ToolKind if config.is_enabled(kind.value)]

    def is_enabled(self, name: str, config: ToolConfig) -> bool:
        kind = resolve_kind(name)
        return kind is not None and config.is_enabled(kind.value)

    def knows(self, name: str) -> bool:
        return resolve_kind(name) is not None

    def configure(self, config: ToolConfig) -> None:
        """把 ToolConfig 中的凭据同步到各执行器。"""

        for kind, executor in self._executors.items():
            executor.configure(config.credentials_for(kind.value))

    def executor(self, kind: ToolKind) -> ToolExecutor:
        return self._executors[kind]

    def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolResult:
        kind = resolve_kind(name)
        if kind is None:
            raise UnknownTool(name)
        logger.debug("Dispatching tool", extra={"extra": {"tool_name": name, "tool_args": arguments}})
        return self._executors[kind].run(arguments if arguments is not None else {})


def default_registry(config: Optional[ToolConfig] = None, cfg=settings) -> ToolRegistry:
    registry = ToolRegistry(
        {
            ToolKind.GOOGLE_SEARCH: SearchExecutor(cfg=cfg),
            ToolKind.AI_PIPE_REQUEST: HttpRequestExecutor(cfg=cfg),
            ToolKind.EXECUTE_PYTHON: CodeExecutor(cfg=cfg),
        }
    )
    if config is not None:
        registry.configure(config)
    return registry
