"""工具执行器基类。

每个执行器提供两步能力：
- validate(arguments): 用 pydantic 参数模型校验模型给出的参数，失败抛 ValidationError。
- execute(args): 执行副作用，返回 ToolResult。

run() 把两步串起来，并保证任何错误都不会越过工具边界：
校验失败、执行错误都折叠为 success=False 的 ToolResult。
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Type

import pydantic

from llm_agent.domain.exceptions import BusinessError, ValidationError
from llm_agent.domain.models import ToolResult
from llm_agent.infrastructure.logging.logger import logger
from llm_agent.tools.definitions import ARGS_MODELS, ToolKind


def format_validation_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class ToolExecutor(ABC):
    kind: ToolKind

    def __init__(self, credentials: Optional[Mapping[str, str]] = None):
        self._credentials: Dict[str, str] = dict(credentials or {})

    @property
    def args_model(self) -> Type[pydantic.BaseModel]:
        return ARGS_MODELS[self.kind]

    def configure(self, credentials: Optional[Mapping[str, str]]) -> None:
        """更新凭据（配置界面保存后调用）。"""

        self._credentials = dict(credentials or {})

    def validate(self, arguments: Mapping[str, Any]) -> pydantic.BaseModel:
        if not isinstance(arguments, Mapping):
            raise ValidationError(code="VALIDATION_ERROR", message="arguments must be an object")
        try:
            return self.args_model.model_validate(dict(arguments))
        except pydantic.ValidationError as exc:
            raise ValidationError(
                code="VALIDATION_ERROR",
                message=f"Invalid arguments for {self.kind.value}: {format_validation_error(exc)}",
            ) from exc

    @abstractmethod
    def execute(self, args: Any) -> ToolResult:
        ...

    def run(self, arguments: Mapping[str, Any]) -> ToolResult:
        try:
            args = self.validate(arguments)
        except ValidationError as exc:
            logger.info(
                "Tool arguments rejected",
                extra={"extra": {"tool_name": self.kind.value, "error": exc.message}},
            )
            return ToolResult.failure(exc.message, error_code=exc.code)
        try:
            return self.execute(args)
        except BusinessError as exc:
            return ToolResult.failure(exc.message, error_code=exc.code)
        except Exception as exc:  # noqa: BLE001 - 工具错误不能越过工具边界
            logger.exception("Unhandled error in tool", extra={"extra": {"tool_name": self.kind.value}})
            return ToolResult.failure(f"{type(exc).__name__}: {exc}")
