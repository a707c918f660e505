"""工具声明与参数模型。

这些定义既用于：
- 将可用工具列表暴露给 LLM（ToolSchema，按固定声明顺序）。
- 在执行前校验模型给出的参数（pydantic 参数模型）。

ToolKind 是封闭的工具种类枚举，注册表按它做穷尽检查。
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from llm_agent.domain.models import ToolSchema


class ToolKind(str, Enum):
    """工具种类；声明顺序即暴露给模型的顺序。"""

    GOOGLE_SEARCH = "google_search"
    AI_PIPE_REQUEST = "ai_pipe_request"
    EXECUTE_PYTHON = "execute_python"


# 旧前端里代码执行工具叫 execute_javascript，dispatch 时按别名解析
TOOL_ALIASES: Dict[str, ToolKind] = {
    "execute_javascript": ToolKind.EXECUTE_PYTHON,
}


def resolve_kind(name: str) -> Optional[ToolKind]:
    """把工具名（含别名）解析为 ToolKind，未知名称返回 None。"""

    try:
        return ToolKind(name)
    except ValueError:
        return TOOL_ALIASES.get(name)


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _ToolArgs(BaseModel):
    # 模型偶尔会多给字段，忽略即可
    model_config = ConfigDict(extra="ignore")


class SearchArgs(_ToolArgs):
    query: NonEmptyStr
    num_results: int = Field(default=5, ge=1, le=10)


class RequestArgs(_ToolArgs):
    endpoint: NonEmptyStr
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    data: Optional[Dict[str, Any]] = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("endpoint")
    @classmethod
    def _check_endpoint(cls, v: str) -> str:
        if v.startswith("/"):
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("endpoint must be an http(s) URL or a path starting with '/'")
        return v


class CodeArgs(_ToolArgs):
    code: NonEmptyStr


ARGS_MODELS = {
    ToolKind.GOOGLE_SEARCH: SearchArgs,
    ToolKind.AI_PIPE_REQUEST: RequestArgs,
    ToolKind.EXECUTE_PYTHON: CodeArgs,
}


TOOL_SCHEMAS: Dict[ToolKind, ToolSchema] = {
    ToolKind.GOOGLE_SEARCH: ToolSchema(
        name=ToolKind.GOOGLE_SEARCH.value,
        display_name="Google Search",
        description="Search the web using Google Custom Search API",
        parameters={
            "query": {
                "type": "string",
                "description": "The search query to execute",
            },
            "num_results": {
                "type": "integer",
                "description": "Number of results to return (1-10)",
                "minimum": 1,
                "maximum": 10,
                "default": 5,
            },
        },
        required=("query",),
    ),
    ToolKind.AI_PIPE_REQUEST: ToolSchema(
        name=ToolKind.AI_PIPE_REQUEST.value,
        display_name="AI Pipe Request",
        description="Make flexible API calls through AI Pipe proxy",
        parameters={
            "endpoint": {
                "type": "string",
                "description": "API endpoint to call (absolute URL or path on the AI Pipe proxy)",
            },
            "method": {
                "type": "string",
                "description": "HTTP method",
                "enum": ["GET", "POST", "PUT", "DELETE"],
                "default": "GET",
            },
            "data": {
                "type": "object",
                "description": "Request data/payload",
            },
        },
        required=("endpoint",),
    ),
    ToolKind.EXECUTE_PYTHON: ToolSchema(
        name=ToolKind.EXECUTE_PYTHON.value,
        display_name="Python Execution",
        description=(
            "Execute Python code in a sandboxed environment. Use print() for output; "
            "the value of the last expression is returned as the result. "
            "Imports are not available; math, json, statistics and datetime helpers are preloaded."
        ),
        parameters={
            "code": {
                "type": "string",
                "description": "Python code to execute",
            },
        },
        required=("code",),
    ),
}


def default_tool_schemas() -> List[ToolSchema]:
    """按声明顺序返回全部工具声明。"""

    return [TOOL_SCHEMAS[kind] for kind in ToolKind]
