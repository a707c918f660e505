"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
便于在循环控制器或 CLI 层做统一捕获与用户提示。

分两类：
- 工具层（ValidationError / ExecutionFault 及其子类）：只影响单次工具调用，
  会被折叠成失败的 ToolResult，循环继续。
- 推理层（InferenceFailure 及其子类）：本轮循环致命，进入 Error 状态。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "UNKNOWN_TOOL"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 tool_name、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ValidationError(BusinessError):
    """工具参数或配置校验失败。"""


class ExecutionFault(BusinessError):
    """工具运行期错误。"""


class UnknownTool(ExecutionFault):
    """模型请求了注册表中不存在的工具。"""

    def __init__(self, name: str):
        super().__init__(code="UNKNOWN_TOOL", message=f"Unknown tool: {name}", tool_name=name)


class ToolDisabled(ExecutionFault):
    """模型请求了配置中已禁用的工具。"""

    def __init__(self, name: str):
        super().__init__(code="TOOL_DISABLED", message=f"Tool is disabled: {name}", tool_name=name)


class InferenceFailure(BusinessError):
    """推理层错误的基类：网络、鉴权、解析失败等。"""


class NetworkError(InferenceFailure):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(InferenceFailure):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(InferenceFailure):
    """Provider 限流错误。"""


class MissingCredentials(InferenceFailure):
    """Provider 未配置 API key 等必需凭据。"""


class EmptyResponse(InferenceFailure):
    """Model Client 既没有返回文本也没有返回工具调用。"""

    def __init__(self, message: str = "Model returned neither text nor tool calls"):
        super().__init__(code="EMPTY_RESPONSE", message=message)


class LoopLimitExceeded(InferenceFailure):
    """Thinking ⇄ ExecutingTools 循环超过配置的最大轮数。"""

    def __init__(self, max_cycles: int):
        super().__init__(
            code="LOOP_LIMIT",
            message=f"Stopped after {max_cycles} cycles without a final answer",
            max_cycles=max_cycles,
        )
