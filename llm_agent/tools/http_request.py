"""ai_pipe_request 工具：通用 HTTP 调用。

绝对 URL 直接请求；以 "/" 开头的路径拼到 AI Pipe 代理地址上。
配置了 ai_pipe_token 凭据时以 Bearer token 方式携带。
"""

from typing import Any, Dict

import httpx

from llm_agent.config.settings import settings
from llm_agent.domain.exceptions import ExecutionFault
from llm_agent.domain.models import ToolResult
from llm_agent.infrastructure.logging.logger import logger
from llm_agent.tools.base import ToolExecutor
from llm_agent.tools.definitions import RequestArgs, ToolKind


MAX_BODY_CHARS = 20000


class HttpRequestExecutor(ToolExecutor):
    kind = ToolKind.AI_PIPE_REQUEST

    def __init__(self, credentials=None, cfg=settings):
        super().__init__(credentials)
        self._settings = cfg

    def resolve_url(self, endpoint: str) -> str:
        if endpoint.startswith("/"):
            return self._settings.ai_pipe_base_url.rstrip("/") + endpoint
        return endpoint

    def execute(self, args: RequestArgs) -> ToolResult:
        url = self.resolve_url(args.endpoint)
        headers: Dict[str, str] = {"Accept": "application/json"}
        token = self._credentials.get("ai_pipe_token")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        kwargs: Dict[str, Any] = {"headers": headers}
        if args.data is not None:
            if args.method == "GET":
                kwargs["params"] = args.data
            else:
                kwargs["json"] = args.data
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.request(args.method, url, **kwargs)
        except httpx.RequestError as e:
            raise ExecutionFault(code="NETWORK_ERROR", message=f"{args.method} {url} failed: {e}")

        logger.info(
            "HTTP tool request finished",
            extra={"extra": {"method": args.method, "url": url, "status": resp.status_code}},
        )
        # 只有传输层错误算失败；4xx/5xx 照常带状态码返回给模型
        return ToolResult.ok(
            endpoint=args.endpoint,
            method=args.method,
            status=resp.status_code,
            data=self._decode_body(resp),
        )

    @staticmethod
    def _decode_body(resp) -> Any:
        try:
            return resp.json()
        except ValueError:
            text = resp.text or ""
            if len(text) > MAX_BODY_CHARS:
                return text[:MAX_BODY_CHARS] + "... truncated ..."
            return text
