"""google_search 工具。

配置了 google_api_key + search_engine_id 时调用 Google Custom Search JSON API；
否则返回固定的示例结果，保证离线环境下也有确定的行为。
"""

from typing import Any, Dict, List

import httpx

from llm_agent.config.settings import settings
from llm_agent.domain.exceptions import ExecutionFault
from llm_agent.domain.models import ToolResult
from llm_agent.infrastructure.logging.logger import logger
from llm_agent.tools.base import ToolExecutor
from llm_agent.tools.definitions import SearchArgs, ToolKind


STUB_RESULTS: List[Dict[str, str]] = [
    {
        "title": "AI Breakthrough in 2025",
        "snippet": "Recent developments in AI technology show significant progress in reasoning "
        "capabilities and multi-modal understanding...",
        "url": "https://example.com/ai-news-1",
    },
    {
        "title": "New AI Research Findings",
        "snippet": "Scientists have discovered new methods for improving AI performance and "
        "efficiency in language processing tasks...",
        "url": "https://example.com/ai-research",
    },
    {
        "title": "AI Industry Updates",
        "snippet": "The latest trends and developments in the AI industry for 2025 including new "
        "LLM architectures and applications...",
        "url": "https://example.com/ai-industry",
    },
]


class SearchExecutor(ToolExecutor):
    kind = ToolKind.GOOGLE_SEARCH

    def __init__(self, credentials=None, cfg=settings):
        super().__init__(credentials)
        self._settings = cfg

    @property
    def has_credentials(self) -> bool:
        return bool(self._credentials.get("google_api_key") and self._credentials.get("search_engine_id"))

    def execute(self, args: SearchArgs) -> ToolResult:
        if not self.has_credentials:
            results = [dict(item) for item in STUB_RESULTS[: args.num_results]]
            return ToolResult.ok(query=args.query, results=results, total_results=len(results))
        results, total = self._google(args)
        return ToolResult.ok(query=args.query, results=results, total_results=total)

    def _google(self, args: SearchArgs) -> tuple[List[Dict[str, str]], int]:
        params = {
            "key": self._credentials["google_api_key"],
            "cx": self._credentials["search_engine_id"],
            "q": args.query,
            "num": args.num_results,
        }
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.get(self._settings.google_search_url, params=params)
        except httpx.RequestError as e:
            raise ExecutionFault(code="NETWORK_ERROR", message=f"Search request failed: {e}")
        if resp.status_code in (401, 403):
            raise ExecutionFault(code="AUTH_ERROR", message="Google search rejected the API key", http_status=resp.status_code)
        if resp.status_code >= 400:
            raise ExecutionFault(code="API_ERROR", message=resp.text[:500], http_status=resp.status_code)
        try:
            data: Dict[str, Any] = resp.json()
        except ValueError as e:
            raise ExecutionFault(code="PARSE_ERROR", message=f"Invalid search response: {e}")

        results = [
            {
                "title": item.get("title") or "",
                "snippet": item.get("snippet") or "",
                "url": item.get("link") or "",
            }
            for item in (data.get("items") or [])[: args.num_results]
        ]
        total_raw = (data.get("searchInformation") or {}).get("totalResults")
        try:
            total = int(total_raw)
        except (TypeError, ValueError):
            total = len(results)
        logger.info("Google search finished", extra={"extra": {"query": args.query, "count": len(results)}})
        return results, total
