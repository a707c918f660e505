"""离线 Model Client。

- MockModelClient: 未配置 Provider 时的默认客户端，按关键词决定是否发起工具调用，
  工具结果返回后给出总结文本，不访问网络。
- ScriptedModelClient: 按顺序回放预设的 InferenceResult（或异常），用于测试循环控制器。
"""

import itertools
import json
import re
from typing import List, Optional, Sequence, Union

from llm_agent.domain.exceptions import EmptyResponse
from llm_agent.domain.models import ConversationEntry, InferenceResult, ToolCallRequest, ToolSchema
from llm_agent.tools.definitions import ToolKind


CANNED_RESPONSES = (
    "I understand you're asking about this topic. Let me help you with that.",
    "That's an interesting question. Here's what I can tell you...",
    "I'd be happy to help you with that. Based on your question...",
    "Let me provide you with some information about this.",
)

DEFAULT_QUERY = "AI developments 2025"

FACTORIAL_CODE = (
    "def factorial(n):\n"
    "    return 1 if n <= 1 else n * factorial(n - 1)\n"
    "\n"
    "result = factorial(10)\n"
    "print(f'Factorial of 10: {result}')\n"
    "result\n"
)

HELLO_CODE = (
    "result = random.random()\n"
    "print('Hello from Python execution!')\n"
    "print(f'Random number: {result}')\n"
    "result\n"
)

_QUERY_NOISE = re.compile(r"\b(search|find|look up|for)\b", re.IGNORECASE)


def extract_search_query(message: str) -> str:
    """去掉 search/find/look up/for 等指令词，剩余部分作为搜索词。"""

    query = " ".join(_QUERY_NOISE.sub(" ", message).split())
    return query or DEFAULT_QUERY


def _contains(text: str, *words: str) -> bool:
    return any(w in text for w in words)


class MockModelClient:
    name = "mock"

    def __init__(self):
        self._ids = itertools.count(1)

    def infer(self, conversation: Sequence[ConversationEntry], tools: Sequence[ToolSchema]) -> InferenceResult:
        if conversation and conversation[-1].role == "tool":
            return InferenceResult(text=self._summarize(conversation))

        last_user = next((e.content for e in reversed(conversation) if e.role == "user"), "")
        lower = last_user.lower()
        offered = {t.name for t in tools}

        if ToolKind.GOOGLE_SEARCH.value in offered and _contains(lower, "search", "find", "look up", "news"):
            return self._call(
                "I'll search for that information for you.",
                ToolKind.GOOGLE_SEARCH.value,
                {"query": extract_search_query(last_user), "num_results": 5},
            )
        if ToolKind.EXECUTE_PYTHON.value in offered and _contains(lower, "calculate", "code", "python", "factorial"):
            code = FACTORIAL_CODE if "factorial" in lower else HELLO_CODE
            return self._call("I'll execute some Python code for you.", ToolKind.EXECUTE_PYTHON.value, {"code": code})
        if ToolKind.AI_PIPE_REQUEST.value in offered and _contains(lower, "api", "request", "fetch"):
            return self._call(
                "I'll make an API request for you.",
                ToolKind.AI_PIPE_REQUEST.value,
                {"endpoint": "https://api.example.com/data", "method": "GET"},
            )
        return InferenceResult(text=CANNED_RESPONSES[len(last_user) % len(CANNED_RESPONSES)])

    def _call(self, text: str, name: str, arguments: dict) -> InferenceResult:
        call = ToolCallRequest(id=f"call_{next(self._ids)}", name=name, arguments=arguments)
        return InferenceResult(text=text, tool_calls=[call])

    @staticmethod
    def _summarize(conversation: Sequence[ConversationEntry]) -> str:
        trailing: List[ConversationEntry] = []
        for entry in reversed(conversation):
            if entry.role != "tool":
                break
            trailing.append(entry)
        trailing.reverse()

        lines = []
        for entry in trailing:
            try:
                data = json.loads(entry.content)
            except ValueError:
                data = {}
            if isinstance(data, dict) and data.get("success"):
                lines.append(f"- {entry.name}: completed successfully.")
            else:
                error = data.get("error") if isinstance(data, dict) else None
                lines.append(f"- {entry.name}: failed ({error or 'unknown error'}).")
        return "Here is what the tools returned:\n" + "\n".join(lines)


Scripted = Union[InferenceResult, BaseException]


class ScriptedModelClient:
    """按顺序回放预设响应；列表中的异常会被直接抛出。

    calls 记录每次调用时看到的会话快照与工具名，便于断言。
    """

    name = "scripted"

    def __init__(self, responses: Sequence[Scripted], on_infer=None):
        self._responses = list(responses)
        self._on_infer = on_infer
        self.calls: List[dict] = []

    def infer(self, conversation: Sequence[ConversationEntry], tools: Sequence[ToolSchema]) -> InferenceResult:
        self.calls.append({"conversation": list(conversation), "tools": [t.name for t in tools]})
        if self._on_infer is not None:
            self._on_infer(len(self.calls))
        if not self._responses:
            raise EmptyResponse("Scripted client has no responses left")
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def remaining(self) -> int:
        return len(self._responses)

    def push(self, response: Scripted, index: Optional[int] = None) -> None:
        if index is None:
            self._responses.append(response)
        else:
            self._responses.insert(index, response)
