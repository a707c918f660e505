import pytest

from llm_agent.domain.exceptions import UnknownTool
from llm_agent.domain.models import ToolConfig, ToolResult, ToolSetting
from llm_agent.tools.base import ToolExecutor
from llm_agent.tools.definitions import ToolKind
from llm_agent.tools.registry import ToolRegistry, default_registry


class EchoExecutor(ToolExecutor):
    def __init__(self, kind):
        super().__init__()
        self.kind = kind
        self.seen = []

    def validate(self, arguments):
        return dict(arguments)

    def execute(self, args):
        self.seen.append(args)
        return ToolResult.ok(kind=self.kind.value, args=args)


def _registry():
    return ToolRegistry({kind: EchoExecutor(kind) for kind in ToolKind})


def test_available_tools_follow_declaration_order():
    cfg = ToolConfig(
        tools={
            "execute_python": ToolSetting(enabled=True),
            "google_search": ToolSetting(enabled=True),
            "ai_pipe_request": ToolSetting(enabled=False),
        }
    )
    reg = _registry()
    names = [t.name for t in reg.available_tools(cfg)]
    assert names == ["google_search", "execute_python"]
    # 幂等
    assert [t.name for t in reg.available_tools(cfg)] == names


def test_available_tools_empty_when_all_disabled():
    assert _registry().available_tools(ToolConfig()) == []


def test_dispatch_unknown_tool_raises():
    with pytest.raises(UnknownTool) as exc:
        _registry().dispatch("delete_everything", {})
    assert exc.value.code == "UNKNOWN_TOOL"


def test_dispatch_ignores_enabled_flag_and_resolves_alias():
    reg = _registry()
    res = reg.dispatch("execute_javascript", {"code": "1"})
    assert res.success
    assert res.payload["kind"] == "execute_python"
    assert reg.is_enabled("execute_javascript", ToolConfig()) is False


def test_registry_requires_every_kind():
    with pytest.raises(ValueError):
        ToolRegistry({ToolKind.GOOGLE_SEARCH: EchoExecutor(ToolKind.GOOGLE_SEARCH)})


def test_configure_pushes_credentials():
    cfg = ToolConfig(tools={"google_search": ToolSetting(credentials={"google_api_key": "k", "search_engine_id": "cx"})})
    reg = default_registry(cfg)
    assert reg.executor(ToolKind.GOOGLE_SEARCH).has_credentials


def test_validation_error_becomes_failed_result():
    reg = default_registry()
    res = reg.dispatch("google_search", {"num_results": 3})
    assert not res.success
    assert res.error_code == "VALIDATION_ERROR"
    assert "query" in res.error
