import pytest

from llm_agent.domain.exceptions import ValidationError
from llm_agent.tools.code_execution import CodeExecutor, capture_print, run_restricted, screen_code


class SettingsStub:
    code_timeout = 10.0
    code_max_output_lines = 5


def test_run_restricted_returns_last_expression_and_output():
    out = []
    result = run_restricted("x = [i * i for i in range(4)]\nprint('sum', sum(x))\nmax(x)", out, 10)
    assert result == 9
    assert out == ["sum 14"]


def test_run_restricted_helpers_and_functions():
    out = []
    code = (
        "def fact(n):\n"
        "    return 1 if n <= 1 else n * fact(n - 1)\n"
        "round(math.sqrt(16) + statistics.mean([1, 2, 3]), 1), fact(5)\n"
    )
    assert run_restricted(code, out, 10) == (6.0, 120)


def test_output_is_truncated():
    out = []
    run_restricted("for i in range(20):\n    print(i)", out, 3)
    assert out == ["0", "1", "2", "... output truncated ..."]


@pytest.mark.parametrize(
    "code",
    [
        "import os",
        "from os import path",
        "open('/etc/passwd')",
        "__import__('os')",
        "().__class__.__bases__",
        "eval('1+1')",
        "getattr(1, 'real')",
        "x = '__class__'",
        "async def f():\n    pass",
        "class O:\n    pass\nmatch print:\n    case O(__globals__=g):\n        pass",
        "m = math\nm.eval('1')",
        "def __init__(self):\n    pass",
        "class __C:\n    pass",
        "'{0.real}'.format(1)",
        "def f():\n    global g",
    ],
)
def test_screen_code_rejects_escapes(code):
    with pytest.raises(ValidationError) as exc:
        screen_code(code)
    assert exc.value.code == "SANDBOX_VIOLATION"


def test_screen_code_syntax_error():
    with pytest.raises(ValidationError) as exc:
        screen_code("def (:")
    assert exc.value.code == "SYNTAX_ERROR"


def test_executor_success():
    res = CodeExecutor(cfg=SettingsStub()).run({"code": "print('hi')\n6 * 7"})
    assert res.success
    assert res.payload == {"code": "print('hi')\n6 * 7", "output": ["hi"], "result": 42}


def test_executor_runtime_error_is_failed_result():
    res = CodeExecutor(cfg=SettingsStub()).run({"code": "print('before')\n1/0"})
    assert not res.success
    assert "ZeroDivisionError" in res.error
    assert res.payload["output"] == ["before"]


def test_executor_unavailable_capabilities():
    ex = CodeExecutor(cfg=SettingsStub())
    res = ex.run({"code": "open('x.txt', 'w')"})
    assert not res.success
    assert res.error_code == "SANDBOX_VIOLATION"

    res = ex.run({"code": "os.listdir('.')"})
    assert not res.success
    assert "NameError" in res.error


def test_executor_timeout():
    class FastTimeout(SettingsStub):
        code_timeout = 1.0

    res = CodeExecutor(cfg=FastTimeout()).run({"code": "while True:\n    pass"})
    assert not res.success
    assert res.error_code == "TIMEOUT"


def test_print_replacement_does_not_expose_host_globals():
    out = []
    fn = capture_print(out, 2)
    assert "builtins" not in fn.__globals__
    assert "multiprocessing" not in fn.__globals__
    assert set(fn.__globals__["__builtins__"]) == {"len", "str"}
    fn("a", 1, sep="-")
    fn("b")
    fn("c")
    assert out == ["a-1", "b", "... output truncated ..."]


def test_executor_rejects_match_class_pattern():
    code = (
        "class O:\n"
        "    pass\n"
        "match print:\n"
        "    case O(__globals__=g):\n"
        "        g\n"
    )
    res = CodeExecutor(cfg=SettingsStub()).run({"code": code})
    assert not res.success
    assert res.error_code == "SANDBOX_VIOLATION"
