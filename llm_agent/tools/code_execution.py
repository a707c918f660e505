"""execute_python 工具：受限 Python 代码执行。

安全边界分两层：

1. 静态筛查（validate 阶段，父进程内）：禁止 import、禁止访问以下划线开头
   的属性和双下划线名称、禁止帧/代码对象相关属性、禁止 exec/eval/open 等名称、
   禁止 async 语法、match/global/nonlocal 语句，以及包含 "__" 的字符串常量。
2. 进程隔离（execute 阶段）：在 spawn 出来的子进程中执行，只注入白名单内建
   函数和只读辅助命名空间（math/json/statistics/datetime/random），print
   输出被捕获（print 替身只带最小全局命名空间）；超时后直接 kill 子进程。

因此片段无法触达文件系统、网络、计时器或宿主进程状态。
"""

import ast
import builtins
import json
import math
import multiprocessing
import random
import statistics
import datetime as _dt
import types
from types import SimpleNamespace
from typing import Any, Dict, List

from llm_agent.config.settings import settings
from llm_agent.domain.exceptions import ValidationError
from llm_agent.domain.models import ToolResult
from llm_agent.infrastructure.logging.logger import logger
from llm_agent.tools.base import ToolExecutor
from llm_agent.tools.definitions import CodeArgs, ToolKind


ALLOWED_BUILTINS = {
    "abs", "all", "any", "ascii", "bin", "bool", "bytes", "callable", "chr",
    "complex", "dict", "divmod", "enumerate", "filter", "float", "format",
    "frozenset", "hash", "hex", "int", "isinstance", "issubclass", "iter",
    "len", "list", "map", "max", "min", "next", "oct", "ord", "pow", "range",
    "repr", "reversed", "round", "set", "slice", "sorted", "str", "sum",
    "tuple", "zip",
    "ArithmeticError", "AssertionError", "AttributeError", "Exception",
    "IndexError", "KeyError", "LookupError", "NameError", "OverflowError",
    "RecursionError", "RuntimeError", "StopIteration", "TypeError",
    "ValueError", "ZeroDivisionError",
}

FORBIDDEN_NAMES = {
    "exec", "eval", "compile", "open", "input", "breakpoint", "help",
    "globals", "locals", "vars", "dir", "getattr", "setattr", "delattr",
    "memoryview", "type", "object", "super", "exit", "quit",
}

# 帧、代码对象、生成器/协程内部状态，都能绕回宿主全局变量
FORBIDDEN_ATTRIBUTES = {
    "gi_frame", "gi_code", "gi_yieldfrom", "cr_frame", "cr_code", "cr_await",
    "ag_frame", "ag_code", "ag_await", "f_globals", "f_locals", "f_builtins",
    "f_back", "f_code", "tb_frame", "tb_next", "co_code", "mro",
    # 格式化字符串可以按属性路径读取对象
    "format", "format_map",
}

# match 的类模式 (case C(attr=x)) 会按名字读取属性，绕过 Attribute 检查
FORBIDDEN_NODES = (
    ast.Import,
    ast.ImportFrom,
    ast.AsyncFunctionDef,
    ast.AsyncFor,
    ast.AsyncWith,
    ast.Await,
    ast.Match,
    ast.Global,
    ast.Nonlocal,
)

_NODE_LABELS = {
    ast.Import: "Imports",
    ast.ImportFrom: "Imports",
    ast.Match: "match statements",
    ast.Global: "global statements",
    ast.Nonlocal: "nonlocal statements",
}

OUTPUT_TRUNCATED = "... output truncated ..."


def screen_code(code: str) -> ast.Module:
    """静态筛查代码，违规时抛 ValidationError，通过时返回 AST。"""

    try:
        tree = ast.parse(code, filename="<sandbox>", mode="exec")
    except SyntaxError as e:
        raise ValidationError(code="SYNTAX_ERROR", message=f"SyntaxError: {e.msg} (line {e.lineno})")

    for node in ast.walk(tree):
        if isinstance(node, FORBIDDEN_NODES):
            kind = _NODE_LABELS.get(type(node), "Async code")
            raise ValidationError(code="SANDBOX_VIOLATION", message=f"{kind} are not allowed in the sandbox")
        if isinstance(node, ast.Name):
            if node.id.startswith("__") or node.id in FORBIDDEN_NAMES:
                raise ValidationError(code="SANDBOX_VIOLATION", message=f"Use of '{node.id}' is not allowed")
        elif isinstance(node, ast.Attribute):
            attr = node.attr
            if attr.startswith("_") or attr in FORBIDDEN_ATTRIBUTES or attr in FORBIDDEN_NAMES:
                raise ValidationError(
                    code="SANDBOX_VIOLATION",
                    message=f"Access to attribute '{attr}' is not allowed",
                )
        elif isinstance(node, (ast.FunctionDef, ast.ClassDef)):
            if node.name.startswith("__") or node.name in FORBIDDEN_NAMES:
                raise ValidationError(code="SANDBOX_VIOLATION", message=f"Defining '{node.name}' is not allowed")
        elif isinstance(node, ast.arg):
            if node.arg.startswith("__"):
                raise ValidationError(code="SANDBOX_VIOLATION", message=f"Parameter '{node.arg}' is not allowed")
        elif isinstance(node, ast.Constant) and isinstance(node.value, str) and "__" in node.value:
            raise ValidationError(code="SANDBOX_VIOLATION", message="Strings containing '__' are not allowed")
    return tree


def to_jsonable(value: Any, depth: int = 0) -> Any:
    """把执行结果转换为可 JSON 序列化、可跨进程传递的值。"""

    if depth > 20:
        return "..."
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        try:
            str(value)
        except ValueError:
            return "<int too large to display>"
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v, depth + 1) for v in list(value)[:1000]]
    if isinstance(value, dict):
        return {str(k): to_jsonable(v, depth + 1) for k, v in list(value.items())[:1000]}
    try:
        return repr(value)
    except Exception as exc:  # noqa: BLE001 - 用户自定义 __repr__ 可能抛任何异常
        return f"<unrepresentable: {type(exc).__name__}>"


def capture_print(output: List[str], max_lines: int):
    """构造写入 output 的 print 替身。

    返回的函数以一个最小的全局命名空间重建，
    其 __globals__ 不包含本模块（以及 builtins、multiprocessing 等）。
    """

    def _print(*args, sep=" ", end="\n", **_):
        if len(output) > max_lines:
            return
        if len(output) == max_lines:
            output.append(truncated)
            return
        output.append(str(sep).join(str(a) for a in args))

    truncated = OUTPUT_TRUNCATED
    minimal_globals = {"__builtins__": {"len": len, "str": str}}
    fn = types.FunctionType(_print.__code__, minimal_globals, "print", None, _print.__closure__)
    fn.__kwdefaults__ = dict(_print.__kwdefaults__)
    return fn


def _safe_namespace(max_lines: int, output: List[str]) -> Dict[str, Any]:
    safe_builtins = {name: getattr(builtins, name) for name in ALLOWED_BUILTINS}
    safe_builtins["print"] = capture_print(output, max_lines)
    # class 语句需要 __build_class__
    safe_builtins["__build_class__"] = builtins.__build_class__
    rng = random.Random()
    return {
        "__builtins__": safe_builtins,
        "__name__": "__sandbox__",
        "math": math,
        "json": SimpleNamespace(dumps=json.dumps, loads=json.loads),
        "statistics": SimpleNamespace(
            mean=statistics.mean,
            median=statistics.median,
            mode=statistics.mode,
            stdev=statistics.stdev,
            pstdev=statistics.pstdev,
            variance=statistics.variance,
            pvariance=statistics.pvariance,
        ),
        "datetime": SimpleNamespace(
            date=_dt.date,
            datetime=_dt.datetime,
            timedelta=_dt.timedelta,
            timezone=_dt.timezone,
        ),
        "random": SimpleNamespace(
            random=rng.random,
            randint=rng.randint,
            uniform=rng.uniform,
            choice=rng.choice,
            sample=rng.sample,
            shuffle=rng.shuffle,
        ),
    }


def run_restricted(code: str, output: List[str], max_lines: int) -> Any:
    """在受限命名空间中执行代码，返回最后一个表达式的值（没有则为 None）。"""

    tree = screen_code(code)
    env = _safe_namespace(max_lines, output)
    last_expr = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        last_expr = tree.body.pop()
    exec(compile(tree, "<sandbox>", "exec"), env)  # noqa: S102 - AST 已筛查，命名空间受限
    if last_expr is None:
        return None
    expr = ast.Expression(body=last_expr.value)
    return eval(compile(expr, "<sandbox>", "eval"), env)  # noqa: S307


def _sandbox_worker(code: str, max_lines: int, conn) -> None:
    output: List[str] = []
    try:
        result = run_restricted(code, output, max_lines)
        message = {"success": True, "output": output, "result": to_jsonable(result)}
    except ValidationError as exc:
        message = {"success": False, "output": output, "error": exc.message}
    except Exception as exc:  # noqa: BLE001 - 所有运行期错误都回传给父进程
        message = {"success": False, "output": output, "error": f"{type(exc).__name__}: {exc}"}
    try:
        conn.send(message)
    finally:
        conn.close()


class CodeExecutor(ToolExecutor):
    kind = ToolKind.EXECUTE_PYTHON

    def __init__(self, credentials=None, cfg=settings):
        super().__init__(credentials)
        self._settings = cfg
        self._ctx = multiprocessing.get_context("spawn")

    def validate(self, arguments) -> CodeArgs:
        args = super().validate(arguments)
        screen_code(args.code)
        return args

    def execute(self, args: CodeArgs) -> ToolResult:
        timeout = float(self._settings.code_timeout)
        max_lines = int(self._settings.code_max_output_lines)
        parent_conn, child_conn = self._ctx.Pipe(duplex=False)
        proc = self._ctx.Process(
            target=_sandbox_worker,
            args=(args.code, max_lines, child_conn),
            daemon=True,
        )
        proc.start()
        child_conn.close()
        message = None
        try:
            if parent_conn.poll(timeout):
                try:
                    message = parent_conn.recv()
                except EOFError:
                    message = {"success": False, "output": [], "error": "Sandbox process exited unexpectedly"}
        finally:
            parent_conn.close()
            proc.join(0.5)
            if proc.is_alive():
                proc.kill()
                proc.join()

        if message is None:
            logger.warning("Sandbox timed out", extra={"extra": {"timeout": timeout}})
            return ToolResult.failure(
                f"Execution timed out after {timeout:g}s",
                error_code="TIMEOUT",
                code=args.code,
            )
        if not message.get("success"):
            return ToolResult.failure(
                message.get("error") or "unknown error",
                error_code="EXECUTION_FAULT",
                code=args.code,
                output=message.get("output") or [],
            )
        return ToolResult.ok(code=args.code, output=message.get("output") or [], result=message.get("result"))
