"""JSON 行日志。

所有模块共用名为 "llm_agent" 的 logger，结构化字段通过
``logger.info(msg, extra={"extra": {...}})`` 传入并平铺到输出 JSON 中。
开启 log_redact_content 时，消息正文与可能包含用户内容的字段会被截断。
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from llm_agent.config.settings import settings

LOG_FILE = "agent.log"

# 可能携带用户输入、模型输出或工具参数的字段
CONTENT_FIELDS = {"tool_args", "content", "query", "error", "text"}

REDACT_LIMIT = 64


def _redact(value):
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    if len(text) <= REDACT_LIMIT:
        return text
    return text[:REDACT_LIMIT] + f"…(+{len(text) - REDACT_LIMIT})"


class JsonFormatter(logging.Formatter):
    def __init__(self, redact: bool = False):
        super().__init__()
        self._redact = redact

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": _redact(msg) if self._redact else msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            for key, value in extra.items():
                payload[key] = _redact(value) if self._redact and key in CONTENT_FIELDS else value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("llm_agent")
    logger.setLevel(settings.log_level.upper())
    if logger.handlers:
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / LOG_FILE, encoding="utf-8")
    fh.setFormatter(JsonFormatter(redact=settings.log_redact_content))
    logger.addHandler(fh)
    # 只写文件，不打扰终端里的对话界面
    logger.propagate = False
    return logger


logger = setup_logger()
