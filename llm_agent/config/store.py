"""LLM / 工具配置的持久化存储。

两条相互独立的记录，各自是一个扁平的 key-value JSON 对象：

- llm_agent_config.json: {"provider", "model", "api_key", "base_url"}
- tool_config.json: {"<tool>.enabled": bool, "<tool>.<credential>": str, ...}

启动时加载，用户在配置界面保存时写回。文件缺失（首次运行）或内容损坏
时回退到默认配置并记录告警，绝不让启动失败。
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

from llm_agent.config.settings import settings
from llm_agent.domain.exceptions import BusinessError, ValidationError
from llm_agent.domain.models import LLMConfig, ToolConfig, ToolSetting
from llm_agent.infrastructure.logging.logger import logger
from llm_agent.tools.definitions import ToolKind


LLM_RECORD = "llm_agent_config"
TOOL_RECORD = "tool_config"


def default_llm_config() -> LLMConfig:
    return LLMConfig()


def default_tool_config() -> ToolConfig:
    return ToolConfig(tools={kind.value: ToolSetting(enabled=True) for kind in ToolKind})


def llm_config_to_record(config: LLMConfig) -> Dict[str, Any]:
    return {
        "provider": config.provider_id,
        "model": config.model_id,
        "api_key": config.api_key,
        "base_url": config.base_url,
    }


def llm_config_from_record(data: Dict[str, Any]) -> LLMConfig:
    for key in ("api_key", "base_url"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ValueError(f"{key} must be a string")
    for key in ("provider", "model"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ValueError(f"{key} must be a string or null")
    return LLMConfig(
        provider_id=data.get("provider"),
        model_id=data.get("model"),
        api_key=data.get("api_key") or "",
        base_url=data.get("base_url") or "",
    )


def tool_config_to_record(config: ToolConfig) -> Dict[str, Any]:
    record: Dict[str, Any] = {}
    for name, setting in config.tools.items():
        record[f"{name}.enabled"] = bool(setting.enabled)
        for key, value in setting.credentials.items():
            if key == "enabled":
                raise ValidationError(
                    code="RESERVED_KEY",
                    message=f"'{name}.enabled' is reserved and cannot hold a credential",
                )
            record[f"{name}.{key}"] = value
    return record


def tool_config_from_record(data: Dict[str, Any]) -> ToolConfig:
    tools: Dict[str, ToolSetting] = {}
    for raw_key, value in data.items():
        name, sep, field_name = str(raw_key).partition(".")
        if not sep or not name or not field_name:
            raise ValueError(f"malformed key {raw_key!r}")
        setting = tools.setdefault(name, ToolSetting(enabled=False))
        if field_name == "enabled":
            if not isinstance(value, bool):
                raise ValueError(f"{raw_key} must be a boolean")
            setting.enabled = value
        else:
            if not isinstance(value, str):
                raise ValueError(f"{raw_key} must be a string")
            setting.credentials[field_name] = value
    return ToolConfig(tools=tools)


class ConfigStore:
    """Configuration Store：持有当前 LLMConfig / ToolConfig 并负责读写。"""

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self.llm_config: LLMConfig = default_llm_config()
        self.tool_config: ToolConfig = default_tool_config()
        self._tool_sig: Optional[tuple] = None

    @property
    def root(self) -> Path:
        return self._root

    def load(self) -> "ConfigStore":
        """从磁盘加载两条记录；任何一条缺失或损坏都单独回退到默认值。"""

        self.llm_config = self._load_record(LLM_RECORD, llm_config_from_record, default_llm_config)
        self._tool_sig = self._signature(TOOL_RECORD)
        self.tool_config = self._load_record(TOOL_RECORD, tool_config_from_record, default_tool_config)
        return self

    def reload_tool_config(self) -> ToolConfig:
        """工具记录被其他进程（例如另一个 CLI 命令）改写过时重新读取。

        文件不存在或自上次读写后没有变化时，直接返回内存中的配置。
        """

        sig = self._signature(TOOL_RECORD)
        if sig is None or sig == self._tool_sig:
            return self.tool_config
        self._tool_sig = sig
        self.tool_config = self._load_record(TOOL_RECORD, tool_config_from_record, default_tool_config)
        logger.info("Tool config reloaded", extra={"extra": {"record": TOOL_RECORD}})
        return self.tool_config

    def save_llm_config(self, config: LLMConfig) -> None:
        self.llm_config = config
        self._write_record(LLM_RECORD, llm_config_to_record(config))

    def save_tool_config(self, config: ToolConfig) -> None:
        record = tool_config_to_record(config)
        self.tool_config = config
        self._write_record(TOOL_RECORD, record)
        self._tool_sig = self._signature(TOOL_RECORD)

    def _path(self, record: str) -> Path:
        return self._root / f"{record}.json"

    def _signature(self, record: str) -> Optional[tuple]:
        try:
            st = self._path(record).stat()
        except OSError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _load_record(self, record: str, parse, default):
        path = self._path(record)
        if not path.exists():
            logger.info("Config record missing, using defaults", extra={"extra": {"record": record}})
            return default()
        try:
            data: Optional[Any] = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("record is not a JSON object")
            return parse(data)
        except (OSError, ValueError) as exc:
            # json.JSONDecodeError 也是 ValueError
            logger.warning(
                "Config record malformed, using defaults",
                extra={"extra": {"record": record, "error": str(exc)}},
            )
            return default()

    def _write_record(self, record: str, data: Dict[str, Any]) -> None:
        path = self._path(record)
        tmp_path = self._root / f"{record}.{uuid4().hex}.json.tmp"
        try:
            tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))
        logger.info("Config record saved", extra={"extra": {"record": record}})
