"""进程级配置模块。

支持从 .env、config.yaml 以及环境变量加载配置。
这里只放运行参数（存储目录、超时、循环上限等）；用户在界面里保存的
LLM / 工具配置由 config.store.ConfigStore 单独持久化。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("LLM_AGENT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Provider 相关配置 ----
    default_provider: str = Field(
        default="mock",
        description="未保存 LLM 配置时使用的 Provider，例如 mock、openai",
    )
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")

    # ---- 存储与日志 ----
    storage_root: str = Field(default=".storage", description="配置记录的存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别，例如 DEBUG、INFO、WARNING")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- Agent 循环 ----
    max_loop_cycles: int = Field(
        default=20,
        ge=1,
        le=100,
        description="单次用户输入内 Thinking ⇄ ExecutingTools 的最大轮数",
    )
    allow_disabled_tools: bool = Field(
        default=False,
        description="模型请求已禁用的工具时是否仍然执行（默认拒绝）",
    )

    # ---- 工具 ----
    code_timeout: float = Field(default=5.0, gt=0, le=60.0, description="代码执行超时（秒）")
    code_max_output_lines: int = Field(default=200, ge=1, description="代码执行最多保留的输出行数")
    google_search_url: str = Field(
        default="https://www.googleapis.com/customsearch/v1",
        description="Google Custom Search JSON API 地址",
    )
    ai_pipe_base_url: str = Field(
        default="https://aipipe.org",
        description="ai_pipe_request 相对路径的基础 URL",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _load_config_from_yaml,
            file_secret_settings,
        )


settings = Settings()
