"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取 system prompt 文本。
system prompt 不进入会话记录，由网络 Provider 在构造请求时注入。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent


def load_system_prompt(locale: str = "en") -> str:
    """根据语言加载 Agent 的系统提示词文本。"""

    fname = PROMPTS_DIR / locale / "agent_system.md"
    return fname.read_text(encoding="utf-8")
