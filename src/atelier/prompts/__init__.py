"""提示词模板（韩文，面向韩文网文）。

模板以 .txt 文件放在本目录，按名称加载；{variable} 占位符由 format_prompt() 填充。
"""

from __future__ import annotations

import functools
from pathlib import Path

_TEMPLATE_DIR = Path(__file__).parent


@functools.lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """按名称读取模板，name 可带或不带 .txt 后缀。模板不存在时抛出 FileNotFoundError。"""
    path = _TEMPLATE_DIR / (name if name.endswith(".txt") else f"{name}.txt")
    if not path.is_file():
        raise FileNotFoundError(f"提示词模板不存在: {path}")
    return path.read_text(encoding="utf-8").strip()


def format_prompt(name: str, **values: str) -> str:
    return load_prompt(name).format(**values)


def truncate_text(text: str, max_chars: int = 8000) -> str:
    """按字符数截断文本。

    最后一个句号或换行落在上限的 80% 之后时在该处断开；否则直接截断并追加 '...'。
    """
    if len(text) <= max_chars:
        return text

    head = text[:max_chars]
    cut = max(head.rfind("."), head.rfind("\n"))
    if cut > max_chars * 0.8:
        return head[: cut + 1]
    return head + "..."


__all__ = ["format_prompt", "load_prompt", "truncate_text"]
