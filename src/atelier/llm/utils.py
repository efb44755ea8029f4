"""生成调用的通用工具：退避重试、响应文本清洗、JSON 提取。"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from langchain_core.messages import BaseMessage

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """重试策略：第 n 次失败后等待 min(base_delay * 2^n, max_delay) 秒。"""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2**attempt), self.max_delay)


def retry_with_backoff(
    fn: Callable[[], T],
    policy: RetryPolicy | None = None,
    operation_name: str = "invoke",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """带指数退避的重试。

    - 任何异常都会触发重试（网络故障与结构校验失败走同一条路）。
    - 最后一次尝试的异常原样抛出。
    """
    policy = policy or RetryPolicy()
    for attempt in range(policy.max_attempts):
        try:
            return fn()
        except Exception as e:
            if attempt == policy.max_attempts - 1:
                logger.error(
                    "%s 重试 %d 次后仍失败: %s", operation_name, policy.max_attempts, e
                )
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s 第 %d 次失败 (%s)，%s 秒后重试",
                operation_name,
                attempt + 1,
                type(e).__name__,
                delay,
            )
            sleep(delay)
    raise RuntimeError("retry_with_backoff: max_attempts 必须 >= 1")


def extract_response_text(response: BaseMessage) -> str:
    """取出响应消息的文本。

    Gemini 的 content 可能是分段列表（[{"type": "text", "text": ...}, ...]），拼接成一段字符串。
    """
    content = response.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part if isinstance(part, str) else part.get("text", "")
            for part in content
            if isinstance(part, (str, dict))
        )
    return str(content)


def strip_code_fences(text: str) -> str:
    """去掉包裹在外面的 ``` / ```json 代码块标记。"""
    text = text.strip()
    if "```" not in text:
        return text

    opening = text.find("```")
    closing = text.find("```", opening + 3)
    # 开头标记所在行的剩余部分是语言标记（如 json）
    newline = text.find("\n", opening)
    if newline != -1 and (closing == -1 or newline < closing):
        body_start = newline
    else:
        body_start = opening + 3
    if closing == -1:
        # 只有开头没有结尾
        return text[body_start:].strip()
    return text[body_start:closing].strip()


def extract_json(text: str) -> Any:
    """解析模型输出中的 JSON。

    先去代码块再整体解析；失败时依次尝试最外层的 {...} 与 [...]。
    全部失败时抛出 json.JSONDecodeError（ValueError 子类）。
    """
    text = strip_code_fences(text)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        for opener, closer in (("{", "}"), ("[", "]")):
            first, last = text.find(opener), text.rfind(closer)
            if first != -1 and last > first:
                return json.loads(text[first : last + 1])
        raise


def dump_json(data: Any, limit: int | None = None) -> str:
    """将模型/字典序列化为缩进 JSON，可按字符数截断（用于拼接提示词）。"""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True, exclude_none=True)
    elif isinstance(data, list):
        data = [
            d.model_dump(mode="json", by_alias=True, exclude_none=True) if hasattr(d, "model_dump") else d
            for d in data
        ]
    text = json.dumps(data, ensure_ascii=False, indent=2)
    return text[:limit] if limit is not None else text
