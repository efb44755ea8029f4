"""单次分析内的生成调用统计。

每次分析新建一个 UsageTracker，不跨请求共享。
画像评估在线程里并发调用，记录时需要加锁。
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class TokenUsage:
    """统一后的 token 计数，与具体后端无关。"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass
class CallRecord:
    """一次 generate_structured 调用的记录。"""
    operation: str
    model_name: str
    success: bool
    attempts: int = 1
    usage: Optional[TokenUsage] = None
    error: Optional[str] = None
    duration_ms: float = 0.0
    timestamp: float = field(default_factory=time.time)


class UsageTracker:
    """生成调用统计（线程安全）。"""

    def __init__(self):
        self._records: List[CallRecord] = []
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self._records.clear()

    def record(self, record: CallRecord) -> None:
        with self._lock:
            self._records.append(record)

    def get_records(self) -> List[CallRecord]:
        with self._lock:
            return self._records.copy()

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self._records)

    def failed_operations(self) -> List[str]:
        """返回失败调用的 operation 名称（保持调用顺序，去重）。"""
        seen: list[str] = []
        for r in self.get_records():
            if not r.success and r.operation not in seen:
                seen.append(r.operation)
        return seen

    def total_usage(self) -> TokenUsage:
        total = TokenUsage()
        for r in self.get_records():
            if r.usage is not None:
                total = total + r.usage
        return total
