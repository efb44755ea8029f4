"""评分算术：固定权重、四舍五入、结论阈值。

使用 Decimal 计算，避免 85 * 0.35 这类浮点误差让 89.5 被舍成 89。
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, TypeVar

from atelier.models.consistency import SEVERITY_ORDER, severity_rank
from atelier.models.report import Verdict

T = TypeVar("T")

WEIGHTS: dict[str, Decimal] = {
    "continuity": Decimal("0.40"),
    "character": Decimal("0.35"),
    "world_rules": Decimal("0.25"),
}

PASS_THRESHOLD = 80
REVISE_THRESHOLD = 60


def round_half_up(value: float | int | Decimal) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def weighted_total(continuity: float, character: float, world_rules: float) -> int:
    """三维加权平均并四舍五入。"""
    total = (
        Decimal(str(continuity)) * WEIGHTS["continuity"]
        + Decimal(str(character)) * WEIGHTS["character"]
        + Decimal(str(world_rules)) * WEIGHTS["world_rules"]
    )
    return round_half_up(total)


def determine_verdict(total: int) -> Verdict:
    if total >= PASS_THRESHOLD:
        return "PASS"
    if total >= REVISE_THRESHOLD:
        return "REVISE"
    return "BLOCK"


def filter_by_rank(items: Iterable[T], attr: str, minimum: str) -> list[T]:
    """保留严重度/优先级不低于 minimum 的条目。"""
    if minimum not in SEVERITY_ORDER:
        raise ValueError(f"未知的严重度: {minimum}")
    limit = severity_rank(minimum)
    return [item for item in items if severity_rank(getattr(item, attr)) <= limit]
