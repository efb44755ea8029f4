"""分析流水线状态定义（LangGraph StateGraph 状态）。"""

from __future__ import annotations

from typing_extensions import TypedDict

from atelier.models.analysis import AnalyzeOptions
from atelier.models.consistency import ConsistencyCheck
from atelier.models.persona import PersonaResult
from atelier.models.report import AggregateReport
from atelier.models.setting import SettingModel


class AnalysisState(TypedDict, total=False):
    """单次分析的图状态。

    一致性检查与画像评估并行执行，各自只写自己的字段。
    """

    # ── 输入 ──
    text: str
    options: AnalyzeOptions

    # ── 设定抽取 ──
    setting_note: SettingModel
    setting_fallback: bool  # 是否使用了兜底设定

    # ── 并行阶段 ──
    consistency_check: ConsistencyCheck
    persona_evaluations: list[PersonaResult]

    # ── 输出 ──
    aggregate_report: AggregateReport
