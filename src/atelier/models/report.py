"""综合报告数据模型。"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from atelier.models.consistency import Severity

Verdict = Literal["PASS", "REVISE", "BLOCK"]
ActionType = Literal["fix_required", "improvement", "consideration"]
Effort = Literal["minimal", "moderate", "significant"]


class ActionItem(BaseModel):
    """按优先级排序的修改事项。"""

    priority: Severity = Field(description="优先级，与问题严重度同一全序")
    type: ActionType = Field(description="事项类型")
    description: str = Field(description="事项描述")
    affected_area: str = Field(description="影响范围，如 'continuity' / 'reader_satisfaction'")
    estimated_effort: Effort | None = Field(default=None, description="预估工作量（可选）")


class WeightedScores(BaseModel):
    """各维度取整后的分数与加权总分。"""

    continuity: int = Field(description="连贯性，权重 0.40")
    character: int = Field(description="角色一致性，权重 0.35")
    world_rules: int = Field(description="世界观规则，权重 0.25")
    total: int = Field(description="加权总分 0-100")


class AggregateReport(BaseModel):
    """流水线的最终报告。"""

    verdict: Verdict
    confidence_score: int = Field(ge=0, le=100, description="置信度 0-100")
    weighted_scores: WeightedScores
    action_items: list[ActionItem] = Field(default_factory=list, description="最多 10 条")
    executive_summary: str = ""
    recommendation: str = ""
