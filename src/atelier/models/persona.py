"""读者画像评估数据模型。"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

PersonaType = Literal["setting_obsessed", "romance_sub_focused", "traditional_martial_arts_fan"]
Reaction = Literal["very_positive", "positive", "neutral", "negative", "very_negative"]

POSITIVE_REACTIONS: frozenset[str] = frozenset({"very_positive", "positive"})


class PersonaMetrics(BaseModel):
    """画像读者的三项指标，均为 0-100。"""

    satisfaction: float = Field(ge=0, le=100, description="整体满意度")
    engagement: float = Field(ge=0, le=100, description="沉浸度")
    frustration: float = Field(ge=0, le=100, description="不满/烦躁度")


class PersonaResult(BaseModel):
    """单个画像读者的评估结果。"""

    persona_type: PersonaType = Field(description="画像类型")
    persona_name: str = Field(description="画像名称")
    persona_description: str = Field(description="画像说明")
    metrics: PersonaMetrics = Field(description="评估指标")
    likes: list[str] = Field(description="喜欢的点")
    dislikes: list[str] = Field(description="不喜欢的点")
    suggestions: list[str] = Field(description="改进建议")
    overall_reaction: Reaction = Field(description="整体反应")
    sample_comment: str | None = Field(default=None, description="该读者可能留下的评论（可选）")

    @property
    def is_positive(self) -> bool:
        return self.overall_reaction in POSITIVE_REACTIONS


class AverageMetrics(BaseModel):
    """多个画像指标的算术平均（四舍五入取整）。"""

    avg_satisfaction: int = 0
    avg_engagement: int = 0
    avg_frustration: int = 0
