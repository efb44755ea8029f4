"""一致性检查数据模型。

三个维度（连贯性 / 角色 / 世界观规则）各自给出 0-100 分与问题列表，
overall_score 总是由本地按固定权重重新计算。
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

IssueType = Literal["continuity", "character", "world_rules"]
Severity = Literal["critical", "high", "medium", "low"]

# 严重度全序：critical > high > medium > low（索引越小越严重）
SEVERITY_ORDER: tuple[Severity, ...] = ("critical", "high", "medium", "low")


def severity_rank(severity: str) -> int:
    """返回严重度在全序中的位置，0 为最严重。"""
    return SEVERITY_ORDER.index(severity)


class IssueLocation(BaseModel):
    """问题在原文中的位置（均可选）。"""

    chapter: int | None = Field(default=None, description="章节号")
    paragraph: int | None = Field(default=None, description="段落号")
    line: str | None = Field(default=None, description="相关行文")


class Issue(BaseModel):
    """一条一致性问题，创建后不再修改。"""

    type: IssueType = Field(description="问题类型")
    severity: Severity = Field(
        description="严重度: critical=故事崩坏, high=读者立刻察觉, medium=细心读者察觉, low=细微不一致",
    )
    description: str = Field(description="问题描述")
    evidence: list[str] = Field(description="原文引用证据")
    suggested_fix: str | None = Field(default=None, description="修改建议（可选）")
    location: IssueLocation | None = Field(default=None, description="位置（可选）")


class DimensionResult(BaseModel):
    """单一维度的检查结果。"""

    score: float = Field(ge=0, le=100, description="维度得分 0-100")
    issues: list[Issue] = Field(description="该维度发现的问题")


class ConsistencyCheck(BaseModel):
    """三维一致性检查结果。"""

    continuity: DimensionResult = Field(description="连贯性（权重 0.40）")
    character: DimensionResult = Field(description="角色一致性（权重 0.35）")
    world_rules: DimensionResult = Field(description="世界观规则（权重 0.25）")
    overall_score: float = Field(
        default=0,
        ge=0,
        le=100,
        description="加权平均分（本地重算，模型给出的值不被采信）",
    )

    def all_issues(self) -> list[Issue]:
        """按 continuity → character → world_rules 顺序返回全部问题。"""
        return [*self.continuity.issues, *self.character.issues, *self.world_rules.issues]
