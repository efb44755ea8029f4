"""设定模型（Setting Note）相关数据模型。

由设定抽取 Agent 从全文中一次性生成，之后作为一致性检查与读者评估的"事实基准"。
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CharacterRole = Literal["protagonist", "antagonist", "supporting", "minor"]
RelationshipType = Literal["family", "friend", "enemy", "love", "mentor", "rival", "other"]
RuleCategory = Literal["magic", "society", "technology", "culture", "physics", "other"]
Importance = Literal["critical", "high", "medium", "low"]


class Relationship(BaseModel):
    """角色之间的关系，character 指向同一设定中的另一个角色名。"""

    character: str = Field(description="关系对象的角色名")
    type: RelationshipType = Field(description="关系类型")
    description: str = Field(description="关系说明")


class Character(BaseModel):
    """角色档案。"""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(description="角色名称")
    role: CharacterRole = Field(
        description="角色定位: 'protagonist'(主角), 'antagonist'(反派), 'supporting'(配角), 'minor'(龙套)",
    )
    traits: list[str] = Field(description="性格特点")
    goals: list[str] = Field(description="目标/动机")
    relationships: list[Relationship] = Field(description="与其他角色的关系")
    speech_pattern: str | None = Field(default=None, description="说话风格（可选）")
    forbidden_actions: list[str] | None = Field(
        default=None,
        alias="taboo_actions",
        description="角色绝不会做的事（可选）",
    )


class WorldRule(BaseModel):
    """世界观规则。critical 规则在后处理后必须带有 evidence。"""

    category: RuleCategory = Field(description="规则类别")
    rule: str = Field(description="规则内容")
    importance: Importance = Field(description="重要度")
    evidence: str | None = Field(default=None, description="文本依据（可选）")


class TimelineEvent(BaseModel):
    """时间线事件。timestamp 是不透明的排序键（如 '1장'）。"""

    timestamp: str = Field(description="时间点/章节标记")
    event: str = Field(description="事件内容")
    involved_characters: list[str] = Field(description="相关角色")
    importance: Importance = Field(description="重要度")


class SettingModel(BaseModel):
    """作品设定模型：角色、世界观规则、时间线与梗概。"""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(description="作品标题")
    genres: list[str] = Field(alias="genre", description="题材列表")
    characters: list[Character] = Field(description="角色列表")
    world_rules: list[WorldRule] = Field(description="世界观规则")
    timeline: list[TimelineEvent] = Field(description="时间线")
    summary: str = Field(description="作品梗概")

    def character_names(self) -> set[str]:
        return {c.name for c in self.characters}
