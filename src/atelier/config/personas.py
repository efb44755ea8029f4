"""读者画像表：三个固定画像，每个画像一条记录。

评估流程只读取记录里的字段，不按画像类型分支。
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from atelier.models.persona import PersonaType
from atelier.prompts import load_prompt


class PersonaProfile(BaseModel):
    """画像的静态配置。"""

    persona_type: PersonaType
    name: str = Field(description="画像名称（韩文，直接展示给作者）")
    description: str = Field(description="画像说明")
    focus: list[str] = Field(description="关注点")
    system_prompt: str = Field(description="画像系统提示词")
    criteria: str = Field(description="画像专属评估标准")


PERSONA_PROFILES: dict[str, PersonaProfile] = {
    "setting_obsessed": PersonaProfile(
        persona_type="setting_obsessed",
        name="설정 과몰입형 독자",
        description="세계관 설정과 파워 시스템의 논리성을 중시하는 독자. 설정 구멍에 민감하고 체계적인 세계관을 선호함.",
        focus=["세계관 규칙", "파워 시스템", "설정 일관성", "논리적 개연성"],
        system_prompt=load_prompt("persona_setting_obsessed"),
        criteria=load_prompt("persona_setting_obsessed_criteria"),
    ),
    "romance_sub_focused": PersonaProfile(
        persona_type="romance_sub_focused",
        name="로판 서브주총러",
        description="로맨스와 감정선, 캐릭터 관계를 중시하는 독자. 주인공과 서브 캐릭터의 감정 묘사와 관계 발전을 중요시함.",
        focus=["감정 묘사", "관계 발전", "캐릭터 매력", "로맨스 전개"],
        system_prompt=load_prompt("persona_romance_sub_focused"),
        criteria=load_prompt("persona_romance_sub_focused_criteria"),
    ),
    "traditional_martial_arts_fan": PersonaProfile(
        persona_type="traditional_martial_arts_fan",
        name="정통무협팬",
        description="전통적인 무협 요소와 협객 정신을 중시하는 독자. 무공 수련, 강호 세계, 의리와 복수극을 선호함.",
        focus=["무공 체계", "협객 정신", "강호 설정", "전통 무협 요소"],
        system_prompt=load_prompt("persona_traditional_martial_arts_fan"),
        criteria=load_prompt("persona_traditional_martial_arts_fan_criteria"),
    ),
}

# 返回结果的固定顺序
PERSONA_ORDER: tuple[str, ...] = (
    "setting_obsessed",
    "romance_sub_focused",
    "traditional_martial_arts_fan",
)
