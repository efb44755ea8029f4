"""测试共用的假适配器与样例数据。

ScriptedAdapter 继承真实的 GenerationAdapter，只替换 _send()，
因此重试、去代码块、JSON 解析与结构校验都走真实代码。
"""

from __future__ import annotations

import copy
import json
import threading
from typing import Any, Callable

import pytest

from atelier.config.personas import PERSONA_PROFILES
from atelier.config.settings import ModelConfig
from atelier.llm.adapter import GenerationAdapter
from atelier.llm.usage import TokenUsage
from atelier.models.consistency import ConsistencyCheck
from atelier.models.persona import PersonaResult
from atelier.models.setting import SettingModel

SAMPLE_TEXT = (
    "홍길동은 홍판서의 서자로 태어나 아버지를 아버지라 부르지 못하고 형을 형이라 부르지 못하였다. "
    "어려서부터 총명하여 하나를 들으면 열을 알았고, 밤마다 달을 보며 신분의 한을 토로하였다. "
    "형 홍인형은 길동을 시기하여 자객 특재를 보냈으나, 길동은 도술로 몸을 감추어 위기를 모면하였다. "
    "이후 길동은 집을 떠나 활빈당을 세우고 탐관오리의 재물을 빼앗아 가난한 백성에게 나누어 주었다."
)

Reply = Any
Route = Callable[[str, "str | None"], Reply]


def sequence(*replies: Reply) -> Callable[[], Reply]:
    """按顺序返回预设回复，用完后一直返回最后一个。"""
    remaining = list(replies)

    def next_reply() -> Reply:
        return remaining.pop(0) if len(remaining) > 1 else remaining[0]

    return next_reply


class ScriptedAdapter(GenerationAdapter):
    """按脚本返回模型输出的适配器。

    route(prompt, system_prompt) 返回:
      - str: 原样作为模型输出
      - dict / list: 序列化为 JSON
      - Exception: 模拟后端故障
    """

    provider = "scripted"

    def __init__(self, route: Route, usage: TokenUsage | None = None, **kwargs: Any):
        kwargs.setdefault("model_config", ModelConfig(provider="scripted", model_name="scripted-model"))
        kwargs.setdefault("sleep", lambda seconds: None)
        super().__init__(**kwargs)
        self._route = route
        self._usage = usage or TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        self._lock = threading.Lock()
        self.calls: list[tuple[str, str | None]] = []

    def _send(self, prompt, contract_text, system_prompt):
        with self._lock:
            self.calls.append((prompt, system_prompt))
            reply = self._route(prompt, system_prompt)
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply, ensure_ascii=False)
        return reply, self._usage


# ── 样例数据（模型输出的原始 JSON 结构，使用线上字段名）──

SETTING_PAYLOAD: dict = {
    "title": "홍길동전",
    "genre": ["고전", "영웅서사"],
    "characters": [
        {
            "name": "홍길동",
            "role": "protagonist",
            "traits": ["총명함", "정의로움"],
            "goals": ["신분 극복"],
            "relationships": [
                {"character": "홍인형", "type": "family", "description": "적자인 형"},
                {"character": "특재", "type": "enemy", "description": "자객"},
            ],
            "taboo_actions": ["아버지를 아버지라 부르지 못함"],
        },
        {
            "name": "홍인형",
            "role": "antagonist",
            "traits": ["시기심"],
            "goals": ["길동 제거"],
            "relationships": [
                {"character": "홍길동", "type": "family", "description": "서자인 동생"},
            ],
            "speech_pattern": "권위적인 어투",
        },
    ],
    "world_rules": [
        {"category": "society", "rule": "적서차별", "importance": "critical"},
        {"category": "magic", "rule": "도술이 존재", "importance": "high"},
        {"category": "culture", "rule": "효를 중시", "importance": "critical", "evidence": "부모 공경"},
    ],
    "timeline": [
        {"timestamp": "3장", "event": "자객 습격", "involved_characters": ["홍길동"], "importance": "critical"},
        {"timestamp": "1장", "event": "길동 출생", "involved_characters": ["홍길동"], "importance": "high"},
        {"timestamp": "2장", "event": "신분의 한", "involved_characters": ["홍길동"], "importance": "medium"},
    ],
    "summary": "서자로 태어난 홍길동이 활빈당을 세우는 이야기.",
}


def make_issue(severity: str = "high", issue_type: str = "continuity", **extra: Any) -> dict:
    issue = {
        "type": issue_type,
        "severity": severity,
        "description": f"{issue_type} {severity} 문제",
        "evidence": ["인용문"],
    }
    issue.update(extra)
    return issue


def make_check_payload(
    continuity: float = 90,
    character: float = 85,
    world_rules: float = 95,
    issues: dict[str, list[dict]] | None = None,
    overall_score: float | None = None,
) -> dict:
    issues = issues or {}
    payload = {
        "continuity": {"score": continuity, "issues": issues.get("continuity", [])},
        "character": {"score": character, "issues": issues.get("character", [])},
        "world_rules": {"score": world_rules, "issues": issues.get("world_rules", [])},
    }
    if overall_score is not None:
        payload["overall_score"] = overall_score
    return payload


def make_persona_payload(
    persona_type: str = "setting_obsessed",
    satisfaction: float = 80,
    reaction: str = "positive",
    suggestions: list[str] | None = None,
) -> dict:
    profile = PERSONA_PROFILES[persona_type]
    return {
        "persona_type": persona_type,
        "persona_name": profile.name,
        "persona_description": profile.description,
        "metrics": {"satisfaction": satisfaction, "engagement": 75, "frustration": 20},
        "likes": ["전개가 빠름"],
        "dislikes": ["설명이 부족함"],
        "suggestions": suggestions if suggestions is not None else ["묘사 보강", "복선 추가", "대사 다듬기"],
        "overall_reaction": reaction,
        "sample_comment": "다음 화 기대됩니다.",
    }


def persona_type_of(system_prompt: str | None) -> str | None:
    """根据系统提示词判断是哪个画像在调用。"""
    for persona_type, profile in PERSONA_PROFILES.items():
        if system_prompt == profile.system_prompt:
            return persona_type
    return None


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_TEXT


@pytest.fixture
def setting_payload() -> dict:
    return copy.deepcopy(SETTING_PAYLOAD)


@pytest.fixture
def sample_setting() -> SettingModel:
    return SettingModel.model_validate(SETTING_PAYLOAD)


@pytest.fixture
def make_check() -> Callable[..., ConsistencyCheck]:
    def factory(*args: Any, **kwargs: Any) -> ConsistencyCheck:
        return ConsistencyCheck.model_validate(make_check_payload(*args, **kwargs))

    return factory


@pytest.fixture
def make_persona() -> Callable[..., PersonaResult]:
    def factory(*args: Any, **kwargs: Any) -> PersonaResult:
        return PersonaResult.model_validate(make_persona_payload(*args, **kwargs))

    return factory
