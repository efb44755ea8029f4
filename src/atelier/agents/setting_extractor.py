"""设定抽取 Agent：从全文生成结构化设定模型。

单次生成调用得到完整 SettingModel，再做纯本地的后处理。
生成失败时抛出 SettingExtractionError，由编排层决定兜底。
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from atelier.config.defaults import (
    DEFAULT_CRITICAL_RULE_EVIDENCE,
    DEFAULT_PROTAGONIST_SPEECH_PATTERN,
    build_fallback_setting_model,
)
from atelier.llm.adapter import GenerationAdapter
from atelier.models.analysis import AnalyzeOptions
from atelier.models.setting import Character, SettingModel, TimelineEvent, WorldRule
from atelier.prompts import format_prompt, load_prompt
from atelier.state.analysis_state import AnalysisState

logger = logging.getLogger(__name__)

SETTING_SYSTEM_PROMPT = load_prompt("setting_system")


class SettingExtractionError(RuntimeError):
    """设定抽取失败（重试耗尽或输出不合约定）。"""


def enhance_setting_model(setting: SettingModel) -> SettingModel:
    """设定后处理，不调用模型。

    1. 删除指向不存在角色的关系
    2. 主角缺少说话风格时补默认值
    3. 时间线按 timestamp 字符串字典序排序（不是真实时间顺序，"10장" 会排在 "2장" 前）
    4. critical 规则缺少依据时补默认依据
    """
    setting = setting.model_copy(deep=True)
    names = setting.character_names()

    for character in setting.characters:
        character.relationships = [r for r in character.relationships if r.character in names]
        if character.role == "protagonist" and not character.speech_pattern:
            character.speech_pattern = DEFAULT_PROTAGONIST_SPEECH_PATTERN

    setting.timeline = sorted(setting.timeline, key=lambda e: e.timestamp)

    for rule in setting.world_rules:
        if rule.importance == "critical" and not rule.evidence:
            rule.evidence = DEFAULT_CRITICAL_RULE_EVIDENCE

    return setting


class SettingExtractor:
    """从正文抽取设定模型。"""

    def __init__(self, adapter: GenerationAdapter):
        self.adapter = adapter

    def extract_setting_model(self, full_text: str) -> SettingModel:
        response = self.adapter.generate_structured(
            format_prompt("setting_instruction", text=full_text),
            SettingModel,
            SETTING_SYSTEM_PROMPT,
            operation_name="extract_setting",
        )
        if not response.success or response.data is None:
            raise SettingExtractionError(f"设定模型生成失败: {response.error}")

        setting = enhance_setting_model(response.data)
        logger.info(
            "设定抽取完成: 「%s」 角色=%d, 规则=%d, 事件=%d",
            setting.title,
            len(setting.characters),
            len(setting.world_rules),
            len(setting.timeline),
        )
        return setting

    # ── 单项抽取：失败时返回空列表 ──

    def extract_characters(self, text: str) -> list[Character]:
        response = self.adapter.generate_structured(
            format_prompt("extract_characters", text=text),
            list[Character],
            "캐릭터 분석 전문가로서 작동합니다.",
            operation_name="extract_characters",
        )
        return response.data or []

    def extract_world_rules(self, text: str) -> list[WorldRule]:
        response = self.adapter.generate_structured(
            format_prompt("extract_world_rules", text=text),
            list[WorldRule],
            "세계관 설정 분석가로서 작동합니다.",
            operation_name="extract_world_rules",
        )
        return response.data or []

    def extract_timeline(self, text: str) -> list[TimelineEvent]:
        response = self.adapter.generate_structured(
            format_prompt("extract_timeline", text=text),
            list[TimelineEvent],
            "스토리 타임라인 분석가로서 작동합니다.",
            operation_name="extract_timeline",
        )
        return response.data or []


def create_extract_setting_node(
    extractor: SettingExtractor,
) -> Callable[[AnalysisState], dict[str, Any]]:
    """创建设定抽取节点。

    抽取失败或请求跳过设定抽取时，使用按正文关键词确定标题的兜底设定。
    """

    def extract_setting_node(state: AnalysisState) -> dict[str, Any]:
        text = state["text"]
        options = state.get("options") or AnalyzeOptions()

        if options.skip_setting_note:
            logger.info("跳过设定抽取，使用兜底设定")
            return {"setting_note": build_fallback_setting_model(text), "setting_fallback": True}

        try:
            setting = extractor.extract_setting_model(text)
        except SettingExtractionError as e:
            logger.error("%s，使用兜底设定", e)
            return {"setting_note": build_fallback_setting_model(text), "setting_fallback": True}
        return {"setting_note": setting, "setting_fallback": False}

    return extract_setting_node
