"""一致性检查 Agent。

以设定模型为基准，对正文做连贯性 / 角色 / 世界观规则三维检查。
综合检查一次调用覆盖三个维度；另有三个单维度检查可单独调用。
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from atelier.config.defaults import default_consistency_check, default_dimension_result
from atelier.config.settings import AnalysisConfig
from atelier.engine.scoring import filter_by_rank, weighted_total
from atelier.llm.adapter import GenerationAdapter
from atelier.llm.utils import dump_json
from atelier.models.consistency import ConsistencyCheck, DimensionResult, Issue, Severity
from atelier.models.setting import SettingModel
from atelier.prompts import format_prompt, load_prompt
from atelier.state.analysis_state import AnalysisState

logger = logging.getLogger(__name__)

CHECKER_SYSTEM_PROMPT = load_prompt("checker_system")
SEVERITY_GUIDE = load_prompt("severity_guide")


def with_weighted_overall(check: ConsistencyCheck) -> ConsistencyCheck:
    """按 0.40 / 0.35 / 0.25 重新计算 overall_score，忽略模型给出的值。"""
    overall = weighted_total(
        check.continuity.score, check.character.score, check.world_rules.score
    )
    return check.model_copy(update={"overall_score": overall})


def filter_issues_by_severity(issues: list[Issue], min_severity: Severity) -> list[Issue]:
    """返回严重度不低于 min_severity 的问题。"""
    return filter_by_rank(issues, "severity", min_severity)


class ConsistencyChecker:
    """正文与设定模型的一致性检查。"""

    def __init__(self, adapter: GenerationAdapter, config: AnalysisConfig | None = None):
        self.adapter = adapter
        self.config = config or AnalysisConfig()

    def check_consistency(self, excerpt: str, setting: SettingModel) -> ConsistencyCheck:
        prompt = format_prompt(
            "checker_instruction",
            setting=dump_json(setting, self.config.consistency_setting_chars),
            text=excerpt[: self.config.consistency_text_chars],
            severity_guide=SEVERITY_GUIDE,
        )
        response = self.adapter.generate_structured(
            prompt,
            ConsistencyCheck,
            CHECKER_SYSTEM_PROMPT,
            operation_name="check_consistency",
        )
        if not response.success or response.data is None:
            logger.error("一致性检查失败: %s，使用中性默认值", response.error)
            return default_consistency_check()

        check = with_weighted_overall(response.data)
        logger.info(
            "一致性检查完成: 连贯性=%s, 角色=%s, 世界观=%s, 综合=%s, 问题=%d个",
            check.continuity.score,
            check.character.score,
            check.world_rules.score,
            check.overall_score,
            len(check.all_issues()),
        )
        return check

    # ── 单维度检查：失败时返回 85 分、无问题 ──

    def _check_dimension(
        self, prompt_name: str, excerpt: str, setting_json: str, system_prompt: str
    ) -> DimensionResult:
        prompt = format_prompt(
            prompt_name,
            text=excerpt[: self.config.focused_text_chars],
            setting=setting_json,
            severity_guide=SEVERITY_GUIDE,
        )
        response = self.adapter.generate_structured(
            prompt, DimensionResult, system_prompt, operation_name=prompt_name
        )
        if not response.success or response.data is None:
            logger.warning("%s 失败: %s，使用默认值", prompt_name, response.error)
            return default_dimension_result()
        return response.data

    def check_continuity(self, excerpt: str, setting: SettingModel) -> DimensionResult:
        return self._check_dimension(
            "check_continuity",
            excerpt,
            dump_json(setting.timeline),
            "개연성 검사 전문가로서 작동합니다.",
        )

    def check_character_consistency(self, excerpt: str, setting: SettingModel) -> DimensionResult:
        return self._check_dimension(
            "check_character",
            excerpt,
            dump_json(setting.characters, self.config.focused_setting_chars),
            "캐릭터 일관성 검사 전문가로서 작동합니다.",
        )

    def check_world_rules(self, excerpt: str, setting: SettingModel) -> DimensionResult:
        return self._check_dimension(
            "check_world_rules",
            excerpt,
            dump_json(setting.world_rules, self.config.focused_setting_chars),
            "세계관 일관성 검사 전문가로서 작동합니다.",
        )

    def filter_issues_by_severity(
        self, issues: list[Issue], min_severity: Severity
    ) -> list[Issue]:
        return filter_issues_by_severity(issues, min_severity)


def create_check_consistency_node(
    checker: ConsistencyChecker,
) -> Callable[[AnalysisState], dict[str, Any]]:
    """创建一致性检查节点（与画像评估并行）。"""

    def check_consistency_node(state: AnalysisState) -> dict[str, Any]:
        check = checker.check_consistency(state["text"], state["setting_note"])
        return {"consistency_check": check}

    return check_consistency_node
