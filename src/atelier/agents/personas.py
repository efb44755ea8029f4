"""读者画像评估 Agent。

三个画像相互独立，在线程池中并发评估；结果按 PERSONA_ORDER 固定顺序返回。
任一画像失败只影响它自己，使用该画像的中性兜底结果。
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from atelier.config.defaults import default_persona_result
from atelier.config.personas import PERSONA_ORDER, PERSONA_PROFILES
from atelier.config.settings import AnalysisConfig
from atelier.engine.scoring import round_half_up
from atelier.llm.adapter import GenerationAdapter
from atelier.llm.utils import dump_json
from atelier.models.analysis import AnalyzeOptions
from atelier.models.persona import AverageMetrics, PersonaResult
from atelier.models.setting import SettingModel
from atelier.prompts import format_prompt
from atelier.state.analysis_state import AnalysisState

logger = logging.getLogger(__name__)


def calculate_average_metrics(personas: list[PersonaResult]) -> AverageMetrics:
    """三项指标分别求平均并四舍五入；列表为空时全为 0。"""
    if not personas:
        return AverageMetrics()
    count = len(personas)
    return AverageMetrics(
        avg_satisfaction=round_half_up(sum(p.metrics.satisfaction for p in personas) / count),
        avg_engagement=round_half_up(sum(p.metrics.engagement for p in personas) / count),
        avg_frustration=round_half_up(sum(p.metrics.frustration for p in personas) / count),
    )


class PersonaEvaluator:
    """以虚拟读者的视角评估正文。"""

    def __init__(self, adapter: GenerationAdapter, config: AnalysisConfig | None = None):
        self.adapter = adapter
        self.config = config or AnalysisConfig()

    def evaluate_persona(
        self, persona_type: str, excerpt: str, setting: SettingModel
    ) -> PersonaResult:
        profile = PERSONA_PROFILES.get(persona_type)
        if profile is None:
            raise ValueError(f"未知的读者画像: {persona_type}")

        prompt = format_prompt(
            "persona_instruction",
            text=excerpt[: self.config.persona_text_chars],
            setting=dump_json(setting, self.config.persona_setting_chars),
            focus=", ".join(profile.focus),
            criteria=profile.criteria,
            persona_type=profile.persona_type,
            persona_name=profile.name,
        )
        response = self.adapter.generate_structured(
            prompt,
            PersonaResult,
            profile.system_prompt,
            operation_name=f"persona_{persona_type}",
        )
        if not response.success or response.data is None:
            logger.warning("画像「%s」评估失败: %s，使用中性默认值", profile.name, response.error)
            return default_persona_result(persona_type)

        # 画像身份以画像表为准，不采信模型回填的值
        result: PersonaResult = response.data.model_copy(
            update={
                "persona_type": profile.persona_type,
                "persona_name": profile.name,
                "persona_description": profile.description,
            }
        )
        logger.info(
            "画像「%s」评估完成: 满意度=%s, 沉浸=%s, 烦躁=%s, 反应=%s",
            profile.name,
            result.metrics.satisfaction,
            result.metrics.engagement,
            result.metrics.frustration,
            result.overall_reaction,
        )
        return result

    def evaluate_all_personas(self, excerpt: str, setting: SettingModel) -> list[PersonaResult]:
        """并发评估全部画像，返回顺序与完成顺序无关。"""
        with ThreadPoolExecutor(max_workers=self.config.persona_workers) as executor:
            futures = {
                persona_type: executor.submit(self.evaluate_persona, persona_type, excerpt, setting)
                for persona_type in PERSONA_ORDER
            }
            results: list[PersonaResult] = []
            for persona_type in PERSONA_ORDER:
                try:
                    results.append(futures[persona_type].result())
                except Exception as e:
                    logger.error("画像 %s 评估异常: %s", persona_type, e)
                    results.append(default_persona_result(persona_type))
        return results

    def calculate_average_metrics(self, personas: list[PersonaResult]) -> AverageMetrics:
        return calculate_average_metrics(personas)


def create_evaluate_personas_node(
    evaluator: PersonaEvaluator,
) -> Callable[[AnalysisState], dict[str, Any]]:
    """创建画像评估节点（与一致性检查并行）。请求跳过画像时返回空列表。"""

    def evaluate_personas_node(state: AnalysisState) -> dict[str, Any]:
        options = state.get("options") or AnalyzeOptions()
        if options.skip_personas:
            logger.info("跳过读者画像评估")
            return {"persona_evaluations": []}
        return {
            "persona_evaluations": evaluator.evaluate_all_personas(
                state["text"], state["setting_note"]
            )
        }

    return evaluate_personas_node
