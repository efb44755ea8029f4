"""分析流水线：设定抽取 → {一致性检查, 画像评估} → 综合报告。

一致性检查与画像评估都只依赖设定模型与正文，在图中并行执行，
两者都完成后才进入综合报告节点。图不带 checkpointer，每次分析互不相关。
"""

from __future__ import annotations

import logging
import random
import time
from datetime import datetime, timezone
from typing import Any, Callable

from langgraph.graph import END, START, StateGraph
from pydantic import ValidationError

from atelier.agents.checker import ConsistencyChecker, create_check_consistency_node
from atelier.agents.personas import PersonaEvaluator, create_evaluate_personas_node
from atelier.agents.setting_extractor import SettingExtractor, create_extract_setting_node
from atelier.config.settings import AnalysisConfig
from atelier.engine.aggregate import AggregateReporter
from atelier.llm.adapter import GenerationAdapter, create_adapter
from atelier.models.analysis import (
    Analysis,
    AnalysisInput,
    AnalyzeRequest,
    AnalyzeResponse,
    InputMetadata,
    UsageSummary,
)
from atelier.state.analysis_state import AnalysisState

logger = logging.getLogger(__name__)

INPUT_SNIPPET_CHARS = 200


def _create_aggregate_report_node(
    reporter: AggregateReporter,
) -> Callable[[AnalysisState], dict[str, Any]]:
    def aggregate_report_node(state: AnalysisState) -> dict[str, Any]:
        report = reporter.generate_report(
            state["consistency_check"], state.get("persona_evaluations", [])
        )
        return {"aggregate_report": report}

    return aggregate_report_node


def build_analysis_graph(
    adapter: GenerationAdapter,
    config: AnalysisConfig | None = None,
) -> StateGraph:
    """构建分析图（未编译）。三个生成阶段共用同一个适配器。"""
    config = config or AnalysisConfig()

    extract_setting = create_extract_setting_node(SettingExtractor(adapter))
    check_consistency = create_check_consistency_node(ConsistencyChecker(adapter, config))
    evaluate_personas = create_evaluate_personas_node(PersonaEvaluator(adapter, config))
    aggregate_report = _create_aggregate_report_node(
        AggregateReporter(max_action_items=config.max_action_items)
    )

    workflow = StateGraph(AnalysisState)

    workflow.add_node("extract_setting", extract_setting)
    workflow.add_node("check_consistency", check_consistency)
    workflow.add_node("evaluate_personas", evaluate_personas)
    workflow.add_node("aggregate_report", aggregate_report)

    workflow.add_edge(START, "extract_setting")
    # 并行分支
    workflow.add_edge("extract_setting", "check_consistency")
    workflow.add_edge("extract_setting", "evaluate_personas")
    # 汇合：两个分支都完成后才执行
    workflow.add_edge(["check_consistency", "evaluate_personas"], "aggregate_report")
    workflow.add_edge("aggregate_report", END)

    return workflow


def compile_analysis_graph(adapter: GenerationAdapter, config: AnalysisConfig | None = None):
    """构建并编译分析图。"""
    return build_analysis_graph(adapter, config).compile()


def generate_analysis_id() -> str:
    return f"analysis_{int(time.time() * 1000)}_{random.randint(0, 36**9):x}"


def analyze(
    request: AnalyzeRequest | dict,
    config: AnalysisConfig | None = None,
    adapter: GenerationAdapter | None = None,
) -> AnalyzeResponse:
    """执行一次完整分析。

    Args:
        request: AnalyzeRequest 或同结构的 dict。
        config: 流水线配置；请求中的 temperature 只作用于本次调用，不修改传入的配置。
        adapter: 可选的现成适配器（测试时注入）；其用量统计会在本次分析开始时清空。
            注入的适配器已绑定模型参数，请求中的 temperature 对它不生效（会记录警告）。

    Returns:
        AnalyzeResponse；请求不合法或流水线出错时 success=False，不抛异常。
    """
    start = time.time()
    config = config or AnalysisConfig()

    try:
        if not isinstance(request, AnalyzeRequest):
            request = AnalyzeRequest.model_validate(request)
    except ValidationError as e:
        logger.error("请求格式不合法: %s", e)
        return AnalyzeResponse(success=False, error=f"Invalid request format: {e}")

    options = request.options
    try:
        if adapter is None:
            model_config = config.model
            if options.temperature is not None:
                model_config = model_config.model_copy(update={"temperature": options.temperature})
            adapter = create_adapter(model_config)
        else:
            if options.temperature is not None:
                logger.warning(
                    "已注入适配器，忽略请求中的 temperature=%s（沿用 %s）",
                    options.temperature,
                    adapter.model_config.temperature,
                )
            adapter.tracker.reset()

        graph = compile_analysis_graph(adapter, config)
        logger.info("开始分析: 正文 %d 字", len(request.text))
        final_state: AnalysisState = graph.invoke({"text": request.text, "options": options})
    except Exception as e:
        logger.exception("分析流水线失败")
        return AnalyzeResponse(success=False, error=str(e) or type(e).__name__)

    tracker = adapter.tracker
    degraded = tracker.failed_operations()
    usage = tracker.total_usage()
    setting = final_state["setting_note"]

    analysis = Analysis(
        id=generate_analysis_id(),
        timestamp=datetime.now(timezone.utc).isoformat(),
        input=AnalysisInput(
            text=request.text[:INPUT_SNIPPET_CHARS] + "...",
            metadata=InputMetadata(title=setting.title, chapter=1),
        ),
        setting_note=setting,
        consistency_check=final_state["consistency_check"],
        persona_evaluations=final_state.get("persona_evaluations", []),
        aggregate_report=final_state["aggregate_report"],
        processing_time_ms=int((time.time() - start) * 1000),
        llm_calls_count=tracker.call_count,
        token_usage=UsageSummary(
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        ),
        status="partial" if degraded else "success",
        degraded_stages=degraded,
    )
    logger.info(
        "分析完成: %s, 结论=%s, 耗时 %dms, 调用 %d 次, 状态=%s",
        analysis.id,
        analysis.aggregate_report.verdict,
        analysis.processing_time_ms,
        analysis.llm_calls_count,
        analysis.status,
    )
    return AnalyzeResponse(success=True, data=analysis)
