"""测试分析流水线：阶段组合、兜底、状态与结果封装。"""

import argparse
import logging

import pytest

from atelier.agents.checker import CHECKER_SYSTEM_PROMPT
from atelier.agents.setting_extractor import SETTING_SYSTEM_PROMPT
from atelier.config.personas import PERSONA_ORDER
from atelier.config.settings import AnalysisConfig, ModelConfig
from atelier.graph.pipeline import analyze
from atelier.main import cmd_extract_setting
from atelier.models.analysis import (
    MAX_EXCERPT_CHARS,
    MIN_EXCERPT_CHARS,
    AnalyzeOptions,
    AnalyzeRequest,
)
from conftest import (
    SAMPLE_TEXT,
    SETTING_PAYLOAD,
    ScriptedAdapter,
    make_check_payload,
    make_issue,
    make_persona_payload,
    persona_type_of,
)


def make_router(setting=SETTING_PAYLOAD, check=None, failing_personas=(), reaction="positive"):
    check = check or make_check_payload(90, 85, 95)

    def route(prompt, system_prompt):
        if system_prompt == SETTING_SYSTEM_PROMPT:
            return setting
        if system_prompt == CHECKER_SYSTEM_PROMPT:
            return check
        persona_type = persona_type_of(system_prompt)
        if persona_type is None:
            raise AssertionError(f"unexpected system prompt: {system_prompt!r}")
        if persona_type in failing_personas:
            return TimeoutError("persona backend down")
        return make_persona_payload(persona_type, reaction=reaction)

    return route


def test_full_pipeline_success():
    adapter = ScriptedAdapter(make_router())
    response = analyze({"text": SAMPLE_TEXT}, adapter=adapter)

    assert response.success
    analysis = response.data
    assert analysis.status == "success"
    assert analysis.degraded_stages == []
    assert analysis.id.startswith("analysis_")
    assert analysis.input.text == SAMPLE_TEXT[:200] + "..."
    assert analysis.input.metadata.title == "홍길동전"
    assert analysis.input.metadata.chapter == 1

    # 设定经过后处理
    assert [e.timestamp for e in analysis.setting_note.timeline] == ["1장", "2장", "3장"]
    assert analysis.consistency_check.overall_score == 90
    assert [p.persona_type for p in analysis.persona_evaluations] == list(PERSONA_ORDER)

    report = analysis.aggregate_report
    assert report.verdict == "PASS"
    assert report.weighted_scores.total == 90
    # 三个画像都为 positive: 90 + 10
    assert report.confidence_score == 100

    assert analysis.llm_calls_count == 5
    assert analysis.token_usage.total_tokens == 75


def test_checker_and_personas_see_extracted_setting():
    adapter = ScriptedAdapter(make_router())
    analyze(AnalyzeRequest(text=SAMPLE_TEXT), adapter=adapter)

    downstream = [prompt for prompt, system in adapter.calls if system != SETTING_SYSTEM_PROMPT]
    assert len(downstream) == 4
    assert all('"title": "홍길동전"' in prompt for prompt in downstream)


def test_setting_failure_uses_fallback_setting():
    adapter = ScriptedAdapter(make_router(setting={"title": "불완전"}))
    response = analyze({"text": SAMPLE_TEXT}, adapter=adapter)

    assert response.success
    analysis = response.data
    assert analysis.setting_note.title == "홍길동전"
    assert len(analysis.setting_note.characters) == 4
    assert analysis.status == "partial"
    assert analysis.degraded_stages == ["extract_setting"]


def test_consistency_failure_uses_neutral_scores():
    adapter = ScriptedAdapter(make_router(check="not json"))
    analysis = analyze({"text": SAMPLE_TEXT}, adapter=adapter).data

    assert analysis.consistency_check.overall_score == 75
    assert analysis.aggregate_report.verdict == "REVISE"
    assert "check_consistency" in analysis.degraded_stages


def test_partial_persona_failure_reported():
    adapter = ScriptedAdapter(make_router(failing_personas=("romance_sub_focused",)))
    analysis = analyze({"text": SAMPLE_TEXT}, adapter=adapter).data

    assert [p.persona_type for p in analysis.persona_evaluations] == list(PERSONA_ORDER)
    assert analysis.persona_evaluations[1].overall_reaction == "neutral"
    assert analysis.status == "partial"
    assert analysis.degraded_stages == ["persona_romance_sub_focused"]


def test_skip_personas():
    adapter = ScriptedAdapter(make_router())
    response = analyze(
        {"text": SAMPLE_TEXT, "options": {"skip_personas": True}}, adapter=adapter
    )

    analysis = response.data
    assert analysis.persona_evaluations == []
    assert analysis.llm_calls_count == 2
    # 没有画像时不做画像调整
    assert analysis.aggregate_report.confidence_score == 90


def test_skip_setting_note():
    adapter = ScriptedAdapter(make_router())
    response = analyze(
        {"text": SAMPLE_TEXT, "options": AnalyzeOptions(skip_setting_note=True).model_dump()},
        adapter=adapter,
    )

    analysis = response.data
    assert all(system != SETTING_SYSTEM_PROMPT for _, system in adapter.calls)
    assert analysis.setting_note.title == "홍길동전"
    assert analysis.status == "success"


def test_action_items_flow_into_report():
    check = make_check_payload(
        60, 70, 80, issues={"continuity": [make_issue("critical", suggested_fix="시간 순서를 바로잡으세요")]}
    )
    adapter = ScriptedAdapter(make_router(check=check, reaction="negative"))
    report = analyze({"text": SAMPLE_TEXT}, adapter=adapter).data.aggregate_report

    # 60*0.4 + 70*0.35 + 80*0.25 = 68.5 → 69
    assert report.weighted_scores.total == 69
    assert report.verdict == "REVISE"
    assert report.action_items[0].description == "시간 순서를 바로잡으세요"
    # 69 - 10 (无正面画像) - 5 (一个 critical)
    assert report.confidence_score == 54


def test_tracker_is_reset_between_runs():
    adapter = ScriptedAdapter(make_router())
    analyze({"text": SAMPLE_TEXT}, adapter=adapter)
    second = analyze({"text": SAMPLE_TEXT}, adapter=adapter).data
    assert second.llm_calls_count == 5


def test_invalid_request_text_too_short():
    adapter = ScriptedAdapter(make_router())
    response = analyze({"text": "너무 짧음"}, adapter=adapter)

    assert not response.success
    assert response.data is None
    assert "Invalid request" in response.error
    assert adapter.calls == []


def test_invalid_request_temperature_out_of_range():
    response = analyze(
        {"text": SAMPLE_TEXT, "options": {"temperature": 1.5}},
        adapter=ScriptedAdapter(make_router()),
    )
    assert not response.success


def test_adapter_construction_error_is_reported():
    config = AnalysisConfig(model=ModelConfig(provider=""))
    response = analyze({"text": SAMPLE_TEXT}, config=config)

    assert not response.success
    assert response.error


def test_injected_adapter_warns_about_ignored_temperature(caplog):
    adapter = ScriptedAdapter(make_router())
    with caplog.at_level(logging.WARNING, logger="atelier.graph.pipeline"):
        response = analyze(
            {"text": SAMPLE_TEXT, "options": {"temperature": 0.9}}, adapter=adapter
        )

    assert response.success
    assert adapter.model_config.temperature != 0.9
    assert any("temperature=0.9" in r.getMessage() for r in caplog.records)


def test_excerpt_length_bounds():
    AnalyzeRequest(text="가" * MIN_EXCERPT_CHARS)
    AnalyzeRequest(text="가" * MAX_EXCERPT_CHARS)

    for text in ("가" * (MIN_EXCERPT_CHARS - 1), "가" * (MAX_EXCERPT_CHARS + 1)):
        response = analyze({"text": text}, adapter=ScriptedAdapter(make_router()))
        assert not response.success


def test_extract_setting_cli_uses_request_bounds(tmp_path):
    """CLI 与请求校验使用同一套长度上下限，超长正文在创建适配器前就被拒绝。"""
    source = tmp_path / "chapter.txt"
    source.write_text("가" * (MAX_EXCERPT_CHARS + 1), encoding="utf-8")

    with pytest.raises(SystemExit) as exc_info:
        cmd_extract_setting(argparse.Namespace(file=str(source), config=None))
    assert exc_info.value.code == 1
