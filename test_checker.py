"""测试一致性检查 Agent。"""

import pytest

from atelier.agents.checker import ConsistencyChecker, filter_issues_by_severity
from atelier.models.consistency import Issue
from conftest import SAMPLE_TEXT, ScriptedAdapter, make_check_payload, make_issue


def test_overall_score_is_recomputed(sample_setting):
    """模型给出的 overall_score 不被采信，按 0.40/0.35/0.25 重算。"""
    payload = make_check_payload(90, 85, 95, overall_score=12)
    checker = ConsistencyChecker(ScriptedAdapter(lambda p, s: payload))

    check = checker.check_consistency(SAMPLE_TEXT, sample_setting)

    assert check.overall_score == 90


def test_missing_overall_score_is_accepted(sample_setting):
    payload = make_check_payload(50, 55, 60)
    check = ConsistencyChecker(ScriptedAdapter(lambda p, s: payload)).check_consistency(
        SAMPLE_TEXT, sample_setting
    )
    assert check.overall_score == 54


def test_check_consistency_fallback(sample_setting):
    """重试耗尽时三维均 75 分、无问题。"""
    adapter = ScriptedAdapter(lambda p, s: ConnectionError("down"))
    check = ConsistencyChecker(adapter).check_consistency(SAMPLE_TEXT, sample_setting)

    assert check.continuity.score == 75
    assert check.character.score == 75
    assert check.world_rules.score == 75
    assert check.overall_score == 75
    assert check.all_issues() == []
    assert adapter.tracker.failed_operations() == ["check_consistency"]


def test_prompt_truncation(sample_setting):
    """正文截取前 5000 字。"""
    adapter = ScriptedAdapter(lambda p, s: make_check_payload())
    long_text = "가" * 6000 + "끝"
    ConsistencyChecker(adapter).check_consistency(long_text, sample_setting)

    prompt, _ = adapter.calls[0]
    assert "가" * 5000 in prompt
    assert "가" * 5001 not in prompt
    assert "끝" not in prompt


@pytest.mark.parametrize(
    "method", ["check_continuity", "check_character_consistency", "check_world_rules"]
)
def test_focused_checks_fallback(sample_setting, method):
    """单维度检查失败时返回 85 分。"""
    checker = ConsistencyChecker(ScriptedAdapter(lambda p, s: "{}"))
    result = getattr(checker, method)(SAMPLE_TEXT, sample_setting)
    assert result.score == 85
    assert result.issues == []


def test_focused_check_success(sample_setting):
    payload = {"score": 64, "issues": [make_issue("medium", "character")]}
    checker = ConsistencyChecker(ScriptedAdapter(lambda p, s: payload))
    result = checker.check_character_consistency(SAMPLE_TEXT, sample_setting)
    assert result.score == 64
    assert result.issues[0].severity == "medium"


def _issues(*severities):
    return [Issue.model_validate(make_issue(s)) for s in severities]


def test_filter_issues_by_severity():
    issues = _issues("low", "critical", "medium", "high")

    assert [i.severity for i in filter_issues_by_severity(issues, "high")] == ["critical", "high"]
    assert [i.severity for i in filter_issues_by_severity(issues, "low")] == [
        "low",
        "critical",
        "medium",
        "high",
    ]
    assert [i.severity for i in filter_issues_by_severity(issues, "critical")] == ["critical"]


def test_filter_issues_is_idempotent():
    issues = _issues("low", "critical", "medium", "high", "high")
    once = filter_issues_by_severity(issues, "medium")
    assert filter_issues_by_severity(once, "medium") == once


def test_filter_issues_unknown_severity():
    with pytest.raises(ValueError):
        filter_issues_by_severity(_issues("low"), "urgent")
