"""综合报告：把一致性检查与读者画像结果汇总成结论、置信度与修改事项。

纯本地计算，不调用模型。相同输入总是得到相同报告。
"""

from __future__ import annotations

import logging

from atelier.engine.scoring import (
    determine_verdict,
    filter_by_rank,
    round_half_up,
    weighted_total,
)
from atelier.models.consistency import ConsistencyCheck, Issue, Severity, severity_rank
from atelier.models.persona import PersonaResult
from atelier.models.report import (
    ActionItem,
    ActionType,
    AggregateReport,
    Effort,
    Verdict,
    WeightedScores,
)

logger = logging.getLogger(__name__)

MAX_ACTION_ITEMS = 10
LOW_SATISFACTION_THRESHOLD = 60
PERSONA_SUGGESTIONS_PER_ITEM = 2

CONFIDENCE_PERSONA_BONUS = 10
CONFIDENCE_PER_CRITICAL_ISSUE = 5

ACTIONABLE_SEVERITIES: frozenset[str] = frozenset({"critical", "high"})

ISSUE_ACTION_TYPE: dict[str, ActionType] = {
    "critical": "fix_required",
    "high": "fix_required",
    "medium": "improvement",
    "low": "consideration",
}

ISSUE_EFFORT: dict[str, Effort] = {
    "critical": "significant",
    "high": "moderate",
    "medium": "moderate",
    "low": "minimal",
}

VERDICT_TEXT: dict[str, str] = {
    "PASS": "출간 가능",
    "REVISE": "수정 필요",
    "BLOCK": "대폭 수정 필요",
}

VERDICT_CLOSING: dict[str, str] = {
    "PASS": "작품이 전반적으로 양호한 상태입니다. minor한 수정 후 출간 가능합니다.",
    "REVISE": "몇 가지 중요한 이슈가 발견되었습니다. 수정 후 재검토가 필요합니다.",
    "BLOCK": "심각한 문제점들이 발견되었습니다. 대폭적인 수정이 필요합니다.",
}


def compute_weighted_scores(check: ConsistencyCheck) -> WeightedScores:
    """各维度先取整，再用取整后的分数做加权。"""
    continuity = round_half_up(check.continuity.score)
    character = round_half_up(check.character.score)
    world_rules = round_half_up(check.world_rules.score)
    return WeightedScores(
        continuity=continuity,
        character=character,
        world_rules=world_rules,
        total=weighted_total(continuity, character, world_rules),
    )


def issue_to_action_item(issue: Issue) -> ActionItem:
    return ActionItem(
        priority=issue.severity,
        type=ISSUE_ACTION_TYPE[issue.severity],
        description=issue.suggested_fix or issue.description,
        affected_area=issue.type,
        estimated_effort=ISSUE_EFFORT[issue.severity],
    )


def build_action_items(
    check: ConsistencyCheck,
    personas: list[PersonaResult],
    limit: int = MAX_ACTION_ITEMS,
) -> list[ActionItem]:
    """critical/high 问题 + 低满意度画像的前两条建议，按优先级稳定排序后截取前 limit 条。"""
    items = [
        issue_to_action_item(issue)
        for issue in check.all_issues()
        if issue.severity in ACTIONABLE_SEVERITIES
    ]

    for persona in personas:
        if persona.metrics.satisfaction >= LOW_SATISFACTION_THRESHOLD:
            continue
        for suggestion in persona.suggestions[:PERSONA_SUGGESTIONS_PER_ITEM]:
            items.append(
                ActionItem(
                    priority="high",
                    type="improvement",
                    description=f"[{persona.persona_name}] {suggestion}",
                    affected_area="reader_satisfaction",
                    estimated_effort="moderate",
                )
            )

    # sorted() 是稳定排序，同一优先级内保持插入顺序
    items = sorted(items, key=lambda item: severity_rank(item.priority))
    return items[:limit]


def compute_confidence(check: ConsistencyCheck, personas: list[PersonaResult]) -> int:
    """置信度：以 overall_score 为基准，先按画像反应调整，再按 critical 问题数扣分。

    每一步调整后立即限制在 [0, 100]，因此封顶后的扣分从 100 开始算。
    没有画像结果时（跳过了画像评估）不做画像调整。
    """
    confidence = float(check.overall_score)

    if personas:
        positive = sum(1 for p in personas if p.is_positive)
        if positive == len(personas):
            confidence = min(100.0, confidence + CONFIDENCE_PERSONA_BONUS)
        elif positive == 0:
            confidence = max(0.0, confidence - CONFIDENCE_PERSONA_BONUS)

    critical = sum(1 for issue in check.all_issues() if issue.severity == "critical")
    confidence = max(0.0, confidence - critical * CONFIDENCE_PER_CRITICAL_ISSUE)

    return round_half_up(min(100.0, confidence))


def _satisfaction_line(personas: list[PersonaResult]) -> str:
    if not personas:
        return "독자 만족도: 평가 생략"
    average = round_half_up(sum(p.metrics.satisfaction for p in personas) / len(personas))
    return f"독자 만족도: 평균 {average}/100"


def _lowest_satisfaction_persona(personas: list[PersonaResult]) -> PersonaResult | None:
    # 并列时取先出现的
    lowest: PersonaResult | None = None
    for persona in personas:
        if lowest is None or persona.metrics.satisfaction < lowest.metrics.satisfaction:
            lowest = persona
    return lowest


def build_executive_summary(
    verdict: Verdict,
    scores: WeightedScores,
    check: ConsistencyCheck,
    personas: list[PersonaResult],
) -> str:
    return (
        f"검수 결과: {VERDICT_TEXT[verdict]} (종합 점수: {scores.total}/100)\n"
        "\n"
        "주요 평가 지표:\n"
        f"- 개연성: {scores.continuity}/100\n"
        f"- 캐릭터 일관성: {scores.character}/100\n"
        f"- 세계관 규칙: {scores.world_rules}/100\n"
        "\n"
        f"발견된 이슈: 총 {len(check.all_issues())}개\n"
        f"{_satisfaction_line(personas)}\n"
        "\n"
        f"{VERDICT_CLOSING[verdict]}"
    )


def build_recommendation(
    verdict: Verdict,
    action_items: list[ActionItem],
    personas: list[PersonaResult],
) -> str:
    """按结论选择建议模板。没有画像结果时省略与画像相关的条目。"""
    critical_count = sum(1 for item in action_items if item.priority == "critical")
    high_count = sum(1 for item in action_items if item.priority == "high")
    lowest = _lowest_satisfaction_persona(personas)

    if verdict == "PASS":
        lines = [
            "출간 준비를 진행하셔도 좋습니다.",
            f"{high_count}개의 개선사항을 검토해보세요." if high_count else "세부 퇴고를 진행하세요.",
        ]
        if lowest is not None:
            lines.append(f"{lowest.persona_name} 독자층을 위한 추가 개선을 고려해보세요.")
        header = "추천 사항:"
    elif verdict == "REVISE":
        lines = [
            f"긴급: {critical_count}개의 심각한 이슈를 먼저 해결하세요." if critical_count else "",
            f"{high_count}개의 중요 이슈를 수정하세요.",
        ]
        if lowest is not None:
            lines.append(f"{lowest.persona_name}의 피드백을 중점적으로 반영하세요.")
        lines.append("수정 완료 후 재검수를 요청하세요.")
        header = "필수 수정 사항:"
    else:
        lines = [
            "작품의 기본 구조부터 재검토가 필요합니다.",
            f"{critical_count}개의 심각한 문제를 우선 해결하세요.",
            "전체적인 플롯과 캐릭터 설정을 다시 점검하세요.",
            "필요시 전문 편집자의 도움을 받는 것을 권장합니다.",
        ]
        header = "긴급 조치 필요:"

    numbered = [f"{i}. {line}".rstrip() for i, line in enumerate(lines, start=1)]
    return "\n".join([header, *numbered])


def filter_action_items_by_priority(
    items: list[ActionItem], min_priority: Severity
) -> list[ActionItem]:
    """保留优先级不低于 min_priority 的事项。"""
    return filter_by_rank(items, "priority", min_priority)


class AggregateReporter:
    """汇总一致性检查与画像评估，生成最终报告。"""

    def __init__(self, max_action_items: int = MAX_ACTION_ITEMS):
        self.max_action_items = max_action_items

    def generate_report(
        self, check: ConsistencyCheck, personas: list[PersonaResult]
    ) -> AggregateReport:
        scores = compute_weighted_scores(check)
        verdict = determine_verdict(scores.total)
        action_items = build_action_items(check, personas, self.max_action_items)
        confidence = compute_confidence(check, personas)

        report = AggregateReport(
            verdict=verdict,
            confidence_score=confidence,
            weighted_scores=scores,
            action_items=action_items,
            executive_summary=build_executive_summary(verdict, scores, check, personas),
            recommendation=build_recommendation(verdict, action_items, personas),
        )
        logger.info(
            "综合报告: 结论=%s, 总分=%d, 置信度=%d, 修改事项=%d条",
            verdict,
            scores.total,
            confidence,
            len(action_items),
        )
        return report

    def filter_action_items_by_priority(
        self, items: list[ActionItem], min_priority: Severity
    ) -> list[ActionItem]:
        return filter_action_items_by_priority(items, min_priority)
