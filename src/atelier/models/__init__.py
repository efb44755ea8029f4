"""Pydantic 数据模型。"""

from atelier.models.analysis import (
    Analysis,
    AnalysisInput,
    AnalyzeOptions,
    AnalyzeRequest,
    AnalyzeResponse,
    InputMetadata,
    UsageSummary,
)
from atelier.models.consistency import (
    SEVERITY_ORDER,
    ConsistencyCheck,
    DimensionResult,
    Issue,
    IssueLocation,
    severity_rank,
)
from atelier.models.persona import AverageMetrics, PersonaMetrics, PersonaResult
from atelier.models.report import ActionItem, AggregateReport, WeightedScores
from atelier.models.setting import (
    Character,
    Relationship,
    SettingModel,
    TimelineEvent,
    WorldRule,
)

__all__ = [
    "SEVERITY_ORDER",
    "ActionItem",
    "AggregateReport",
    "Analysis",
    "AnalysisInput",
    "AnalyzeOptions",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "AverageMetrics",
    "Character",
    "ConsistencyCheck",
    "DimensionResult",
    "InputMetadata",
    "Issue",
    "IssueLocation",
    "PersonaMetrics",
    "PersonaResult",
    "Relationship",
    "SettingModel",
    "TimelineEvent",
    "UsageSummary",
    "WeightedScores",
    "WorldRule",
    "severity_rank",
]
