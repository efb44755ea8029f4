"""Agent 实现。"""

from atelier.agents.checker import (
    ConsistencyChecker,
    create_check_consistency_node,
    filter_issues_by_severity,
)
from atelier.agents.personas import (
    PersonaEvaluator,
    calculate_average_metrics,
    create_evaluate_personas_node,
)
from atelier.agents.setting_extractor import (
    SettingExtractionError,
    SettingExtractor,
    create_extract_setting_node,
    enhance_setting_model,
)

__all__ = [
    "ConsistencyChecker",
    "PersonaEvaluator",
    "SettingExtractionError",
    "SettingExtractor",
    "calculate_average_metrics",
    "create_check_consistency_node",
    "create_evaluate_personas_node",
    "create_extract_setting_node",
    "enhance_setting_model",
    "filter_issues_by_severity",
]
