"""状态定义。"""

from atelier.state.analysis_state import AnalysisState

__all__ = ["AnalysisState"]
