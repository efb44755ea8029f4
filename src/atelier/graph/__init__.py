"""LangGraph 分析流水线。"""

from atelier.graph.pipeline import (
    analyze,
    build_analysis_graph,
    compile_analysis_graph,
    generate_analysis_id,
)

__all__ = [
    "analyze",
    "build_analysis_graph",
    "compile_analysis_graph",
    "generate_analysis_id",
]
