"""分析请求与结果封装（对外边界）。"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from atelier.models.consistency import ConsistencyCheck
from atelier.models.persona import PersonaResult
from atelier.models.report import AggregateReport
from atelier.models.setting import SettingModel

AnalysisStatus = Literal["success", "partial", "error"]

# 正文长度上下限，请求校验与 CLI 共用
MIN_EXCERPT_CHARS = 100
MAX_EXCERPT_CHARS = 50000


class AnalyzeOptions(BaseModel):
    """单次分析的可选项。"""

    skip_personas: bool = Field(default=False, description="跳过读者画像评估")
    skip_setting_note: bool = Field(default=False, description="跳过设定抽取，直接使用兜底设定")
    custom_personas: list[str] | None = Field(default=None, description="保留字段，目前忽略")
    temperature: float | None = Field(default=None, ge=0, le=1, description="本次调用的生成温度")


class AnalyzeRequest(BaseModel):
    """分析请求：待检查的正文片段 + 选项。"""

    text: str = Field(
        min_length=MIN_EXCERPT_CHARS,
        max_length=MAX_EXCERPT_CHARS,
        description="待检查的正文",
    )
    options: AnalyzeOptions = Field(default_factory=AnalyzeOptions)


class InputMetadata(BaseModel):
    title: str | None = None
    author: str | None = None
    chapter: int | None = None


class AnalysisInput(BaseModel):
    text: str = Field(description="输入正文摘要（仅保留前 200 字）")
    metadata: InputMetadata = Field(default_factory=InputMetadata)


class UsageSummary(BaseModel):
    """本次分析的 token 消耗汇总。"""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Analysis(BaseModel):
    """一次分析的完整结果，只存在于本次响应中。"""

    id: str
    timestamp: str
    input: AnalysisInput
    setting_note: SettingModel
    consistency_check: ConsistencyCheck
    persona_evaluations: list[PersonaResult] = Field(default_factory=list)
    aggregate_report: AggregateReport
    processing_time_ms: int = 0
    llm_calls_count: int = 0
    token_usage: UsageSummary = Field(default_factory=UsageSummary)
    status: AnalysisStatus = "success"
    degraded_stages: list[str] = Field(
        default_factory=list,
        description="使用了兜底结果的阶段名称",
    )
    error: str | None = None


class AnalyzeResponse(BaseModel):
    """对外响应：成功时携带 Analysis，失败时携带错误信息。"""

    success: bool
    data: Analysis | None = None
    error: str | None = None
