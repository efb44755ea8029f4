"""全局配置。"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class ModelConfig(BaseModel):
    """LLM 模型配置。"""

    provider: str = Field(
        default="gemini",
        description="模型提供商: 'gemini', 'openai'，其他值交给 langchain 通用接口",
    )
    model_name: str = Field(default="", description="模型名称，为空时使用各提供商的默认模型")
    temperature: float = Field(default=0.3, description="生成温度")
    max_tokens: int = Field(default=8192, description="最大 token 数")
    api_key: str = Field(
        default="",
        description="模型 API key（可选，优先使用环境变量）",
    )

    # ── 重试策略 ──
    max_retries: int = Field(default=3, ge=1, description="单次生成的最大尝试次数")
    base_delay: float = Field(default=1.0, description="退避基数（秒）")
    max_delay: float = Field(default=10.0, description="单次退避上限（秒）")


class AnalysisConfig(BaseModel):
    """检查流水线配置。"""

    model: ModelConfig = Field(default_factory=ModelConfig, description="所有阶段共用的模型")

    # ── 提示词截断长度（字符）──
    consistency_text_chars: int = Field(default=5000, description="综合一致性检查中正文的截断长度")
    consistency_setting_chars: int = Field(default=3000, description="综合一致性检查中设定 JSON 的截断长度")
    focused_text_chars: int = Field(default=3000, description="单维度检查中正文的截断长度")
    focused_setting_chars: int = Field(default=2000, description="单维度检查中设定 JSON 的截断长度")
    persona_text_chars: int = Field(default=4000, description="画像评估中正文的截断长度")
    persona_setting_chars: int = Field(default=2000, description="画像评估中设定 JSON 的截断长度")

    # ── 并发 ──
    persona_workers: int = Field(default=3, ge=1, description="画像评估并发线程数")

    # ── 报告 ──
    max_action_items: int = Field(default=10, description="报告中保留的修改事项上限")


def load_config(path: str | Path | None = None) -> AnalysisConfig:
    """从 YAML 读取配置，并应用环境变量覆盖。

    环境变量: ATELIER_PROVIDER / ATELIER_MODEL / ATELIER_TEMPERATURE
    """
    data: dict = {}
    if path:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    config = AnalysisConfig.model_validate(data)

    model = config.model
    model.provider = os.environ.get("ATELIER_PROVIDER", model.provider)
    model.model_name = os.environ.get("ATELIER_MODEL", model.model_name)
    model.temperature = float(os.environ.get("ATELIER_TEMPERATURE", str(model.temperature)))
    return config
