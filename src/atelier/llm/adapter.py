"""结构化生成适配器。

所有后端共用同一套流程：拼接提示词（含结构约定）→ 调用 → 去代码块 → 解析 JSON
→ 按结构约定校验 → 失败则退避重试。重试耗尽后返回 success=False，不向外抛异常。

后端差异只在 _send() 里：如何组织消息、如何构造底层 ChatModel。
"""

from __future__ import annotations

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.runnables import Runnable
from pydantic import TypeAdapter, ValidationError

from atelier.config.settings import ModelConfig
from atelier.llm.usage import CallRecord, TokenUsage, UsageTracker
from atelier.llm.utils import RetryPolicy, extract_json, extract_response_text, retry_with_backoff
from atelier.prompts import format_prompt

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_JSON_SYSTEM_PROMPT = "You are a helpful assistant that always responds with valid JSON."


class GenerationError(Exception):
    """模型输出无法解析或不符合结构约定。只在重试循环内部使用。"""


@dataclass
class GenerationResult(Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    usage: TokenUsage | None = None


def as_type_adapter(contract: Any) -> TypeAdapter:
    """结构约定可以是 pydantic 模型类、类型表达式（如 list[Character]）或现成的 TypeAdapter。"""
    return contract if isinstance(contract, TypeAdapter) else TypeAdapter(contract)


def describe_contract(contract: Any) -> str:
    """将结构约定转为 JSON Schema 文本，嵌入提示词。"""
    schema = as_type_adapter(contract).json_schema()
    return json.dumps(schema, ensure_ascii=False, indent=2)


def normalize_usage(response: BaseMessage) -> TokenUsage | None:
    """把不同后端的 token 用量统一为 prompt/completion/total 三项。"""
    meta = getattr(response, "usage_metadata", None)
    if meta:
        return TokenUsage(
            prompt_tokens=meta.get("input_tokens", 0) or 0,
            completion_tokens=meta.get("output_tokens", 0) or 0,
            total_tokens=meta.get("total_tokens", 0) or 0,
        )

    response_metadata = getattr(response, "response_metadata", None) or {}

    # Gemini 原生字段
    gemini = response_metadata.get("usage_metadata")
    if gemini:
        return TokenUsage(
            prompt_tokens=gemini.get("prompt_token_count", 0) or 0,
            completion_tokens=gemini.get("candidates_token_count", 0) or 0,
            total_tokens=gemini.get("total_token_count", 0) or 0,
        )

    # OpenAI 原生字段
    openai_usage = response_metadata.get("token_usage") or response_metadata.get("usage")
    if openai_usage:
        return TokenUsage(
            prompt_tokens=openai_usage.get("prompt_tokens", 0) or 0,
            completion_tokens=openai_usage.get("completion_tokens", 0) or 0,
            total_tokens=openai_usage.get("total_tokens", 0) or 0,
        )
    return None


class GenerationAdapter(ABC):
    """结构化生成的公共基类：重试、清洗、校验、统计。"""

    provider: str = "base"

    def __init__(
        self,
        model_config: ModelConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        tracker: UsageTracker | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.model_config = model_config or ModelConfig(provider=self.provider)
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.model_config.max_retries,
            base_delay=self.model_config.base_delay,
            max_delay=self.model_config.max_delay,
        )
        self.tracker = tracker or UsageTracker()
        self._sleep = sleep

    @property
    def model_name(self) -> str:
        return self.model_config.model_name or self.provider

    @abstractmethod
    def _send(
        self, prompt: str, contract_text: str, system_prompt: str | None
    ) -> tuple[str, TokenUsage | None]:
        """调用后端，返回原始文本与用量。失败时直接抛异常。"""

    def generate_structured(
        self,
        prompt: str,
        contract: Any,
        system_prompt: str | None = None,
        operation_name: str = "generate",
    ) -> GenerationResult:
        """生成并校验结构化数据。

        Args:
            prompt: 调用方的指令。
            contract: 期望的结构（字段、枚举、数值范围）。
            system_prompt: 可选系统提示词。
            operation_name: 用于日志与统计的操作名。

        Returns:
            GenerationResult；重试耗尽时 success=False，不抛异常。
        """
        type_adapter = as_type_adapter(contract)
        contract_text = describe_contract(type_adapter)
        attempts = 0

        def attempt() -> tuple[Any, TokenUsage | None]:
            nonlocal attempts
            attempts += 1
            raw, usage = self._send(prompt, contract_text, system_prompt)
            try:
                payload = extract_json(raw)
            except ValueError as e:
                raise GenerationError(f"模型输出不是合法 JSON: {e}") from e
            try:
                data = type_adapter.validate_python(payload)
            except ValidationError as e:
                raise GenerationError(
                    f"模型输出不符合结构约定（{e.error_count()} 处错误）: {e.errors()[0]['msg']}"
                ) from e
            return data, usage

        start = time.time()
        try:
            data, usage = retry_with_backoff(
                attempt, self.retry_policy, operation_name=operation_name, sleep=self._sleep
            )
        except Exception as e:
            error = str(e) or type(e).__name__
            self.tracker.record(
                CallRecord(
                    operation=operation_name,
                    model_name=self.model_name,
                    success=False,
                    attempts=attempts,
                    error=error,
                    duration_ms=(time.time() - start) * 1000,
                )
            )
            return GenerationResult(success=False, error=error)

        self.tracker.record(
            CallRecord(
                operation=operation_name,
                model_name=self.model_name,
                success=True,
                attempts=attempts,
                usage=usage,
                duration_ms=(time.time() - start) * 1000,
            )
        )
        logger.debug("%s 生成成功（%d 次尝试）", operation_name, attempts)
        return GenerationResult(success=True, data=data, usage=usage)


class ChatModelAdapter(GenerationAdapter):
    """基于 LangChain ChatModel 的通用适配器：系统消息 + 用户消息（附结构约定）。"""

    provider = "langchain"

    def __init__(self, model: BaseChatModel | Runnable, **kwargs: Any):
        super().__init__(**kwargs)
        self.model = model

    def build_messages(
        self, prompt: str, contract_text: str, system_prompt: str | None
    ) -> list[BaseMessage]:
        contract_instruction = format_prompt("contract_instruction", schema=contract_text)
        return [
            SystemMessage(content=system_prompt or DEFAULT_JSON_SYSTEM_PROMPT),
            HumanMessage(content=f"{prompt}\n\n{contract_instruction}"),
        ]

    def _send(
        self, prompt: str, contract_text: str, system_prompt: str | None
    ) -> tuple[str, TokenUsage | None]:
        messages = self.build_messages(prompt, contract_text, system_prompt)
        response = self.model.invoke(messages)
        return extract_response_text(response), normalize_usage(response)


class GeminiAdapter(ChatModelAdapter):
    """Google Gemini：系统提示词、指令、结构约定合并为一条提示词，要求 JSON mime 输出。"""

    provider = "gemini"
    default_model = "gemini-1.5-flash"

    def __init__(self, model: BaseChatModel | None = None, **kwargs: Any):
        model_config = kwargs.get("model_config") or ModelConfig(provider=self.provider)
        kwargs["model_config"] = model_config
        if model is None:
            model = self._init_model(model_config)
        super().__init__(model, **kwargs)

    def _init_model(self, model_config: ModelConfig) -> BaseChatModel:
        from langchain_google_genai import ChatGoogleGenerativeAI

        kwargs: dict = {
            "model": model_config.model_name or self.default_model,
            "temperature": model_config.temperature,
            "max_output_tokens": model_config.max_tokens,
            "top_k": 40,
            "top_p": 0.95,
            "response_mime_type": "application/json",
        }
        api_key = model_config.api_key or os.environ.get("GEMINI_API_KEY", "")
        if api_key:
            kwargs["google_api_key"] = api_key
        return ChatGoogleGenerativeAI(**kwargs)

    def build_messages(
        self, prompt: str, contract_text: str, system_prompt: str | None
    ) -> list[BaseMessage]:
        contract_instruction = format_prompt("contract_instruction", schema=contract_text)
        head = f"{system_prompt}\n\n" if system_prompt else ""
        return [HumanMessage(content=f"{head}{prompt}\n\n{contract_instruction}")]


class OpenAIAdapter(ChatModelAdapter):
    """OpenAI：独立系统消息，开启 json_object 响应格式。"""

    provider = "openai"
    default_model = "gpt-4-turbo-preview"

    def __init__(self, model: BaseChatModel | Runnable | None = None, **kwargs: Any):
        model_config = kwargs.get("model_config") or ModelConfig(provider=self.provider)
        kwargs["model_config"] = model_config
        if model is None:
            model = self._init_model(model_config)
        super().__init__(model, **kwargs)

    def _init_model(self, model_config: ModelConfig) -> Runnable:
        from langchain_openai import ChatOpenAI

        kwargs: dict = {
            "model": model_config.model_name or self.default_model,
            "temperature": model_config.temperature,
            "max_tokens": min(model_config.max_tokens, 4096),
        }
        if model_config.api_key:
            kwargs["api_key"] = model_config.api_key
        return ChatOpenAI(**kwargs).bind(response_format={"type": "json_object"})


ADAPTERS: dict[str, type[ChatModelAdapter]] = {
    "gemini": GeminiAdapter,
    "google": GeminiAdapter,
    "openai": OpenAIAdapter,
}


def create_adapter(
    model_config: ModelConfig,
    retry_policy: RetryPolicy | None = None,
    tracker: UsageTracker | None = None,
) -> GenerationAdapter:
    """按 provider 创建适配器；未登记的 provider 走 langchain 通用接口。"""
    provider = model_config.provider.lower().strip()
    if not provider:
        raise ValueError("未指定模型提供商 (provider)")

    adapter_cls = ADAPTERS.get(provider)
    if adapter_cls is not None:
        return adapter_cls(model_config=model_config, retry_policy=retry_policy, tracker=tracker)

    if not model_config.model_name:
        raise ValueError(f"提供商 {provider} 没有默认模型，请设置 model_name")

    from langchain.chat_models import init_chat_model

    model = init_chat_model(
        f"{provider}:{model_config.model_name}",
        temperature=model_config.temperature,
        max_tokens=model_config.max_tokens,
    )
    return ChatModelAdapter(
        model, model_config=model_config, retry_policy=retry_policy, tracker=tracker
    )
