"""
LangChain-backed LLM client.

Provides plain text completion and streaming over one of several chat
backends, optionally chained to a second backend with ``with_fallbacks``.
Vendor SDK exceptions are translated into domain errors here so the rest of
the application never imports a vendor SDK.
"""

from typing import AsyncIterator, Dict, List, Optional, Tuple

import anthropic
import httpx
import openai
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.output_parsers import StrOutputParser
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from insightdeck.application.ports import LLMServicePort
from insightdeck.domain.exceptions import (
    BackendError,
    BackendRejectedError,
    ConfigurationError,
    InsightDeckError,
    QuotaExceededError,
)
from insightdeck.infra.config.logging_config import get_logger
from insightdeck.infra.config.settings import Settings

SUPPORTED_BACKENDS = ("openai", "anthropic", "deepseek")

_ROLE_MESSAGES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


def build_chat_model(
    backend: str,
    settings: Settings,
    *,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """Create a chat model for ``backend``; a missing credential is fatal."""
    temperature = settings.llm_temperature if temperature is None else temperature
    max_tokens = settings.llm_max_tokens if max_tokens is None else max_tokens
    # Retries belong to the task queue, not the SDK.
    common = {
        "temperature": temperature,
        "max_tokens": max_tokens,
        "timeout": settings.llm_timeout,
        "max_retries": 0,
    }

    if backend == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        return ChatOpenAI(
            model=model or settings.openai_model,
            api_key=settings.openai_api_key,
            **common,
        )

    if backend == "anthropic":
        if not settings.anthropic_api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY is not configured")
        return ChatAnthropic(
            model=model or settings.anthropic_model,
            api_key=settings.anthropic_api_key,
            **common,
        )

    if backend == "deepseek":
        if not settings.deepseek_api_key:
            raise ConfigurationError("DEEPSEEK_API_KEY is not configured")
        # DeepSeek speaks the OpenAI wire protocol.
        return ChatOpenAI(
            model=model or settings.deepseek_model,
            api_key=settings.deepseek_api_key,
            base_url=settings.deepseek_base_url,
            **common,
        )

    raise ConfigurationError(
        f"Unsupported LLM backend '{backend}', expected one of {SUPPORTED_BACKENDS}"
    )


def translate_error(exc: BaseException) -> Optional[InsightDeckError]:
    """Map a vendor SDK exception onto the domain error taxonomy.

    Returns None for exceptions this module does not recognise.
    """
    if isinstance(exc, InsightDeckError):
        return exc

    if isinstance(exc, (openai.RateLimitError, anthropic.RateLimitError)):
        return QuotaExceededError(
            f"Backend quota or rate limit exceeded: {exc}",
            vendor_code=getattr(exc, "code", None),
        )

    if isinstance(
        exc,
        (
            openai.AuthenticationError,
            openai.PermissionDeniedError,
            anthropic.AuthenticationError,
            anthropic.PermissionDeniedError,
        ),
    ):
        return ConfigurationError(f"Backend rejected the configured credentials: {exc}")

    if isinstance(
        exc, (openai.APIConnectionError, anthropic.APIConnectionError, httpx.HTTPError)
    ):
        return BackendError(f"Backend unreachable: {exc}")

    if isinstance(exc, (openai.APIStatusError, anthropic.APIStatusError)):
        if exc.status_code >= 500:
            return BackendError(f"Backend error {exc.status_code}: {exc}")
        return BackendRejectedError(f"Backend rejected request ({exc.status_code}): {exc}")

    return None


class LangChainClient(LLMServicePort):
    """
    Infrastructure-layer LLM client providing text completion and streaming.

    No prompts live here; callers pass fully formed system and user prompts.
    """

    def __init__(self, settings: Settings, backend: Optional[str] = None) -> None:
        self.settings = settings
        self.backend = (backend or settings.llm_backend).lower()
        self.fallback_backend = (
            settings.llm_fallback_backend.lower()
            if settings.llm_fallback_backend
            else None
        )
        self._runnables: Dict[Tuple[Optional[str], float, int], Runnable] = {}
        self._text_parser = StrOutputParser()
        self._log = get_logger("infra.llm")

        # Fail fast on a missing credential or unknown backend.
        self._runnable(None, settings.llm_temperature, settings.llm_max_tokens)

    @property
    def fast_model(self) -> str:
        if self.backend == "openai":
            return self.settings.openai_fast_model
        if self.backend == "anthropic":
            return self.settings.anthropic_model
        return self.settings.deepseek_model

    def _runnable(
        self, model: Optional[str], temperature: float, max_tokens: int
    ) -> Runnable:
        key = (model, temperature, max_tokens)
        runnable = self._runnables.get(key)
        if runnable is None:
            runnable = build_chat_model(
                self.backend,
                self.settings,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
            )
            if self.fallback_backend and self.fallback_backend != self.backend:
                fallback = build_chat_model(
                    self.fallback_backend,
                    self.settings,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
                runnable = runnable.with_fallbacks([fallback])
            self._runnables[key] = runnable
        return runnable

    @staticmethod
    def create_messages(
        user_prompt: str, system_prompt: Optional[str] = None
    ) -> List[BaseMessage]:
        messages: List[BaseMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=user_prompt))
        return messages

    @staticmethod
    def to_messages(messages: List[Dict[str, str]]) -> List[BaseMessage]:
        converted: List[BaseMessage] = []
        for message in messages:
            role = message.get("role", "user")
            message_cls = _ROLE_MESSAGES.get(role)
            if message_cls is None:
                raise ValueError(f"Unsupported message role: {role}")
            converted.append(message_cls(content=message.get("content", "")))
        return converted

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        runnable = self._runnable(
            model,
            self.settings.llm_temperature if temperature is None else temperature,
            self.settings.llm_max_tokens if max_tokens is None else max_tokens,
        )
        messages = self.create_messages(user_prompt, system_prompt)
        try:
            response = await runnable.ainvoke(messages)
        except Exception as exc:
            translated = translate_error(exc)
            self._log.warning(
                "llm.invoke.failed",
                backend=self.backend,
                model=model,
                error=str(exc),
                error_class=type(exc).__name__,
            )
            if translated is None or translated is exc:
                raise
            raise translated from exc

        self._log.info("llm.invoke.text", backend=self.backend, model=model)
        return self._text_parser.invoke(response)

    async def stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """
        Stream text response from LLM (for real-time chat).

        Yields:
            Chunks of text as they arrive from LLM
        """
        chain = (
            self._runnable(
                None, self.settings.llm_temperature, self.settings.llm_max_tokens
            )
            | self._text_parser
        )
        try:
            async for chunk in chain.astream(self.to_messages(messages)):
                if chunk:
                    yield chunk
        except Exception as exc:
            translated = translate_error(exc)
            if translated is None or translated is exc:
                raise
            raise translated from exc
        self._log.info("llm.stream.end", backend=self.backend)
