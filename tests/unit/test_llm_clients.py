"""Tests for LLM infrastructure layer."""

from unittest.mock import AsyncMock, Mock

import anthropic
import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_core.runnables.fallbacks import RunnableWithFallbacks

from insightdeck.domain.exceptions import (
    BackendError,
    BackendRejectedError,
    ConfigurationError,
    QuotaExceededError,
)
from insightdeck.infra.config.settings import Settings
from insightdeck.infra.llm import LangChainClient, MockLLMClient, build_llm_client
from insightdeck.infra.llm.langchain_client import translate_error

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


def status_response(url: str, status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", url))


def make_settings(**overrides) -> Settings:
    values = {"LLM_BACKEND": "openai", "OPENAI_API_KEY": "sk-test"}
    values.update(overrides)
    return Settings(**values)


class TestTranslateError:
    def test_openai_quota_keeps_vendor_code(self):
        exc = openai.RateLimitError(
            "quota",
            response=status_response(OPENAI_URL, 429),
            body={"code": "insufficient_quota", "message": "quota"},
        )

        translated = translate_error(exc)

        assert isinstance(translated, QuotaExceededError)
        assert translated.vendor_code == "insufficient_quota"

    def test_anthropic_rate_limit(self):
        exc = anthropic.RateLimitError(
            "slow down", response=status_response(ANTHROPIC_URL, 429), body=None
        )
        assert isinstance(translate_error(exc), QuotaExceededError)

    def test_auth_failure_is_configuration(self):
        exc = openai.AuthenticationError(
            "bad key", response=status_response(OPENAI_URL, 401), body=None
        )
        assert isinstance(translate_error(exc), ConfigurationError)

    def test_connection_error_is_backend(self):
        exc = openai.APIConnectionError(request=httpx.Request("POST", OPENAI_URL))
        translated = translate_error(exc)
        assert isinstance(translated, BackendError)
        assert translated.retryable is True

    def test_server_error_is_retryable_backend(self):
        exc = anthropic.InternalServerError(
            "oops", response=status_response(ANTHROPIC_URL, 500), body=None
        )
        assert translate_error(exc).retryable is True

    def test_bad_request_is_terminal(self):
        exc = openai.BadRequestError(
            "bad", response=status_response(OPENAI_URL, 400), body=None
        )
        translated = translate_error(exc)
        assert isinstance(translated, BackendRejectedError)
        assert translated.retryable is False

    def test_unknown_errors_are_not_translated(self):
        assert translate_error(ValueError("nope")) is None


class TestLangChainClient:
    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            LangChainClient(make_settings(OPENAI_API_KEY=None))

    def test_unknown_backend_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            LangChainClient(make_settings(LLM_BACKEND="replicate"))

    @pytest.mark.parametrize(
        "backend, overrides, expected",
        [
            ("openai", {}, "gpt-4o-mini"),
            ("anthropic", {"ANTHROPIC_API_KEY": "ak"}, "claude-3-5-haiku-latest"),
            ("deepseek", {"DEEPSEEK_API_KEY": "dk"}, "deepseek-chat"),
        ],
    )
    def test_fast_model_per_backend(self, backend, overrides, expected):
        client = LangChainClient(make_settings(LLM_BACKEND=backend, **overrides))
        assert client.fast_model == expected

    def test_fallback_backend_is_chained(self):
        client = LangChainClient(
            make_settings(LLM_FALLBACK_BACKEND="anthropic", ANTHROPIC_API_KEY="ak")
        )
        runnable = client._runnable(None, 0.7, 400)
        assert isinstance(runnable, RunnableWithFallbacks)

    def test_create_messages(self):
        messages = LangChainClient.create_messages("user text", "system text")
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)

    def test_to_messages_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            LangChainClient.to_messages([{"role": "tool", "content": "x"}])

    @pytest.mark.asyncio
    async def test_complete_returns_text(self):
        client = LangChainClient(make_settings())
        runnable = Mock()
        runnable.ainvoke = AsyncMock(return_value=AIMessage(content='{"title": "x"}'))
        client._runnables[("gpt-4o-mini", 0.2, 100)] = runnable

        text = await client.complete(
            "system", "user", model="gpt-4o-mini", temperature=0.2, max_tokens=100
        )

        assert text == '{"title": "x"}'
        sent = runnable.ainvoke.await_args.args[0]
        assert [m.content for m in sent] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_complete_translates_vendor_errors(self):
        client = LangChainClient(make_settings())
        runnable = Mock()
        runnable.ainvoke = AsyncMock(
            side_effect=openai.RateLimitError(
                "quota",
                response=status_response(OPENAI_URL, 429),
                body={"code": "insufficient_quota"},
            )
        )
        client._runnables[(None, 0.7, 400)] = runnable

        with pytest.raises(QuotaExceededError) as exc_info:
            await client.complete("system", "user")

        assert isinstance(exc_info.value.__cause__, openai.RateLimitError)


class TestBuildLLMClient:
    def test_mock_backend(self):
        assert isinstance(build_llm_client(make_settings(LLM_BACKEND="mock")), MockLLMClient)

    def test_openai_backend(self):
        assert isinstance(build_llm_client(make_settings()), LangChainClient)


class TestMockLLMClient:
    @pytest.mark.asyncio
    async def test_stream_echoes_last_message(self):
        client = MockLLMClient()
        chunks = [c async for c in client.stream([{"role": "user", "content": "hi"}])]
        assert "".join(chunks).strip() == "Echo: hi"
