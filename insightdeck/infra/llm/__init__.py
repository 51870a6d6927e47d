"""
LLM client implementations and the factory that picks one from settings.
"""

from insightdeck.application.ports import LLMServicePort
from insightdeck.infra.config.settings import Settings
from insightdeck.infra.llm.langchain_client import LangChainClient, translate_error
from insightdeck.infra.llm.mock_client import MockLLMClient


def build_llm_client(settings: Settings) -> LLMServicePort:
    """Return the configured client; ``LLM_BACKEND=mock`` selects the canned one."""
    if settings.llm_backend.lower() == "mock":
        return MockLLMClient()
    return LangChainClient(settings)


__all__ = ["LangChainClient", "MockLLMClient", "build_llm_client", "translate_error"]
