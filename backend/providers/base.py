"""Base classes and models for LLM providers."""

from abc import ABC, abstractmethod

from langchain_core.language_models.chat_models import BaseChatModel
from pydantic import BaseModel


class ModelConfig(BaseModel):
    """Configuration for one model in the assistant's fallback chain.

    Attributes:
        provider_type: Provider key (e.g., "anthropic", "openai")
        model_id: Model identifier (e.g., "claude-sonnet-4-20250514")
        api_key: API key for the hosted provider
        timeout_seconds: Per-request timeout
        max_tokens: Completion budget per call
    """

    model_config = {"frozen": True}

    provider_type: str
    model_id: str
    api_key: str = ""
    timeout_seconds: float = 60.0
    max_tokens: int = 1024


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Every provider returns a LangChain chat model, so the assistant can
    invoke any of them through the same ``ainvoke`` call and chain them
    with the fallback combinator.
    """

    @abstractmethod
    def get_llm(self, config: ModelConfig) -> BaseChatModel:
        """Return a configured chat model client.

        Args:
            config: Model configuration with provider details

        Returns:
            A configured LangChain chat model
        """
        pass
