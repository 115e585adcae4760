"""OpenAI GPT LLM provider implementation.

OpenAI is the secondary model for text prompts and the primary one for
business card extraction.
"""

from langchain_openai import ChatOpenAI

from .base import LLMProvider, ModelConfig


class OpenAIProvider(LLMProvider):
    """Provider for OpenAI GPT models."""

    def get_llm(self, config: ModelConfig) -> ChatOpenAI:
        """Return a ChatOpenAI client configured for OpenAI.

        Raises:
            ValueError: If api_key is not provided
        """
        if not config.api_key:
            raise ValueError(
                "OpenAI API key is required. "
                "Set it via the OPENAI_API_KEY environment variable."
            )

        return ChatOpenAI(
            model=config.model_id,
            api_key=config.api_key,
            max_tokens=config.max_tokens,
            timeout=config.timeout_seconds,
            max_retries=1,
        )
