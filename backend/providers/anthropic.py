"""Anthropic Claude LLM provider implementation.

Claude is the assistant's primary model. Requests go through
langchain-anthropic, which also accepts OpenAI-style ``image_url`` content
blocks, so vision prompts are built the same way for both providers.
"""

from langchain_anthropic import ChatAnthropic

from .base import LLMProvider, ModelConfig


class AnthropicProvider(LLMProvider):
    """Provider for Anthropic Claude models."""

    def get_llm(self, config: ModelConfig) -> ChatAnthropic:
        """Return a ChatAnthropic client configured for Claude.

        Raises:
            ValueError: If api_key is not provided
        """
        if not config.api_key:
            raise ValueError(
                "Anthropic API key is required. "
                "Set it via the ANTHROPIC_API_KEY environment variable."
            )

        return ChatAnthropic(
            model=config.model_id,
            api_key=config.api_key,
            max_tokens=config.max_tokens,
            timeout=config.timeout_seconds,
            max_retries=1,
        )
