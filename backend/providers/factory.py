"""Factory functions for creating LLM providers."""

from langchain_core.language_models.chat_models import BaseChatModel

from shared.config import Settings

from .anthropic import AnthropicProvider
from .base import LLMProvider, ModelConfig
from .openai import OpenAIProvider


def get_providers() -> dict[str, LLMProvider]:
    """Get singleton instances of each provider type.

    Returns:
        Dictionary mapping provider type names to provider instances.
        Keys are: "anthropic", "openai"
    """
    return {
        "anthropic": AnthropicProvider(),
        "openai": OpenAIProvider(),
    }


def parse_model_string(model: str) -> tuple[str, str]:
    """Parse 'provider/model_id' into (provider_type, model_id).

    Args:
        model: Model string in format "provider/model_id"
               e.g., "anthropic/claude-sonnet-4-20250514", "openai/gpt-4o"

    Returns:
        Tuple of (provider_type, model_id)

    Raises:
        ValueError: If model string doesn't contain a '/'
    """
    if "/" not in model:
        raise ValueError(
            f"Invalid model string '{model}'. "
            "Expected format: 'provider/model_id' (e.g., 'openai/gpt-4o')"
        )
    provider_type, model_id = model.split("/", 1)
    return provider_type, model_id


def configured_models(settings: Settings, vision: bool = False) -> list[ModelConfig]:
    """Model configs for every provider with an API key, in preference order.

    Text prompts prefer Anthropic then OpenAI. Vision prompts prefer the
    OpenAI vision model then Anthropic.
    """
    anthropic = (
        ModelConfig(
            provider_type="anthropic",
            model_id=settings.anthropic_model,
            api_key=settings.anthropic_api_key,
            timeout_seconds=settings.llm_timeout_seconds,
        )
        if settings.anthropic_api_key
        else None
    )
    openai = (
        ModelConfig(
            provider_type="openai",
            model_id=settings.openai_vision_model if vision else settings.openai_model,
            api_key=settings.openai_api_key,
            timeout_seconds=settings.llm_timeout_seconds,
        )
        if settings.openai_api_key
        else None
    )
    ordered = [openai, anthropic] if vision else [anthropic, openai]
    return [config for config in ordered if config is not None]


def build_chain(configs: list[ModelConfig]) -> list[tuple[str, BaseChatModel]]:
    """Instantiate ``(provider_type, chat model)`` pairs for a fallback chain.

    Raises:
        ValueError: If a config names an unknown provider
    """
    providers = get_providers()
    chain = []
    for config in configs:
        provider = providers.get(config.provider_type)
        if provider is None:
            raise ValueError(f"Unknown provider type '{config.provider_type}'")
        chain.append((config.provider_type, provider.get_llm(config)))
    return chain
