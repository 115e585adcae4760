"""LLM provider implementations."""

from .base import LLMProvider, ModelConfig
from .factory import build_chain, configured_models, get_providers, parse_model_string

__all__ = [
    "LLMProvider",
    "ModelConfig",
    "build_chain",
    "configured_models",
    "get_providers",
    "parse_model_string",
]
