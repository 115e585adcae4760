"""Tests for the Anthropic Claude provider."""

import os

import pytest
from unittest.mock import patch, MagicMock

from langchain_core.messages import HumanMessage
from pydantic import ValidationError

from providers.anthropic import AnthropicProvider
from providers.base import ModelConfig


# Environment variable for integration tests
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")


def claude_config(api_key: str = "sk-ant-test-key", **overrides) -> ModelConfig:
    return ModelConfig(
        provider_type="anthropic",
        model_id=overrides.pop("model_id", "claude-sonnet-4-20250514"),
        api_key=api_key,
        **overrides,
    )


class TestAnthropicProvider:
    """Test suite for AnthropicProvider."""

    def test_api_key_required(self):
        """Should raise ValueError if no API key provided."""
        provider = AnthropicProvider()

        with pytest.raises(ValueError, match="Anthropic API key is required"):
            provider.get_llm(claude_config(api_key=""))

    @patch("providers.anthropic.ChatAnthropic")
    def test_get_llm_returns_chat_anthropic(self, mock_chat_anthropic):
        """Should return a ChatAnthropic instance when configured properly."""
        mock_instance = MagicMock()
        mock_chat_anthropic.return_value = mock_instance

        result = AnthropicProvider().get_llm(claude_config())

        assert result == mock_instance
        mock_chat_anthropic.assert_called_once_with(
            model="claude-sonnet-4-20250514",
            api_key="sk-ant-test-key",
            max_tokens=1024,
            timeout=60.0,
            max_retries=1,
        )

    @patch("providers.anthropic.ChatAnthropic")
    def test_timeout_and_budget_passed_through(self, mock_chat_anthropic):
        AnthropicProvider().get_llm(claude_config(timeout_seconds=15, max_tokens=300))

        kwargs = mock_chat_anthropic.call_args.kwargs
        assert kwargs["timeout"] == 15
        assert kwargs["max_tokens"] == 300

    @patch("providers.anthropic.ChatAnthropic")
    def test_different_models(self, mock_chat_anthropic):
        """Should correctly pass different model IDs."""
        mock_chat_anthropic.return_value = MagicMock()
        provider = AnthropicProvider()

        for model_id in ["claude-sonnet-4-20250514", "claude-3-5-haiku-20241022"]:
            provider.get_llm(claude_config(model_id=model_id))
            assert mock_chat_anthropic.call_args.kwargs["model"] == model_id


class TestModelConfig:
    def test_defaults(self):
        config = ModelConfig(provider_type="anthropic", model_id="claude-sonnet-4-20250514")
        assert config.api_key == ""
        assert config.timeout_seconds == 60.0
        assert config.max_tokens == 1024

    def test_frozen(self):
        config = claude_config()
        with pytest.raises(ValidationError):
            config.model_id = "other"


@pytest.mark.skipif(
    not ANTHROPIC_API_KEY,
    reason="ANTHROPIC_API_KEY environment variable not set"
)
class TestAnthropicIntegration:
    """Integration tests requiring a real Anthropic API key.

    These tests are skipped by default. To run them:
        ANTHROPIC_API_KEY=sk-ant-... pytest backend/tests/providers/test_anthropic.py -v
    """

    @pytest.mark.asyncio
    async def test_reply(self):
        """A short prompt gets a text reply."""
        llm = AnthropicProvider().get_llm(
            claude_config(api_key=ANTHROPIC_API_KEY, model_id="claude-3-5-haiku-20241022")
        )

        reply = await llm.ainvoke([HumanMessage(content="Say 'hello' and nothing else.")])

        assert "hello" in str(reply.content).lower()
