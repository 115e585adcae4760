"""Tests for the OpenAI GPT provider."""

import os

import pytest
from unittest.mock import patch, MagicMock

from langchain_core.messages import HumanMessage

from providers.openai import OpenAIProvider
from providers.base import ModelConfig


# Environment variable for integration tests
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")


def gpt_config(api_key: str = "sk-test-key", model_id: str = "gpt-4o") -> ModelConfig:
    return ModelConfig(provider_type="openai", model_id=model_id, api_key=api_key)


class TestOpenAIProvider:
    """Test suite for OpenAIProvider."""

    def test_api_key_error_mentions_env_var(self):
        """Error message should mention OPENAI_API_KEY environment variable."""
        with pytest.raises(ValueError) as exc_info:
            OpenAIProvider().get_llm(gpt_config(api_key=""))

        assert "OPENAI_API_KEY" in str(exc_info.value)

    @patch("providers.openai.ChatOpenAI")
    def test_get_llm_returns_chat_openai(self, mock_chat_openai):
        """Should return a ChatOpenAI instance when configured properly."""
        mock_instance = MagicMock()
        mock_chat_openai.return_value = mock_instance

        result = OpenAIProvider().get_llm(gpt_config())

        assert result == mock_instance
        mock_chat_openai.assert_called_once_with(
            model="gpt-4o",
            api_key="sk-test-key",
            max_tokens=1024,
            timeout=60.0,
            max_retries=1,
        )

    @patch("providers.openai.ChatOpenAI")
    def test_vision_model_id(self, mock_chat_openai):
        OpenAIProvider().get_llm(gpt_config(model_id="gpt-4o-mini"))
        assert mock_chat_openai.call_args.kwargs["model"] == "gpt-4o-mini"


@pytest.mark.skipif(
    not OPENAI_API_KEY,
    reason="OPENAI_API_KEY environment variable not set"
)
class TestOpenAIIntegration:
    """Integration tests requiring a real OpenAI API key."""

    @pytest.mark.asyncio
    async def test_reply(self):
        llm = OpenAIProvider().get_llm(gpt_config(api_key=OPENAI_API_KEY, model_id="gpt-4o-mini"))

        reply = await llm.ainvoke([HumanMessage(content="Say 'hello' and nothing else.")])

        assert "hello" in str(reply.content).lower()
