"""
Unit tests for the upstream provider backends.

Provider SDK clients are patched out; no network calls are made.
"""

from unittest.mock import Mock, patch

import pytest

from content_engine.sdk.backends import (
    AnthropicBackend,
    OpenAIBackend,
    UpstreamResponse,
    build_backend,
)

MESSAGES = [{"role": "user", "content": "Hello"}]


class TestAnthropicBackend:
    """Test the Claude messages backend."""

    @patch('content_engine.sdk.backends.Anthropic')
    def test_invoke_maps_response(self, mock_anthropic_class):
        text_block = Mock(type="text", text="Hi there")
        other_block = Mock(type="tool_use")
        mock_response = Mock()
        mock_response.content = [text_block, other_block]
        mock_response.usage.input_tokens = 12
        mock_response.usage.output_tokens = 34

        mock_client = Mock()
        mock_client.messages.create.return_value = mock_response
        mock_anthropic_class.return_value = mock_client

        backend = AnthropicBackend()
        result = backend.invoke("claude-3-5-haiku-20241022", "Be brief", MESSAGES, 100, 0.5)

        assert result == UpstreamResponse("Hi there", 12, 34)
        mock_client.messages.create.assert_called_once_with(
            model="claude-3-5-haiku-20241022",
            max_tokens=100,
            temperature=0.5,
            messages=MESSAGES,
            system="Be brief",
        )

    @patch('content_engine.sdk.backends.Anthropic')
    def test_invoke_without_system(self, mock_anthropic_class):
        mock_response = Mock()
        mock_response.content = []
        mock_response.usage.input_tokens = 1
        mock_response.usage.output_tokens = 0
        mock_client = Mock()
        mock_client.messages.create.return_value = mock_response
        mock_anthropic_class.return_value = mock_client

        AnthropicBackend().invoke("m", None, MESSAGES, 10, 0.7)

        assert "system" not in mock_client.messages.create.call_args.kwargs

    @patch('content_engine.sdk.backends.Anthropic')
    def test_errors_propagate(self, mock_anthropic_class):
        mock_client = Mock()
        mock_client.messages.create.side_effect = RuntimeError("overloaded")
        mock_anthropic_class.return_value = mock_client

        with pytest.raises(RuntimeError, match="overloaded"):
            AnthropicBackend().invoke("m", None, MESSAGES, 10, 0.7)


class TestOpenAIBackend:
    """Test the chat completions backend."""

    @patch('content_engine.sdk.backends.OpenAI')
    def test_invoke_prepends_system_message(self, mock_openai_class):
        mock_response = Mock()
        mock_response.choices = [Mock()]
        mock_response.choices[0].message.content = "Hi there"
        mock_response.usage.prompt_tokens = 100
        mock_response.usage.completion_tokens = 50

        mock_client = Mock()
        mock_client.chat.completions.create.return_value = mock_response
        mock_openai_class.return_value = mock_client

        result = OpenAIBackend().invoke("gpt-4o", "Be brief", MESSAGES, 200, 0.3)

        assert result == UpstreamResponse("Hi there", 100, 50)
        mock_client.chat.completions.create.assert_called_once_with(
            model="gpt-4o",
            messages=[{"role": "system", "content": "Be brief"}] + MESSAGES,
            temperature=0.3,
            max_tokens=200,
        )

    @patch('content_engine.sdk.backends.OpenAI')
    def test_missing_usage_raises(self, mock_openai_class):
        mock_response = Mock()
        mock_response.usage = None
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = mock_response
        mock_openai_class.return_value = mock_client

        with pytest.raises(ValueError, match="missing usage"):
            OpenAIBackend().invoke("gpt-4o", None, MESSAGES, 10, 0.7)


class TestBuildBackend:
    """Test provider selection."""

    @patch('content_engine.sdk.backends.Anthropic')
    def test_anthropic(self, mock_anthropic_class):
        assert isinstance(build_backend("anthropic"), AnthropicBackend)

    @patch('content_engine.sdk.backends.OpenAI')
    def test_openai_case_insensitive(self, mock_openai_class):
        backend = build_backend("OpenAI", api_key="sk-test")
        assert isinstance(backend, OpenAIBackend)
        mock_openai_class.assert_called_once_with(api_key="sk-test")

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            build_backend("nope")
