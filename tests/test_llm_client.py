"""
Tests for the LLM client layer (provider SDKs mocked, no network).
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import anthropic
import openai
import pytest

from flavorpulse.ai.llm_client import (
    AnthropicClient,
    LLMResponseError,
    OpenAIClient,
    get_llm_client,
    parse_json_content,
)


class TestParseJsonContent:

    def test_plain_json(self):
        assert parse_json_content('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert parse_json_content('```json\n{"a": 1}\n```') == {"a": 1}

    def test_bare_fence(self):
        assert parse_json_content('```\n{"a": 1}\n```') == {"a": 1}

    def test_invalid(self):
        with pytest.raises(LLMResponseError):
            parse_json_content("Sure! Here is the JSON you asked for")

    def test_empty(self):
        with pytest.raises(LLMResponseError):
            parse_json_content("")


class TestOpenAIClient:

    def setup_method(self):
        self.client = OpenAIClient(api_key="sk-test")
        self.sdk = MagicMock()
        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content='{"sentiment_score": 0.4}'))]
        response.usage.prompt_tokens = 1000
        response.usage.completion_tokens = 100
        self.sdk.chat.completions.create = AsyncMock(return_value=response)
        self.client._client = self.sdk

    def test_generate_json_uses_json_mode(self):
        payload = asyncio.run(self.client.generate_json("prompt", system="sys"))

        assert payload == {"sentiment_score": 0.4}
        kwargs = self.sdk.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}

    def test_cost(self):
        response = asyncio.run(self.client.generate("prompt"))
        assert response.total_tokens == 1100
        assert response.cost_usd == round((1000 * 0.15 + 100 * 0.6) / 1_000_000, 6)

    def test_sdk_client_is_async(self):
        assert isinstance(OpenAIClient(api_key="sk-test")._get_client(), openai.AsyncOpenAI)

    def test_requires_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError):
            OpenAIClient()


class TestAnthropicClient:

    def test_json_mode_adds_instruction(self):
        client = AnthropicClient(api_key="sk-ant-test")
        sdk = MagicMock()
        response = MagicMock()
        response.content = [MagicMock(text='{"ok": true}')]
        response.usage.input_tokens = 10
        response.usage.output_tokens = 5
        sdk.messages.create = AsyncMock(return_value=response)
        client._client = sdk

        assert asyncio.run(client.generate_json("prompt", system="sys")) == {"ok": True}
        system = sdk.messages.create.call_args.kwargs["system"]
        assert system.startswith("sys")
        assert "ONLY with valid JSON" in system

    def test_sdk_client_is_async(self):
        assert isinstance(AnthropicClient(api_key="sk-ant-test")._get_client(), anthropic.AsyncAnthropic)


class TestFactory:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    def test_openai_preferred(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert isinstance(get_llm_client(), OpenAIClient)

    def test_anthropic_when_only_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert isinstance(get_llm_client(), AnthropicClient)

    def test_explicit_provider(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        client = get_llm_client("anthropic", model="claude-sonnet-4-20250514")
        assert isinstance(client, AnthropicClient)
        assert client.model == "claude-sonnet-4-20250514"

    def test_no_keys(self):
        with pytest.raises(ValueError):
            get_llm_client()
