"""
FlavorPulse LLM Client
======================

Abstract client for the judgment service that scores and summarizes
a flavor's reviews. OpenAI (JSON mode) is the default provider, Claude
(Anthropic) the alternative.

Responses are untrusted: callers validate the returned JSON
(see flavorpulse.ai.sentiment_analyzer.parse_judgment).
"""

import os
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class LLMResponseError(ValueError):
    """LLM did not return valid JSON."""
    pass


@dataclass
class LLMResponse:
    """Raw LLM completion."""
    content: str
    model: str
    provider: LLMProvider
    tokens_input: int
    tokens_output: int
    cost_usd: float

    @property
    def total_tokens(self) -> int:
        return self.tokens_input + self.tokens_output


def parse_json_content(content: str) -> Dict[str, Any]:
    """
    Parse a JSON completion, tolerating a surrounding ```json fence.

    Raises:
        LLMResponseError: If the content is not valid JSON
    """
    content = (content or "").strip()
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[4:]
    content = content.strip()

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {e}\nContent: {content[:500]}")
        raise LLMResponseError(f"LLM did not return valid JSON: {e}")


class LLMClient(ABC):
    """Abstract LLM client."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a completion."""
        pass

    async def generate_json(
        self,
        prompt: str,
        system: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate a completion and parse it as a JSON object."""
        response = await self.generate(prompt=prompt, system=system, json_mode=True)
        logger.debug(
            f"{response.provider.value}/{response.model}: "
            f"{response.total_tokens} tokens, ${response.cost_usd:.6f}"
        )
        return parse_json_content(response.content)


class OpenAIClient(LLMClient):
    """
    Client for OpenAI GPT.

    gpt-4o-mini is cheap enough for one call per flavor and supports
    response_format=json_object.
    """

    PRICING = {
        "gpt-4o": {"input": 2.5, "output": 10.0},
        "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model
        self.temperature = temperature
        self._client = None

        if not self.api_key:
            raise ValueError("Missing OPENAI_API_KEY environment variable")

    def _get_client(self):
        if self._client is None:
            import openai
            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = self.PRICING.get(self.model, {"input": 2.5, "output": 10.0})
        cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
        return round(cost, 6)

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        client = self._get_client()

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await client.chat.completions.create(**kwargs)

        content = response.choices[0].message.content
        input_tokens = response.usage.prompt_tokens
        output_tokens = response.usage.completion_tokens

        return LLMResponse(
            content=content,
            model=self.model,
            provider=LLMProvider.OPENAI,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )


class AnthropicClient(LLMClient):
    """
    Client for Claude (Anthropic).

    Claude has no JSON response mode; json_mode appends a
    "JSON only" instruction to the system prompt instead.
    """

    # Pricing per 1M tokens (USD)
    PRICING = {
        "claude-3-5-haiku-20241022": {"input": 0.8, "output": 4.0},
        "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
    }

    JSON_ONLY = (
        "\n\nIMPORTANT: Respond ONLY with valid JSON.\n"
        "No text before or after the JSON. No ```json markers."
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-3-5-haiku-20241022",
        temperature: float = 0.3,
    ):
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.model = model
        self.temperature = temperature
        self._client = None

        if not self.api_key:
            raise ValueError("Missing ANTHROPIC_API_KEY environment variable")

    def _get_client(self):
        """Lazy init of the async Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = self.PRICING.get(self.model, {"input": 3.0, "output": 15.0})
        cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
        return round(cost, 6)

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        client = self._get_client()

        if json_mode:
            system = (system or "") + self.JSON_ONLY

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature if temperature is None else temperature,
        }
        if system:
            kwargs["system"] = system

        response = await client.messages.create(**kwargs)

        content = response.content[0].text
        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        return LLMResponse(
            content=content,
            model=self.model,
            provider=LLMProvider.ANTHROPIC,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )


def get_llm_client(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    temperature: float = 0.3,
) -> LLMClient:
    """
    Factory for an LLM client.

    Priority:
    1. Explicit provider
    2. OPENAI_API_KEY present -> GPT
    3. ANTHROPIC_API_KEY present -> Claude
    4. Error
    """
    if provider == "openai" or (not provider and os.getenv("OPENAI_API_KEY")):
        return OpenAIClient(model=model or "gpt-4o-mini", temperature=temperature)

    if provider == "anthropic" or (not provider and os.getenv("ANTHROPIC_API_KEY")):
        return AnthropicClient(model=model or "claude-3-5-haiku-20241022", temperature=temperature)

    raise ValueError("No LLM API key found. Set OPENAI_API_KEY or ANTHROPIC_API_KEY")
