"""
FlavorPulse AI Module
=====================

LLM-backed sentiment analysis of extracted reviews.

Modules:
    llm_client         - Judgment service clients (OpenAI, Anthropic)
    sentiment_analyzer - Per-flavor grouping, prompting and response validation
"""

from .llm_client import LLMClient, LLMResponse, LLMProvider, OpenAIClient, AnthropicClient, get_llm_client
from .sentiment_analyzer import (
    FlavorSentimentAnalyzer,
    JudgmentFormatError,
    group_by_flavor,
    parse_judgment,
    rank_by_sentiment,
)
