"""
Shared test doubles: a scripted LLM client and an in-memory flavor store.
No network, no database.
"""

import json
from typing import Dict, List, Optional

import pytest

from flavorpulse.ai.llm_client import LLMClient, LLMProvider, LLMResponse
from flavorpulse.store.flavor_store import DatabaseError, FlavorStore, comment_row


class StubLLMClient(LLMClient):
    """
    Answers from a per-flavor script.

    responses maps flavor name -> dict (sent back as JSON), str (sent
    back verbatim) or Exception (raised).
    """

    def __init__(self, responses: Dict[str, object], default: Optional[object] = None):
        self.responses = responses
        self.default = default
        self.prompts: List[str] = []

    def _lookup(self, prompt: str):
        for flavor, response in self.responses.items():
            if f'about "{flavor}"' in prompt:
                return response
        return self.default

    async def generate(self, prompt, system=None, max_tokens=1024, temperature=None, json_mode=False):
        self.prompts.append(prompt)
        response = self._lookup(prompt)
        if isinstance(response, Exception):
            raise response
        content = response if isinstance(response, str) else json.dumps(response)
        return LLMResponse(
            content=content,
            model="stub",
            provider=LLMProvider.OPENAI,
            tokens_input=len(prompt),
            tokens_output=len(content),
            cost_usd=0.0,
        )

    @property
    def calls(self) -> int:
        return len(self.prompts)


class InMemoryFlavorStore(FlavorStore):
    """FlavorStore over plain dicts, with optional injected failures."""

    def __init__(self, flavors: Dict[str, int], fail_upsert_for: Optional[set] = None):
        self.flavors = flavors
        self.fail_upsert_for = fail_upsert_for or set()
        self.sentiment_rows: Dict[int, dict] = {}
        self.comment_rows: List[tuple] = []
        self.writes = 0

    def get_flavor_id(self, name):
        return self.flavors.get(name)

    def upsert_sentiment(self, flavor_id, summary, updated_at):
        if flavor_id in self.fail_upsert_for:
            raise DatabaseError(f"upsert failed for {flavor_id}")
        self.writes += 1
        self.sentiment_rows[flavor_id] = {
            "sentiment_score": summary.sentiment_score,
            "sentiment_label": summary.sentiment_label.value,
            "summary": summary.summary,
            "comment_count": summary.review_count,
            "avg_rating": summary.avg_rating,
            "last_updated": updated_at,
        }

    def replace_comments(self, flavor_id, reviews):
        self.writes += 1
        self.comment_rows = [row for row in self.comment_rows if row[0] != flavor_id]
        rows = [comment_row(flavor_id, r) for r in reviews]
        self.comment_rows.extend(rows)
        return len(rows)

    def count_rows(self):
        return {
            "flavor_sentiment": len(self.sentiment_rows),
            "flavor_comments": len(self.comment_rows),
        }

    def close(self):
        pass


@pytest.fixture
def stub_llm():
    """Factory for StubLLMClient."""
    return StubLLMClient


@pytest.fixture
def memory_store():
    """Factory for InMemoryFlavorStore."""
    return InMemoryFlavorStore
