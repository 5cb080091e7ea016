"""
FlavorPulse Sentiment Analyzer
==============================

Groups extracted reviews by flavor and asks the LLM, one flavor at a
time, for:
- a sentiment score (-1.0 .. 1.0) and label (Positive / Neutral / Negative)
- a short, casual summary of what the flavor tastes like
- up to 5 notable reviews (by index into the group)

A failed or malformed answer for one flavor falls back to a neutral
summary; the remaining flavors are still analyzed.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .llm_client import LLMClient
from ..reviews.review_models import (
    AnalysisResults,
    FAILED_ANALYSIS_SUMMARY,
    FlavorJudgment,
    MAX_NOTABLE_REVIEWS,
    NotableReview,
    ReviewRecord,
    SentimentLabel,
    SentimentSummary,
    StageResult,
)

logger = logging.getLogger(__name__)


DEFAULT_BODY_CHAR_BUDGET = 500


class JudgmentFormatError(ValueError):
    """LLM answer is not a JSON object."""
    pass


SENTIMENT_SYSTEM = """You summarize Amazon reviews of sparkling water flavors for a casual office taste poll.
You always answer with a single JSON object and nothing else."""


SENTIMENT_PROMPT = """Analyze these Amazon reviews about "{flavor}" {product_name}.

REVIEWS:
{reviews_text}

Respond with a JSON object containing:
{{
  "sentiment_score": <number from -1.0 (very negative) to 1.0 (very positive)>,
  "sentiment_label": <"Positive" | "Neutral" | "Negative">,
  "summary": <1-2 short, casual sentences about what reviewers say it tastes like. Use their own words and comparisons where possible. Keep it blunt and conversational, no marketing speak or flowery language. Think Reddit comment, not product description.>,
  "notable_indices": <array of review indices [0-{last_index}] that are particularly interesting, funny, or helpful - pick up to {max_notable}>
}}

Focus on what reviewers say the flavor TASTES like: specific comparisons, creative descriptions, and honest reactions.
Pull out the most vivid and memorable taste descriptions. Ignore comments about shipping, packaging, or the brand in general.
If reviews are mixed, mention both sides (e.g. "some love it, others say it tastes like X").
For notable_indices, look for reviews that are entertaining, insightful, or particularly well-written."""


def group_by_flavor(
    reviews: Iterable[ReviewRecord],
    flavors: Optional[Iterable[str]] = None,
) -> Dict[str, List[ReviewRecord]]:
    """
    Partition reviews by flavor key (empty flavor -> "Unknown").

    Groups keep first-seen order. Names in `flavors` that have no
    reviews still get an (empty) group.
    """
    groups: Dict[str, List[ReviewRecord]] = {}
    for review in reviews:
        groups.setdefault(review.flavor_key, []).append(review)
    for flavor in flavors or []:
        groups.setdefault(flavor, [])
    return groups


def average_rating(reviews: List[ReviewRecord]) -> float:
    """Mean star rating rounded to 2 decimals (0.0 for no reviews)."""
    if not reviews:
        return 0.0
    return round(sum(r.rating for r in reviews) / len(reviews), 2)


def format_reviews(reviews: List[ReviewRecord], body_char_budget: int = DEFAULT_BODY_CHAR_BUDGET) -> str:
    """Render reviews for the prompt; bodies are cut to body_char_budget chars."""
    return "\n\n".join(
        f'[{i}] ({r.rating:g}/5 stars) "{r.title}" - {r.body[:body_char_budget]}'
        for i, r in enumerate(reviews)
    )


def build_prompt(
    flavor: str,
    reviews: List[ReviewRecord],
    product_name: str = "Waterloo sparkling water",
    body_char_budget: int = DEFAULT_BODY_CHAR_BUDGET,
) -> str:
    return SENTIMENT_PROMPT.format(
        flavor=flavor,
        product_name=product_name,
        reviews_text=format_reviews(reviews, body_char_budget),
        last_index=len(reviews) - 1,
        max_notable=MAX_NOTABLE_REVIEWS,
    )


def _coerce_score(value: Any) -> float:
    # bool is an int subclass; treat it as garbage
    if isinstance(value, bool):
        return 0.0
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return max(-1.0, min(1.0, score))


def filter_notable_indices(raw: Any, group_size: int) -> List[int]:
    """
    Keep integer indices inside [0, group_size), in order, without repeats.

    Integral floats (2.0) count as integers. Out-of-range or non-integer
    entries are dropped silently; at most MAX_NOTABLE_REVIEWS survive.
    """
    if not isinstance(raw, list):
        return []
    kept: List[int] = []
    for idx in raw:
        if isinstance(idx, bool):
            continue
        if isinstance(idx, float) and idx.is_integer():
            idx = int(idx)
        if not isinstance(idx, int):
            continue
        if 0 <= idx < group_size and idx not in kept:
            kept.append(idx)
    return kept[:MAX_NOTABLE_REVIEWS]


def parse_judgment(payload: Any, group_size: int) -> FlavorJudgment:
    """
    Validate a raw LLM answer into a FlavorJudgment.

    Score is clamped to [-1, 1], unknown labels become Neutral and
    notable indices are filtered to the group's range.

    Raises:
        JudgmentFormatError: If the payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise JudgmentFormatError(f"Expected a JSON object, got {type(payload).__name__}")

    summary = payload.get("summary")
    return FlavorJudgment(
        sentiment_score=_coerce_score(payload.get("sentiment_score")),
        sentiment_label=SentimentLabel.coerce(payload.get("sentiment_label")),
        summary=summary.strip() if isinstance(summary, str) else "",
        notable_indices=filter_notable_indices(payload.get("notable_indices"), group_size),
    )


class FlavorSentimentAnalyzer:
    """
    Per-flavor sentiment analysis over the extracted reviews.

    Calls are issued one flavor at a time with a pacing delay after each
    call, to stay under the provider's rate limits.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        pacing_delay: float = 0.5,
        body_char_budget: int = DEFAULT_BODY_CHAR_BUDGET,
        product_name: str = "Waterloo sparkling water",
    ):
        self.llm_client = llm_client
        self.pacing_delay = pacing_delay
        self.body_char_budget = body_char_budget
        self.product_name = product_name

    async def judge_flavor(self, flavor: str, reviews: List[ReviewRecord]) -> FlavorJudgment:
        """
        Ask the LLM about one non-empty flavor group.

        Raises whatever the client raises; analyze_flavor handles fallback.
        """
        prompt = build_prompt(flavor, reviews, self.product_name, self.body_char_budget)
        payload = await self.llm_client.generate_json(prompt=prompt, system=SENTIMENT_SYSTEM)
        return parse_judgment(payload, len(reviews))

    async def analyze_flavor(
        self,
        flavor: str,
        reviews: List[ReviewRecord],
        analyzed_at: Optional[datetime] = None,
    ) -> Tuple[SentimentSummary, List[NotableReview]]:
        """
        Analyze one flavor group.

        Empty groups get the neutral default without an LLM call.
        """
        analyzed_at = analyzed_at or datetime.now(timezone.utc)
        avg = average_rating(reviews)

        if not reviews:
            return SentimentSummary.neutral(analyzed_at=analyzed_at), []

        judgment = await self.judge_flavor(flavor, reviews)

        summary = SentimentSummary(
            sentiment_score=judgment.sentiment_score,
            sentiment_label=judgment.sentiment_label,
            summary=judgment.summary,
            avg_rating=avg,
            review_count=len(reviews),
            analyzed_at=analyzed_at,
        )
        notables = [NotableReview.from_review(reviews[i], flavor) for i in judgment.notable_indices]
        return summary, notables

    async def analyze_all(
        self,
        reviews: List[ReviewRecord],
        flavors: Optional[Iterable[str]] = None,
        stage_result: Optional[StageResult] = None,
    ) -> AnalysisResults:
        """
        Analyze every flavor group, sequentially.

        Args:
            reviews: All extracted reviews
            flavors: Extra flavor names to report even without reviews
            stage_result: Optional counters to fill in

        Returns:
            AnalysisResults covering every group
        """
        analyzed_at = datetime.now(timezone.utc)
        groups = group_by_flavor(reviews, flavors)

        sentiments: Dict[str, SentimentSummary] = {}
        notable_reviews: List[NotableReview] = []

        for flavor, group in groups.items():
            logger.info(f'Analyzing "{flavor}" ({len(group)} reviews)...', extra={"flavor": flavor})
            if stage_result is not None:
                stage_result.processed += 1

            if not group:
                sentiments[flavor] = SentimentSummary.neutral(analyzed_at=analyzed_at)
                if stage_result is not None:
                    stage_result.skipped += 1
                continue

            try:
                summary, notables = await self.analyze_flavor(flavor, group, analyzed_at)
            except Exception as e:
                logger.error(f"  Error analyzing {flavor}: {e}", extra={"flavor": flavor})
                sentiments[flavor] = SentimentSummary.neutral(
                    avg_rating=average_rating(group),
                    review_count=len(group),
                    summary=FAILED_ANALYSIS_SUMMARY,
                    analyzed_at=analyzed_at,
                )
                if stage_result is not None:
                    stage_result.failed += 1
                    stage_result.add_error(flavor, type(e).__name__, str(e))
            else:
                sentiments[flavor] = summary
                notable_reviews.extend(notables)
                if stage_result is not None:
                    stage_result.succeeded += 1
                logger.info(
                    f"  Score: {summary.sentiment_score:.2f} ({summary.sentiment_label.value}), "
                    f"Avg rating: {summary.avg_rating:.1f}/5, {len(notables)} notable",
                    extra={"flavor": flavor, "score": summary.sentiment_score},
                )

            if self.pacing_delay > 0:
                await asyncio.sleep(self.pacing_delay)

        return AnalysisResults(
            sentiments=sentiments,
            notable_reviews=notable_reviews,
            analyzed_at=analyzed_at,
        )


def rank_by_sentiment(results: AnalysisResults) -> List[Tuple[str, SentimentSummary]]:
    """Flavors sorted by sentiment score, best first."""
    return sorted(
        results.sentiments.items(),
        key=lambda item: item[1].sentiment_score,
        reverse=True,
    )


def log_rankings(results: AnalysisResults):
    """Log the sentiment leaderboard with a bar per flavor."""
    logger.info("Rankings by sentiment:")
    for rank, (flavor, s) in enumerate(rank_by_sentiment(results), 1):
        bar = "#" * round((s.sentiment_score + 1) * 5)
        logger.info(
            f"{rank}. {flavor}: {s.sentiment_score:.2f} {bar} "
            f"({s.avg_rating}/5 stars, {s.review_count} reviews)"
        )
    logger.info(f"Notable reviews found: {len(results.notable_reviews)}")
