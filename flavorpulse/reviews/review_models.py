"""
Review Pipeline Data Models
===========================

Records exchanged between the three batch stages.
ReviewRecord is the unit of the first artifact; AnalysisResults is the
whole second artifact. The store tables mirror SentimentSummary and
NotableReview (see sql/001_flavor_sentiment.sql).
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


UNKNOWN_FLAVOR = "Unknown"

MIN_RATING = 0.5
MAX_RATING = 5.0

NO_REVIEWS_SUMMARY = "No reviews found for this flavor."
FAILED_ANALYSIS_SUMMARY = "Analysis failed."

MAX_NOTABLE_REVIEWS = 5


def is_valid_rating(value: float) -> bool:
    """True for 0.5 .. 5.0 in half-star steps."""
    return MIN_RATING <= value <= MAX_RATING and (value * 2).is_integer()


def parse_timestamp(value: str) -> datetime:
    """ISO-8601 to datetime; accepts the "Z" suffix JavaScript's toISOString() writes."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class SentimentLabel(str, Enum):
    """Qualitative sentiment judgment for one flavor."""
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"

    @classmethod
    def coerce(cls, value: Any) -> "SentimentLabel":
        """Match a label case-insensitively; anything else is Neutral."""
        if isinstance(value, str):
            wanted = value.strip().lower()
            for label in cls:
                if label.value.lower() == wanted:
                    return label
        return cls.NEUTRAL


@dataclass(frozen=True)
class ReviewRecord:
    """One review recovered from the raw scrape."""
    rating: float
    date: str
    title: str
    flavor: str
    body: str

    @property
    def flavor_key(self) -> str:
        """Grouping key: empty flavor goes to the Unknown bucket."""
        return self.flavor or UNKNOWN_FLAVOR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rating": self.rating,
            "date": self.date,
            "title": self.title,
            "flavor": self.flavor,
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewRecord":
        return cls(
            rating=float(data["rating"]),
            date=data.get("date") or "",
            title=data.get("title") or "",
            flavor=data.get("flavor") or "",
            body=data["body"],
        )


@dataclass(frozen=True)
class NotableReview:
    """A review picked by the judgment service, stamped with its flavor."""
    rating: float
    date: str
    title: str
    flavor: str
    body: str

    @classmethod
    def from_review(cls, review: ReviewRecord, flavor: str) -> "NotableReview":
        return cls(
            rating=review.rating,
            date=review.date,
            title=review.title,
            flavor=flavor,
            body=review.body,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotableReview":
        return cls(
            rating=float(data["rating"]),
            date=data.get("date") or "",
            title=data.get("title") or "",
            flavor=data.get("flavor") or UNKNOWN_FLAVOR,
            body=data.get("body") or "",
        )


@dataclass
class FlavorJudgment:
    """Validated judgment-service response for one flavor group."""
    sentiment_score: float
    sentiment_label: SentimentLabel
    summary: str
    notable_indices: List[int] = field(default_factory=list)


@dataclass
class SentimentSummary:
    """Aggregated sentiment for one flavor."""
    sentiment_score: float
    sentiment_label: SentimentLabel
    summary: str
    avg_rating: float
    review_count: int
    analyzed_at: Optional[datetime] = None

    @classmethod
    def neutral(
        cls,
        avg_rating: float = 0.0,
        review_count: int = 0,
        summary: str = NO_REVIEWS_SUMMARY,
        analyzed_at: Optional[datetime] = None,
    ) -> "SentimentSummary":
        """Fixed neutral default used for empty groups and failed analyses."""
        return cls(
            sentiment_score=0.0,
            sentiment_label=SentimentLabel.NEUTRAL,
            summary=summary,
            avg_rating=avg_rating,
            review_count=review_count,
            analyzed_at=analyzed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentiment_score": self.sentiment_score,
            "sentiment_label": self.sentiment_label.value,
            "summary": self.summary,
            "avg_rating": self.avg_rating,
            "review_count": self.review_count,
            "analyzed_at": self.analyzed_at.isoformat() if self.analyzed_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentimentSummary":
        analyzed_at = data.get("analyzed_at")
        return cls(
            sentiment_score=float(data.get("sentiment_score", 0.0)),
            sentiment_label=SentimentLabel.coerce(data.get("sentiment_label")),
            summary=data.get("summary") or "",
            avg_rating=float(data.get("avg_rating", 0.0)),
            review_count=int(data.get("review_count", 0)),
            analyzed_at=parse_timestamp(analyzed_at) if analyzed_at else None,
        )


@dataclass
class AnalysisResults:
    """Output of one aggregator run (the second intermediate artifact)."""
    sentiments: Dict[str, SentimentSummary]
    notable_reviews: List[NotableReview]
    analyzed_at: datetime

    def notables_for(self, flavor: str) -> List[NotableReview]:
        return [r for r in self.notable_reviews if r.flavor == flavor]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentiments": {name: s.to_dict() for name, s in self.sentiments.items()},
            "notable_reviews": [r.to_dict() for r in self.notable_reviews],
            "analyzed_at": self.analyzed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResults":
        analyzed_at = data.get("analyzed_at")
        return cls(
            sentiments={
                name: SentimentSummary.from_dict(s)
                for name, s in (data.get("sentiments") or {}).items()
            },
            notable_reviews=[NotableReview.from_dict(r) for r in data.get("notable_reviews") or []],
            analyzed_at=(
                parse_timestamp(analyzed_at) if analyzed_at
                else datetime.now(timezone.utc)
            ),
        )


@dataclass
class StageResult:
    """Counters reported at the end of a stage run."""
    stage: str
    started_at: datetime
    completed_at: Optional[datetime] = None

    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0

    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    def add_error(self, item: str, error_type: str, message: str):
        """Record an error against one flavor/item."""
        self.errors.append({
            "item": item,
            "error_type": error_type,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def finish(self):
        self.completed_at = datetime.now(timezone.utc)
