"""
FlavorPulse Review Extraction
=============================

Modules:
    review_models  - Data models (ReviewRecord, SentimentSummary, NotableReview, ...)
    review_parser  - Line-scanning extractor for copy-pasted Amazon review pages
    artifacts      - JSON artifacts exchanged between stages
"""

from .review_models import (
    ReviewRecord,
    NotableReview,
    SentimentLabel,
    SentimentSummary,
    AnalysisResults,
    FlavorJudgment,
    StageResult,
    UNKNOWN_FLAVOR,
)
from .review_parser import ReviewParser, ReviewSourceError, extract_reviews, parse_file, summarize_extraction
