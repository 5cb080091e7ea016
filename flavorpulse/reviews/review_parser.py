"""
Review Text Parser
==================

Recovers discrete reviews from a copy-pasted dump of Amazon review pages.
The dump has no delimiters: each review is found by its
"<rating> out of 5 stars <title>" header, followed by a date line,
a "Flavor Name: ..." line and free-text body lines up to the
helpful-vote / Report markers.

Irregular reviews degrade gracefully (missing date or flavor gives an
empty field); reviews with no body text are dropped.

Usage:
    parser = ReviewParser()
    reviews = parser.parse(text)
    report = summarize_extraction(reviews)
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .review_models import ReviewRecord, is_valid_rating

logger = logging.getLogger(__name__)


HEADER_PATTERN = re.compile(r"^(\d{1,2}(?:\.\d)?) out of 5 stars(?: (.*))?$")
DATE_PATTERN = re.compile(r"Reviewed in the United States on (.+)")
FLAVOR_PATTERN = re.compile(r"Flavor Name:\s*(.+?)(?:Verified Purchase|$)")

HELPFUL_COUNT_PATTERN = re.compile(r"^\d+ people found this helpful$")
TERMINATOR_LINES = frozenset({
    "One person found this helpful",
    "Helpful",
    "Report",
    "Customer image",
})

LINE_SPLIT = re.compile(r"\r?\n")


class ReviewSourceError(Exception):
    """Raw review dump could not be read."""
    pass


class ScanState(Enum):
    """States of the line scanner."""
    SEEKING_HEADER = "seeking_header"
    COLLECTING_BODY = "collecting_body"
    SKIPPING_TERMINATORS = "skipping_terminators"


def match_header(line: str) -> Optional[Tuple[float, str]]:
    """
    Parse a review header line.

    Returns:
        (rating, title) or None when the line is not a header or the
        rating falls outside the half-star 0.5-5.0 range.
    """
    match = HEADER_PATTERN.match(line.strip())
    if not match:
        return None
    rating = float(match.group(1))
    if not is_valid_rating(rating):
        return None
    return rating, (match.group(2) or "").strip()


def is_terminator(line: str) -> bool:
    """Vote-count / Helpful / Report / Customer image marker lines."""
    stripped = line.strip()
    return stripped in TERMINATOR_LINES or bool(HELPFUL_COUNT_PATTERN.match(stripped))


def parse_date(line: str) -> str:
    match = DATE_PATTERN.search(line)
    return match.group(1).strip() if match else ""


def parse_flavor(line: str) -> str:
    match = FLAVOR_PATTERN.search(line)
    return match.group(1).strip() if match else ""


class ReviewParser:
    """
    Line-scanning state machine over the raw dump.

    States:
        SEEKING_HEADER        advance line by line until a header matches
        COLLECTING_BODY       gather body lines until a terminator or next header
        SKIPPING_TERMINATORS  skip marker/blank lines, then seek again

    The terminator that ends a body is not consumed: the next header in
    particular is left for SEEKING_HEADER to pick up.
    """

    def __init__(self):
        self.headers_seen = 0
        self.dropped_empty = 0
        self.missing_date = 0
        self.missing_flavor = 0

    def parse(self, text: str) -> List[ReviewRecord]:
        lines = LINE_SPLIT.split(text)
        reviews: List[ReviewRecord] = []

        state = ScanState.SEEKING_HEADER
        i = 0
        rating, title, date, flavor = 0.0, "", "", ""
        body_lines: List[str] = []

        while i < len(lines):
            if state is ScanState.SEEKING_HEADER:
                header = match_header(lines[i])
                if header is None:
                    i += 1
                    continue

                self.headers_seen += 1
                rating, title = header

                # Fixed two-line preamble: date, then flavor
                date = parse_date(lines[i + 1]) if i + 1 < len(lines) else ""
                flavor = parse_flavor(lines[i + 2]) if i + 2 < len(lines) else ""
                if not date:
                    self.missing_date += 1
                if not flavor:
                    self.missing_flavor += 1

                body_lines = []
                i += 3
                state = ScanState.COLLECTING_BODY

            elif state is ScanState.COLLECTING_BODY:
                line = lines[i]
                if is_terminator(line) or match_header(line) is not None:
                    self._emit(reviews, rating, date, title, flavor, body_lines)
                    state = ScanState.SKIPPING_TERMINATORS
                    continue
                body_lines.append(line)
                i += 1

            else:  # SKIPPING_TERMINATORS
                line = lines[i]
                if is_terminator(line) or not line.strip():
                    i += 1
                    continue
                state = ScanState.SEEKING_HEADER

        # Input ran out while a body was open
        if state is ScanState.COLLECTING_BODY:
            self._emit(reviews, rating, date, title, flavor, body_lines)

        logger.info(
            f"Parsed {len(reviews)} reviews from {len(lines)} lines "
            f"({self.headers_seen} headers, {self.dropped_empty} dropped with empty body)"
        )
        return reviews

    def _emit(
        self,
        reviews: List[ReviewRecord],
        rating: float,
        date: str,
        title: str,
        flavor: str,
        body_lines: List[str],
    ):
        body = "\n".join(body_lines).strip()
        if not body:
            self.dropped_empty += 1
            logger.debug(f"Dropped review '{title}' with empty body")
            return
        reviews.append(ReviewRecord(
            rating=rating,
            date=date,
            title=title,
            flavor=flavor,
            body=body,
        ))


def extract_reviews(text: str) -> List[ReviewRecord]:
    """Extract reviews from raw dump text, in input order."""
    return ReviewParser().parse(text)


def parse_file(path: Union[str, Path]) -> List[ReviewRecord]:
    """
    Read a UTF-8 dump file and extract its reviews.

    Raises:
        ReviewSourceError: If the file is missing or unreadable
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ReviewSourceError(f"Cannot read review dump {path}: {e}") from e
    return extract_reviews(text)


@dataclass
class ExtractionReport:
    """Counts of extracted reviews per flavor and per rating."""
    total: int
    by_flavor: List[Tuple[str, int]] = field(default_factory=list)
    by_rating: List[Tuple[float, int]] = field(default_factory=list)

    def log(self):
        logger.info(f"Extracted {self.total} reviews")
        logger.info("By flavor:")
        for flavor, count in self.by_flavor:
            logger.info(f"  {flavor}: {count}")
        logger.info("By rating:")
        for rating, count in self.by_rating:
            logger.info(f"  {rating} stars: {count}")


def summarize_extraction(reviews: List[ReviewRecord]) -> ExtractionReport:
    """Flavor counts sorted by count desc, rating counts sorted by rating desc."""
    flavor_counts = Counter(r.flavor_key for r in reviews)
    rating_counts = Counter(r.rating for r in reviews)
    return ExtractionReport(
        total=len(reviews),
        by_flavor=sorted(flavor_counts.items(), key=lambda kv: kv[1], reverse=True),
        by_rating=sorted(rating_counts.items(), key=lambda kv: kv[0], reverse=True),
    )
