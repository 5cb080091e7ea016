"""
Result Synchronizer
===================

Pushes an AnalysisResults artifact into the flavor store.

Per flavor:
    1. resolve flavor_id by exact name (miss -> skip the flavor, no writes)
    2. upsert the sentiment row
    3. replace the flavor's notable comments (delete, then insert)

A failure on one flavor is logged and counted; the others still sync.
Rerunning with the same artifact leaves the same rows behind.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from .flavor_store import FlavorStore
from ..reviews.review_models import AnalysisResults, StageResult

logger = logging.getLogger(__name__)


@dataclass
class SyncResult(StageResult):
    """Sync counters plus the read-back verification counts."""
    comments_written: int = 0
    row_counts: Dict[str, int] = field(default_factory=dict)


class ResultSynchronizer:
    """Idempotent upsert of per-flavor sentiment and notable comments."""

    def __init__(self, store: FlavorStore):
        self.store = store

    def sync(self, results: AnalysisResults, synced_at: Optional[datetime] = None) -> SyncResult:
        synced_at = synced_at or datetime.now(timezone.utc)
        result = SyncResult(stage="sync", started_at=synced_at)

        for flavor, summary in results.sentiments.items():
            result.processed += 1

            try:
                flavor_id = self.store.get_flavor_id(flavor)
            except Exception as e:
                logger.error(f"  x {flavor}: lookup failed: {e}", extra={"flavor": flavor})
                result.failed += 1
                result.add_error(flavor, type(e).__name__, str(e))
                continue

            if flavor_id is None:
                logger.warning(f'  Could not find flavor "{flavor}", skipping', extra={"flavor": flavor})
                result.skipped += 1
                continue

            notables = results.notables_for(flavor)
            try:
                self.store.upsert_sentiment(flavor_id, summary, synced_at)
                written = self.store.replace_comments(flavor_id, notables)
            except Exception as e:
                logger.error(f"  x {flavor}: {e}", extra={"flavor": flavor})
                result.failed += 1
                result.add_error(flavor, type(e).__name__, str(e))
                continue

            result.succeeded += 1
            result.comments_written += written
            logger.info(
                f"  + {flavor}: {summary.sentiment_label.value} ({written} notable reviews)",
                extra={"flavor": flavor},
            )

        result.finish()
        logger.info(
            f"Sync complete: {result.succeeded} synced, {result.skipped} skipped, "
            f"{result.failed} failed",
            extra={"stage": "sync", "duration": result.duration_seconds},
        )
        return result

    def verify(self, result: Optional[SyncResult] = None) -> Dict[str, int]:
        """Read back table row counts for a sanity check."""
        counts = self.store.count_rows()
        logger.info("Verification:")
        logger.info(f"  Sentiment records: {counts.get('flavor_sentiment', 0)}")
        logger.info(f"  Notable reviews: {counts.get('flavor_comments', 0)}")
        if result is not None:
            result.row_counts = counts
        return counts
