"""
Flavor Store
============

Persistence for synchronized sentiment results.

Tables (see sql/001_flavor_sentiment.sql):
    flavors           reference table, looked up by exact name
    flavor_sentiment  one row per flavor, upserted on flavor_id
    flavor_comments   notable reviews, replaced wholesale per flavor
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional

from psycopg2 import pool
from psycopg2.extras import execute_values

from ..reviews.review_models import NotableReview, SentimentSummary

logger = logging.getLogger(__name__)


MAX_COMMENT_CHARS = 2000


class DatabaseError(Exception):
    """Database operation error."""
    pass


class FlavorStore(ABC):
    """Store operations needed by the synchronizer."""

    @abstractmethod
    def get_flavor_id(self, name: str) -> Optional[int]:
        """Exact-name lookup; None when the flavor is unknown."""
        pass

    @abstractmethod
    def upsert_sentiment(self, flavor_id: int, summary: SentimentSummary, updated_at: datetime):
        """Insert or replace the flavor's sentiment row."""
        pass

    @abstractmethod
    def replace_comments(self, flavor_id: int, reviews: List[NotableReview]) -> int:
        """Delete the flavor's comments, then insert `reviews`. Returns rows inserted."""
        pass

    @abstractmethod
    def count_rows(self) -> Dict[str, int]:
        """Row counts of the sentiment and comment tables."""
        pass


def comment_row(flavor_id: int, review: NotableReview) -> tuple:
    """Column values of one flavor_comments row."""
    return (
        flavor_id,
        review.body[:MAX_COMMENT_CHARS],
        review.title,
        review.rating,
        review.date,
        True,
    )


class PostgresFlavorStore(FlavorStore):
    """
    FlavorStore backed by PostgreSQL (psycopg2).

    Each public method runs in its own connection and commits on its
    own; replace_comments therefore exposes the empty state between
    the delete and the insert to concurrent readers.
    """

    def __init__(self, db_pool: Optional[pool.ThreadedConnectionPool] = None, db_config=None):
        """
        Args:
            db_pool: Existing connection pool (creates one from settings if None)
            db_config: DatabaseConfig used when creating the pool
        """
        self._db_pool = db_pool
        self._own_pool = db_pool is None
        self._db_config = db_config

    @property
    def db_pool(self) -> pool.ThreadedConnectionPool:
        """Lazy-initialize database connection pool."""
        if self._db_pool is None:
            if self._db_config is None:
                from ..config import get_settings
                self._db_config = get_settings().database
            self._db_pool = pool.ThreadedConnectionPool(
                minconn=self._db_config.pool_min_size,
                maxconn=self._db_config.pool_max_size,
                **self._db_config.connection_dict
            )
            logger.info(
                f"DB pool created: {self._db_config.host}:{self._db_config.port}/{self._db_config.name}"
            )
        return self._db_pool

    @contextmanager
    def get_db_connection(self):
        """
        Get a database connection from the pool.

        Commits on success, rolls back and raises DatabaseError on failure.
        """
        conn = None
        try:
            conn = self.db_pool.getconn()
            yield conn
            conn.commit()
        except Exception as e:
            if conn:
                conn.rollback()
            raise DatabaseError(f"Database operation failed: {e}") from e
        finally:
            if conn:
                self.db_pool.putconn(conn)

    def close(self):
        """Clean up resources."""
        if self._own_pool and self._db_pool is not None:
            self._db_pool.closeall()
            self._db_pool = None
            logger.info("Database connection pool closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def get_flavor_id(self, name: str) -> Optional[int]:
        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT id FROM flavors WHERE name = %s LIMIT 1", (name,))
                row = cur.fetchone()
        return row[0] if row else None

    def upsert_sentiment(self, flavor_id: int, summary: SentimentSummary, updated_at: datetime):
        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO flavor_sentiment (
                        flavor_id, sentiment_score, sentiment_label, summary,
                        comment_count, avg_rating, last_updated
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (flavor_id) DO UPDATE SET
                        sentiment_score = EXCLUDED.sentiment_score,
                        sentiment_label = EXCLUDED.sentiment_label,
                        summary = EXCLUDED.summary,
                        comment_count = EXCLUDED.comment_count,
                        avg_rating = EXCLUDED.avg_rating,
                        last_updated = EXCLUDED.last_updated
                """, (
                    flavor_id,
                    summary.sentiment_score,
                    summary.sentiment_label.value,
                    summary.summary,
                    summary.review_count,
                    summary.avg_rating,
                    updated_at,
                ))

    def replace_comments(self, flavor_id: int, reviews: List[NotableReview]) -> int:
        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM flavor_comments WHERE flavor_id = %s", (flavor_id,))

        rows = [comment_row(flavor_id, r) for r in reviews]
        if not rows:
            return 0

        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                execute_values(
                    cur,
                    """
                    INSERT INTO flavor_comments (
                        flavor_id, comment_text, review_title,
                        rating, review_date, is_notable
                    ) VALUES %s
                    """,
                    rows,
                )
        return len(rows)

    def count_rows(self) -> Dict[str, int]:
        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM flavor_sentiment")
                sentiment_count = cur.fetchone()[0]
                cur.execute("SELECT COUNT(*) FROM flavor_comments")
                comment_count = cur.fetchone()[0]
        return {
            "flavor_sentiment": sentiment_count,
            "flavor_comments": comment_count,
        }
