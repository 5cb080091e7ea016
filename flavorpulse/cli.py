"""
FlavorPulse CLI
===============

Each command runs one pipeline stage against the well-known artifact
locations under FLAVORPULSE_DATA_DIR.

Commands:
    parse    - Extract reviews from data/amazon-reviews.txt
    analyze  - Score each flavor with the LLM
    sync     - Upload results to PostgreSQL

Usage:
    flavorpulse parse
    flavorpulse analyze
    flavorpulse sync
    python -m flavorpulse.cli analyze --json-logs
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from .config import get_settings
from .logging_config import setup_logging, stage_context
from .reviews import artifacts
from .reviews.review_models import StageResult
from .reviews.review_parser import ReviewSourceError, parse_file, summarize_extraction

logger = logging.getLogger("flavorpulse.cli")


def _banner(title: str):
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def run_parse_stage(settings) -> StageResult:
    """Raw dump -> reviews artifact."""
    paths = settings.paths
    result = StageResult(stage="parse", started_at=datetime.now(timezone.utc))

    reviews = parse_file(paths.raw_reviews_path)
    with artifacts.artifact_lock(paths.reviews_artifact_path):
        artifacts.write_reviews(paths.reviews_artifact_path, reviews)

    result.processed = result.succeeded = len(reviews)
    result.finish()
    summarize_extraction(reviews).log()
    return result


def run_analyze_stage(settings, llm_client=None) -> StageResult:
    """Reviews artifact -> results artifact."""
    from .ai.llm_client import get_llm_client
    from .ai.sentiment_analyzer import FlavorSentimentAnalyzer, log_rankings

    paths, llm = settings.paths, settings.llm
    result = StageResult(stage="analyze", started_at=datetime.now(timezone.utc))

    reviews = artifacts.read_reviews(paths.reviews_artifact_path)
    logger.info(f"Loaded {len(reviews)} reviews.")

    client = llm_client or get_llm_client(llm.provider, llm.model, llm.temperature)
    analyzer = FlavorSentimentAnalyzer(
        client,
        pacing_delay=llm.pacing_delay,
        body_char_budget=llm.body_char_budget,
        product_name=llm.product_name,
    )

    with artifacts.artifact_lock(paths.results_artifact_path):
        results = asyncio.run(analyzer.analyze_all(reviews, stage_result=result))
        artifacts.write_results(paths.results_artifact_path, results)

    result.finish()
    log_rankings(results)
    return result


def run_sync_stage(settings, store=None) -> StageResult:
    """Results artifact -> PostgreSQL."""
    from .store.flavor_store import PostgresFlavorStore
    from .store.synchronizer import ResultSynchronizer

    results = artifacts.read_results(settings.paths.results_artifact_path)

    own_store = store is None
    store = store or PostgresFlavorStore(db_config=settings.database)
    try:
        synchronizer = ResultSynchronizer(store)
        result = synchronizer.sync(results)
        try:
            synchronizer.verify(result)
        except Exception as e:
            logger.warning(f"Verification query failed: {e}")
    finally:
        if own_store:
            store.close()
    return result


STAGES = {
    "parse": run_parse_stage,
    "analyze": run_analyze_stage,
    "sync": run_sync_stage,
}


def run_stage(name: str) -> int:
    """Run one stage; returns the process exit code."""
    with stage_context(name) as run_id:
        _banner(f"FLAVORPULSE {name.upper()} (run_id={run_id})")
        try:
            settings = get_settings()
            result = STAGES[name](settings)
        except (ReviewSourceError, artifacts.ArtifactError, ValueError) as e:
            logger.error(f"Error: {e}")
            return 1
        except Exception:
            logger.exception(f"{name} stage failed")
            return 1

        _banner(
            f"{name} complete: {result.succeeded} succeeded, {result.skipped} skipped, "
            f"{result.failed} failed ({result.duration_seconds or 0:.1f}s)"
        )
        # Per-flavor analysis failures are already defaulted in the artifact
        if name == "sync" and result.has_failures:
            return 1
        return 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="flavorpulse",
        description="Amazon review sentiment pipeline for flavor polls",
    )
    parser.add_argument("stage", choices=sorted(STAGES), help="Pipeline stage to run")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--json-logs", action="store_true", help="JSON-lines log output")
    args = parser.parse_args(argv)

    try:
        log_config = get_settings().logging
        level, json_logs, log_file = log_config.level, log_config.json_logs, log_config.log_file
    except ValueError:
        level, json_logs, log_file = "INFO", False, None

    setup_logging(
        level="DEBUG" if args.verbose else level,
        json_output=args.json_logs or json_logs,
        log_file=log_file,
    )
    return run_stage(args.stage)


if __name__ == "__main__":
    sys.exit(main())
