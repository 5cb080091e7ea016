"""
FlavorPulse Logging
===================

Console (and optional rotating file) logging for the batch stages.

Every record emitted while a stage runs carries the stage name and a
per-run id, so the JSON lines of one `flavorpulse analyze` run can be
pulled out of a shared log file:

    {"ts": "...", "level": "INFO", "logger": "flavorpulse.ai.sentiment_analyzer",
     "msg": "...", "run_id": "3f1c...", "stage": "analyze", "flavor": "Lime"}

Usage:
    setup_logging(json_output=True)
    with stage_context("analyze") as run_id:
        ...
"""

import json
import logging
import logging.handlers
import os
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional


TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)-36s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SDK/HTTP loggers that are chatty at INFO
QUIET_LOGGERS = ("urllib3", "httpx", "httpcore", "openai", "anthropic")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, plus the pipeline's context fields."""

    CONTEXT_FIELDS = ("run_id", "stage", "flavor", "duration", "score")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in self.CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class StageContextFilter(logging.Filter):
    """Stamps `stage` and `run_id` on records that do not set them already."""

    def __init__(self, stage: str, run_id: str):
        super().__init__()
        self.stage = stage
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "stage", None) is None:
            record.stage = self.stage
        if getattr(record, "run_id", None) is None:
            record.run_id = self.run_id
        return True


@contextmanager
def stage_context(stage: str, run_id: Optional[str] = None) -> Iterator[str]:
    """
    Tag every record handled by the root handlers with the stage and a run id.

    The filter sits on the handlers, not the root logger, so records
    propagated from `flavorpulse.*` loggers are stamped too.

    Yields:
        The run id (a fresh uuid4 unless one is given)
    """
    run_id = run_id or str(uuid.uuid4())
    context = StageContextFilter(stage, run_id)
    handlers: List[logging.Handler] = list(logging.getLogger().handlers)
    for handler in handlers:
        handler.addFilter(context)
    try:
        yield run_id
    finally:
        for handler in handlers:
            handler.removeFilter(context)


def _formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
):
    """
    Replace the root handlers with a stdout handler and, when `log_file`
    is given, a size-rotated file handler sharing the same format.
    """
    formatter = _formatter(json_output)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
        ))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug("Logging configured: level=%s json=%s file=%s", level, json_output, log_file or "none")
