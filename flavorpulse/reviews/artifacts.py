"""
Intermediate Artifacts
======================

JSON files passed between stages:
    amazon-reviews.json      list of {rating, date, title, flavor, body}
    sentiment-results.json   {sentiments, notable_reviews, analyzed_at}

Each artifact is written once per run, wholesale (temp file + rename),
while holding a sibling ".lock" file. Only one writer per artifact is
expected at a time; a second writer fails fast instead of waiting.
"""

import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, List, Union

from .review_models import AnalysisResults, ReviewRecord

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ArtifactError(Exception):
    """Intermediate artifact could not be read or written."""
    pass


class ArtifactNotFoundError(ArtifactError):
    """Required input artifact does not exist (run the previous stage first)."""
    pass


class ArtifactLockError(ArtifactError):
    """Another run holds the artifact's writer lock."""
    pass


@contextmanager
def artifact_lock(path: PathLike):
    """
    Hold an exclusive writer lock on an artifact.

    The lock is a "<artifact>.lock" file created with O_EXCL; it is
    removed on exit. A stale lock left by a killed run must be removed
    by hand.
    """
    lock_path = Path(f"{path}.lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        raise ArtifactLockError(
            f"{lock_path} exists: another run is writing {Path(path).name}"
        )
    try:
        os.write(fd, str(os.getpid()).encode("ascii"))
        os.close(fd)
        yield lock_path
    finally:
        try:
            lock_path.unlink()
        except FileNotFoundError:
            pass


def _write_json(path: PathLike, payload: Any):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_path, path)
    except OSError as e:
        raise ArtifactError(f"Failed to write {path}: {e}") from e
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def _read_json(path: PathLike) -> Any:
    path = Path(path)
    if not path.exists():
        raise ArtifactNotFoundError(f"{path} not found")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ArtifactError(f"Failed to read {path}: {e}") from e


def write_reviews(path: PathLike, reviews: List[ReviewRecord]):
    _write_json(path, [r.to_dict() for r in reviews])
    logger.info(f"Wrote {len(reviews)} reviews to {path}")


def read_reviews(path: PathLike) -> List[ReviewRecord]:
    data = _read_json(path)
    if not isinstance(data, list):
        raise ArtifactError(f"{path}: expected a list of reviews")
    try:
        return [ReviewRecord.from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError) as e:
        raise ArtifactError(f"{path}: malformed review entry: {e}") from e


def write_results(path: PathLike, results: AnalysisResults):
    _write_json(path, results.to_dict())
    logger.info(
        f"Wrote {len(results.sentiments)} flavor summaries and "
        f"{len(results.notable_reviews)} notable reviews to {path}"
    )


def read_results(path: PathLike) -> AnalysisResults:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ArtifactError(f"{path}: expected a results object")
    try:
        return AnalysisResults.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ArtifactError(f"{path}: malformed results: {e}") from e
