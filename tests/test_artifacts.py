"""
Tests for the JSON artifacts exchanged between stages.
"""

import json
from datetime import datetime, timezone

import pytest

from flavorpulse.reviews.artifacts import (
    ArtifactError,
    ArtifactLockError,
    ArtifactNotFoundError,
    artifact_lock,
    read_results,
    read_reviews,
    write_results,
    write_reviews,
)
from flavorpulse.reviews.review_models import (
    AnalysisResults,
    NotableReview,
    ReviewRecord,
    SentimentLabel,
    SentimentSummary,
)


REVIEWS = [
    ReviewRecord(rating=4.5, date="May 1, 2024", title="Crisp", flavor="Lime", body="Très bon.\nSecond line."),
    ReviewRecord(rating=1.0, date="", title="", flavor="", body="No."),
]


class TestReviewsArtifact:

    def test_round_trip_preserves_order_and_values(self, tmp_path):
        path = tmp_path / "amazon-reviews.json"
        write_reviews(path, REVIEWS)
        assert read_reviews(path) == REVIEWS

    def test_file_layout(self, tmp_path):
        path = tmp_path / "amazon-reviews.json"
        write_reviews(path, REVIEWS)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert list(data[0]) == ["rating", "date", "title", "flavor", "body"]
        assert data[0]["rating"] == 4.5
        assert "Très bon." in path.read_text(encoding="utf-8")

    def test_no_temp_file_left(self, tmp_path):
        path = tmp_path / "amazon-reviews.json"
        write_reviews(path, REVIEWS)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["amazon-reviews.json"]

    def test_creates_parent_dir(self, tmp_path):
        path = tmp_path / "data" / "amazon-reviews.json"
        write_reviews(path, REVIEWS)
        assert path.exists()

    def test_missing_artifact(self, tmp_path):
        with pytest.raises(ArtifactNotFoundError):
            read_reviews(tmp_path / "amazon-reviews.json")

    def test_malformed_artifact(self, tmp_path):
        path = tmp_path / "amazon-reviews.json"
        path.write_text('{"not": "a list"}', encoding="utf-8")
        with pytest.raises(ArtifactError):
            read_reviews(path)

    def test_entry_without_body(self, tmp_path):
        path = tmp_path / "amazon-reviews.json"
        path.write_text('[{"rating": 5}]', encoding="utf-8")
        with pytest.raises(ArtifactError):
            read_reviews(path)


class TestResultsArtifact:

    def test_round_trip(self, tmp_path):
        analyzed_at = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
        results = AnalysisResults(
            sentiments={
                "Lime": SentimentSummary(0.8, SentimentLabel.POSITIVE, "Zesty.", 4.67, 3, analyzed_at),
                "Peach": SentimentSummary.neutral(analyzed_at=analyzed_at),
            },
            notable_reviews=[NotableReview(5.0, "May 1, 2024", "Zing", "Lime", "Zesty!")],
            analyzed_at=analyzed_at,
        )
        path = tmp_path / "sentiment-results.json"
        write_results(path, results)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert set(data) == {"sentiments", "notable_reviews", "analyzed_at"}
        assert data["sentiments"]["Lime"]["sentiment_label"] == "Positive"
        assert data["analyzed_at"] == "2024-05-01T09:30:00+00:00"

        loaded = read_results(path)
        assert loaded.sentiments == results.sentiments
        assert loaded.notable_reviews == results.notable_reviews
        assert loaded.analyzed_at == analyzed_at

    def test_utc_z_timestamps(self, tmp_path):
        """Results files written by the JavaScript tool end timestamps in "Z"."""
        path = tmp_path / "sentiment-results.json"
        path.write_text(json.dumps({
            "sentiments": {
                "Lime": {
                    "sentiment_score": 0.5,
                    "sentiment_label": "Positive",
                    "summary": "Fine.",
                    "avg_rating": 4.0,
                    "review_count": 2,
                    "analyzed_at": "2024-05-01T09:30:00.123Z",
                },
            },
            "notable_reviews": [],
            "analyzed_at": "2024-05-01T09:30:00.000Z",
        }), encoding="utf-8")

        loaded = read_results(path)
        assert loaded.analyzed_at == datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
        assert loaded.sentiments["Lime"].analyzed_at == datetime(2024, 5, 1, 9, 30, 0, 123000, tzinfo=timezone.utc)

    def test_missing_results(self, tmp_path):
        with pytest.raises(ArtifactNotFoundError):
            read_results(tmp_path / "sentiment-results.json")


class TestArtifactLock:

    def test_lock_released(self, tmp_path):
        path = tmp_path / "amazon-reviews.json"
        with artifact_lock(path) as lock_path:
            assert lock_path.exists()
        assert not lock_path.exists()

    def test_second_writer_rejected(self, tmp_path):
        path = tmp_path / "amazon-reviews.json"
        with artifact_lock(path):
            with pytest.raises(ArtifactLockError):
                with artifact_lock(path):
                    pass

    def test_lock_released_on_error(self, tmp_path):
        path = tmp_path / "amazon-reviews.json"
        with pytest.raises(RuntimeError):
            with artifact_lock(path):
                raise RuntimeError("boom")
        with artifact_lock(path):
            pass
