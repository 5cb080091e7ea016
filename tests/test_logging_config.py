"""
Tests for logging setup: JSON lines and per-run stage stamping.
"""

import json
import logging
import sys

import pytest

from flavorpulse.logging_config import JSONFormatter, StageContextFilter, setup_logging, stage_context


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(msg="hello", **extra):
    record = logging.LogRecord("flavorpulse.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_context_fields_emitted(self):
        line = JSONFormatter().format(
            make_record(flavor="Lime", stage="analyze", run_id="run-1", score=0.8)
        )
        entry = json.loads(line)

        assert entry["msg"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "flavorpulse.test"
        assert entry["flavor"] == "Lime"
        assert entry["stage"] == "analyze"
        assert entry["run_id"] == "run-1"
        assert entry["score"] == 0.8

    def test_absent_fields_omitted(self):
        entry = json.loads(JSONFormatter().format(make_record()))
        assert "flavor" not in entry
        assert "run_id" not in entry

    def test_non_ascii_kept(self):
        line = JSONFormatter().format(make_record("Pamplemousse très bon"))
        assert "très" in line

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestStageContext:

    def test_filter_keeps_explicit_stage(self):
        record = make_record(stage="sync")
        StageContextFilter("parse", "run-1").filter(record)
        assert record.stage == "sync"
        assert record.run_id == "run-1"

    def test_records_stamped_inside_context(self, capsys, restore_root_logging):
        setup_logging(json_output=True)
        log = logging.getLogger("flavorpulse.ai.sentiment_analyzer")

        with stage_context("analyze", run_id="run-42") as run_id:
            log.info("scored", extra={"flavor": "Mango"})
        log.info("after")

        lines = [json.loads(l) for l in capsys.readouterr().out.splitlines()]
        assert run_id == "run-42"
        assert lines[0]["stage"] == "analyze"
        assert lines[0]["run_id"] == "run-42"
        assert lines[0]["flavor"] == "Mango"
        assert "stage" not in lines[1]

    def test_fresh_run_ids(self, restore_root_logging):
        setup_logging()
        with stage_context("parse") as first:
            pass
        with stage_context("parse") as second:
            pass
        assert first != second


class TestSetupLogging:

    def test_log_file(self, tmp_path, restore_root_logging):
        log_file = tmp_path / "logs" / "pipeline.log"
        setup_logging(json_output=True, log_file=str(log_file))

        logging.getLogger("flavorpulse.test").warning("to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
        assert entry["msg"] == "to file"

    def test_sdk_loggers_quieted(self, restore_root_logging):
        setup_logging(level="DEBUG")
        assert logging.getLogger("openai").level == logging.WARNING
        assert logging.getLogger().level == logging.DEBUG
