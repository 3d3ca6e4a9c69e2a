"""Tests for the JSONL job log."""

from pathlib import Path

import pytest

from memoir.logging import JSONLLogger, LogEntry


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def test_log_entry_to_dict():
    """Test LogEntry excludes None values."""
    entry = LogEntry(timestamp="2024-01-01T00:00:00Z", event="test")

    assert entry.to_dict() == {"timestamp": "2024-01-01T00:00:00Z", "event": "test"}


def test_log_creates_file(logger: JSONLLogger):
    assert not logger.log_path.exists()
    logger.log("job_start", user_id=1, task="generate_memory_summary")
    assert logger.log_path.name == "jobs.jsonl"
    assert logger.log_path.exists()


def test_log_writes_jsonl(logger: JSONLLogger):
    """Test that logs are written one object per line."""
    logger.log("job_start", user_id=1, task="generate_memory_summary")
    logger.log("job_finish", user_id=1, task="generate_memory_summary", duration_ms=12.5)

    assert len(logger.log_path.read_text().splitlines()) == 2
    start, finish = logger.read()
    assert start["event"] == "job_start"
    assert start["user_id"] == "1"
    assert finish["duration_ms"] == 12.5


def test_extra_fields(logger: JSONLLogger):
    logger.log("custom", user_id="u1", attempt=3)
    assert next(logger.read())["extra"] == {"attempt": 3}


def test_read_filters(logger: JSONLLogger):
    logger.log_summary_updated("u1", chars=120)
    logger.log_summary_cleared("u2")
    logger.log_summary_cleared("u1")

    assert [e["event"] for e in logger.read(user_id="u1")] == ["summary_updated", "summary_cleared"]
    assert [e["user_id"] for e in logger.read(event="summary_cleared")] == ["u2", "u1"]


def test_read_missing_file(logger: JSONLLogger):
    assert list(logger.read()) == []


def test_summary_events(logger: JSONLLogger):
    logger.log_summary_updated("u1", chars=120)
    logger.log_summary_cleared("u1")

    updated, cleared = logger.read()
    assert updated["event"] == "summary_updated"
    assert updated["extra"] == {"chars": 120}
    assert cleared["event"] == "summary_cleared"


def test_consolidation_events(logger: JSONLLogger):
    logger.log_consolidation("u1", before=100, after=48)
    logger.log_consolidation_skipped("u1", "too_few", candidates=3)

    applied, skipped = logger.read()
    assert applied["event"] == "consolidation_applied"
    assert applied["extra"] == {"before": 100, "after": 48}
    assert skipped["reason"] == "too_few"
    assert skipped["extra"] == {"candidates": 3}


def test_rotation_keeps_backups(tmp_path: Path):
    """Test that full logs are rotated aside and old backups pruned."""
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.0001, backup_count=2)
    for i in range(10):
        logger.log("job_start", user_id=i, task="consolidate_memories")

    assert logger.log_path.exists()
    assert 1 <= len(logger.rotated_files()) <= 2
