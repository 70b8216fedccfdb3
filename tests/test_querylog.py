"""Test execution logging — daily JSONL files with redaction and retention cleanup."""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from attachguard.querylog import _file_day, _project_dir, cleanup_old_logs, log_execution


@pytest.fixture
def project_dir(tmp_path):
    """Log root under tmp_path, cwd pinned to /test/project."""
    with patch("attachguard.querylog._LOG_ROOT", tmp_path), patch(
        "attachguard.querylog.os.getcwd", return_value="/test/project"
    ):
        yield tmp_path / "test-project"


def _entries(project_dir):
    log_files = list(project_dir.glob("*.jsonl"))
    assert len(log_files) == 1
    return [json.loads(line) for line in log_files[0].read_text().strip().split("\n")]


def _day_file(project_dir, days_ago: int):
    day = (datetime.now(UTC) - timedelta(days=days_ago)).date()
    path = project_dir / f"{day.isoformat()}.jsonl"
    path.write_text('{"sql":"SELECT 1"}\n')
    return path


def test_project_dir_joins_cwd_components(tmp_path):
    with patch("attachguard.querylog._LOG_ROOT", tmp_path), patch(
        "attachguard.querylog.os.getcwd", return_value="/Users/dev//projects/warehouse/"
    ):
        assert _project_dir() == tmp_path / "Users-dev-projects-warehouse"


def test_file_day_ignores_foreign_files(tmp_path):
    assert _file_day(tmp_path / "2026-03-01.jsonl").isoformat() == "2026-03-01"
    assert _file_day(tmp_path / "notes.jsonl") is None


def test_log_execution_creates_daily_file(project_dir):
    log_execution(sql="SELECT 1", db=":memory:", success=True, attempts=1)

    today = datetime.now(UTC).date().isoformat()
    assert [f.name for f in project_dir.glob("*.jsonl")] == [f"{today}.jsonl"]

    [entry] = _entries(project_dir)
    assert entry["sql"] == "SELECT 1"
    assert entry["db"] == ":memory:"
    assert entry["success"] is True
    assert entry["attempts"] == 1
    assert entry["used_proxy"] is False
    assert entry["effective_sql"] is None
    assert entry["ts"].startswith(today)


def test_log_execution_appends(project_dir):
    log_execution(sql="SELECT 1", success=True)
    log_execution(sql="SELECT 2", success=False, error_kind="other", error_code="E0901")

    first, second = _entries(project_dir)
    assert first["sql"] == "SELECT 1"
    assert second["sql"] == "SELECT 2"
    assert second["error_code"] == "E0901"


def test_log_execution_proxy_fields_redacted(project_dir):
    log_execution(
        sql="ATTACH 'https://user:pw@example.com/db.duckdb?sig=abc' AS db",
        effective_sql=(
            "ATTACH 'https://cors-proxy.pondpilot.io/proxy?url="
            "https%3A%2F%2Fexample.com%2Fdb.duckdb%3Fsig%3Dabc' AS db"
        ),
        success=True,
        attempts=2,
        used_proxy=True,
        duration_ms=120.0,
    )

    [entry] = _entries(project_dir)
    assert "pw@" not in entry["sql"]
    assert "sig=abc" not in entry["sql"]
    assert "abc" not in entry["effective_sql"]
    assert entry["used_proxy"] is True
    assert entry["attempts"] == 2
    assert entry["duration_ms"] == 120.0


def test_cleanup_deletes_expired_days_only(project_dir):
    project_dir.mkdir(parents=True)
    expired = _day_file(project_dir, 40)
    recent = _day_file(project_dir, 5)
    foreign = project_dir / "notes.jsonl"
    foreign.write_text("{}\n")

    assert cleanup_old_logs(retention_days=30) == 1
    assert not expired.exists()
    assert recent.exists()
    assert foreign.exists()


def test_cleanup_removes_emptied_directory(project_dir):
    project_dir.mkdir(parents=True)
    _day_file(project_dir, 60)

    assert cleanup_old_logs() == 1
    assert not project_dir.exists()


def test_cleanup_no_directory(project_dir):
    assert cleanup_old_logs() == 0
