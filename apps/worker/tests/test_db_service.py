"""psycopg adapter: SQL shape, row mapping, guarded updates, error wrapping (connection mocked)."""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import psycopg
import pytest
from psycopg.types.json import Jsonb

from app.services import db_service
from pdf_core.domain.models import JobStatus, PageStatus
from pdf_core.errors import PersistenceError


@pytest.fixture
def cur():
    conn = MagicMock()
    conn.__enter__.return_value = conn
    cursor = conn.cursor.return_value.__enter__.return_value
    with patch.object(db_service.psycopg, "connect", return_value=conn):
        yield cursor


def _sql(cur):
    return " ".join(cur.execute.call_args.args[0].split())


def _params(cur):
    return cur.execute.call_args.args[1]


def test_get_job_maps_row_to_model(cur):
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    cur.fetchone.return_value = (
        "job-1", "a.pdf", "uploads/job-1/a.pdf", 1024, "queued", 200, 12,
        None, {"numPages": 200}, None, now, now,
    )

    job = db_service.get_job("job-1")

    assert job.status is JobStatus.QUEUED
    assert job.total_pages == 200
    assert job.processed_pages == 12
    assert job.parsed_content == {"numPages": 200}
    assert "FROM pdf_parsing_jobs WHERE id=%s" in _sql(cur)


def test_get_job_missing_returns_none(cur):
    cur.fetchone.return_value = None
    assert db_service.get_job("nope") is None


def test_update_job_ignores_unknown_fields_and_wraps_json(cur):
    db_service.update_job("job-1", parsed_content={"numPages": 3}, status="completed", bogus=1)

    sql = _sql(cur)
    params = _params(cur)
    assert sql.startswith("UPDATE pdf_parsing_jobs SET parsed_content=%s, updated_at=%s WHERE id=%s")
    assert "status" not in sql
    assert isinstance(params[0], Jsonb)
    assert params[-1] == "job-1"


def test_update_job_without_allowed_fields_is_noop(cur):
    db_service.update_job("job-1", status="completed")
    cur.execute.assert_not_called()


def test_transition_job_is_guarded(cur):
    cur.rowcount = 1

    applied = db_service.transition_job(
        "job-1", JobStatus.FAILED, (JobStatus.PENDING, JobStatus.QUEUED), error_message="boom"
    )

    assert applied is True
    sql = _sql(cur)
    assert sql.endswith("WHERE id=%s AND status = ANY(%s)")
    params = _params(cur)
    assert params[0] == "failed"
    assert params[1] == "boom"
    assert params[-2:] == ["job-1", ["pending", "queued"]]


def test_transition_job_not_applied(cur):
    cur.rowcount = 0
    assert db_service.transition_job("job-1", JobStatus.COMPLETED, (JobStatus.PROCESSING,)) is False


def test_record_progress_never_decreases(cur):
    db_service.record_progress("job-1", 30)

    sql = _sql(cur)
    assert "GREATEST(processed_pages, %s)" in sql
    assert "processed_pages < %s" in sql


def test_insert_pages_batches_pending_rows(cur):
    db_service.insert_pages("job-1", [1, 2, 3])

    sql, rows = cur.executemany.call_args.args
    assert "INSERT INTO pdf_pages" in sql
    assert [(r[0], r[1], r[2]) for r in rows] == [("job-1", n, "pending") for n in (1, 2, 3)]


def test_transition_page_with_error(cur):
    cur.rowcount = 1

    assert db_service.transition_page(
        "job-1", 7, PageStatus.FAILED, (PageStatus.PROCESSING,), error_message="PageProcessingError: x"
    )
    params = _params(cur)
    assert params[:2] == ["failed", "PageProcessingError: x"]
    assert params[-3:] == ["job-1", 7, ["processing"]]


def test_upsert_page_result_does_not_overwrite_failed(cur):
    cur.rowcount = 1

    assert db_service.upsert_page_result("job-1", 3, "hello")
    sql = _sql(cur)
    assert "ON CONFLICT (job_id, page_number) DO UPDATE" in sql
    assert "WHERE pdf_pages.status <> 'failed'" in sql
    assert _params(cur)[:3] == ("job-1", 3, "hello")

    cur.rowcount = 0
    assert db_service.upsert_page_result("job-1", 3, "hello") is False


def test_list_and_count_pages(cur):
    cur.fetchall.return_value = [("job-1", 1, "completed", "a", None), ("job-1", 2, "failed", None, "x")]
    pages = db_service.list_pages("job-1")
    assert [(p.page_number, p.status) for p in pages] == [(1, PageStatus.COMPLETED), (2, PageStatus.FAILED)]

    cur.fetchall.return_value = [("completed", 4), ("pending", 2)]
    assert db_service.count_pages("job-1") == {PageStatus.COMPLETED: 4, PageStatus.PENDING: 2}


def test_psycopg_errors_become_persistence_errors(cur):
    cur.execute.side_effect = psycopg.OperationalError("server closed the connection")

    with pytest.raises(PersistenceError, match="transition_page failed"):
        db_service.transition_page("job-1", 1, PageStatus.PROCESSING, (PageStatus.PENDING,))


def test_connect_failure_becomes_persistence_error():
    with patch.object(db_service.psycopg, "connect", side_effect=psycopg.OperationalError("refused")):
        with pytest.raises(PersistenceError, match="get_job failed"):
            db_service.get_job("job-1")
