"""
State store trên PostgreSQL (psycopg, SQL thuần): bảng pdf_parsing_jobs và pdf_pages.

Mỗi lần gọi mở một connection riêng; commit khi thoát `with`. Mọi thay đổi trạng thái là
một UPDATE có điều kiện `status = ANY(allowed_from)`, trả về True nếu đúng một row được cập nhật.
Lỗi psycopg được bọc thành PersistenceError.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import psycopg
from psycopg.types.json import Jsonb

from app.core.config import settings
from app.core.logging import get_logger
from pdf_core.domain.models import Job, JobStatus, Page, PageStatus
from pdf_core.errors import PersistenceError

logger = get_logger(__name__)

JOB_COLUMNS = (
    "id",
    "file_name",
    "file_path",
    "file_size",
    "status",
    "total_pages",
    "processed_pages",
    "extracted_text",
    "parsed_content",
    "error_message",
    "created_at",
    "updated_at",
)

PAGE_COLUMNS = ("job_id", "page_number", "status", "extracted_text", "error_message")

ALLOWED_UPDATE_FIELDS = frozenset(
    {
        "file_name",
        "file_path",
        "file_size",
        "total_pages",
        "processed_pages",
        "extracted_text",
        "parsed_content",
        "error_message",
    }
)


def db_conn():
    return psycopg.connect(settings.database_url)


@contextmanager
def _cursor(op: str):
    try:
        with db_conn() as conn:
            with conn.cursor() as cur:
                yield cur
    except psycopg.Error as e:
        logger.error(f"[DB] {op} failed: {e}")
        raise PersistenceError(f"{op} failed: {e}") from e


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _adapt(key: str, value):
    if key == "parsed_content" and value is not None:
        return Jsonb(value)
    if isinstance(value, (JobStatus, PageStatus)):
        return value.value
    return value


def _set_clause(fields: dict) -> tuple[list, list]:
    sets, vals = [], []
    for k, v in fields.items():
        sets.append(f"{k}=%s")
        vals.append(_adapt(k, v))
    sets.append("updated_at=%s")
    vals.append(_now())
    return sets, vals


def get_job(job_id: str) -> Optional[Job]:
    logger.debug(f"[DB] get_job: job_id={job_id}")
    with _cursor("get_job") as cur:
        cur.execute(
            f"SELECT {', '.join(JOB_COLUMNS)} FROM pdf_parsing_jobs WHERE id=%s",
            (job_id,),
        )
        row = cur.fetchone()
    if not row:
        logger.debug(f"[DB] Job not found: job_id={job_id}")
        return None
    return Job.model_validate(dict(zip(JOB_COLUMNS, row)))


def update_job(job_id: str, **fields) -> None:
    """Ghi các cột không phải status (status chỉ đổi qua transition_job)."""
    allowed = {k: v for k, v in fields.items() if k in ALLOWED_UPDATE_FIELDS}
    if not allowed:
        return
    logger.debug(f"[DB] update_job: job_id={job_id}, fields={list(allowed.keys())}")
    sets, vals = _set_clause(allowed)
    vals.append(job_id)
    with _cursor("update_job") as cur:
        cur.execute("UPDATE pdf_parsing_jobs SET " + ", ".join(sets) + " WHERE id=%s", vals)


def transition_job(job_id: str, status: JobStatus, allowed_from: Sequence[JobStatus], **fields) -> bool:
    extra = {k: v for k, v in fields.items() if k in ALLOWED_UPDATE_FIELDS}
    sets, vals = _set_clause({"status": status, **extra})
    vals.extend([job_id, [s.value for s in allowed_from]])
    q = "UPDATE pdf_parsing_jobs SET " + ", ".join(sets) + " WHERE id=%s AND status = ANY(%s)"
    with _cursor("transition_job") as cur:
        cur.execute(q, vals)
        applied = cur.rowcount == 1
    logger.debug(f"[DB] transition_job: job_id={job_id}, -> {status.value}, applied={applied}")
    return applied


def record_progress(job_id: str, processed_pages: int) -> None:
    with _cursor("record_progress") as cur:
        cur.execute(
            """UPDATE pdf_parsing_jobs
               SET processed_pages = GREATEST(processed_pages, %s), updated_at=%s
               WHERE id=%s AND processed_pages < %s""",
            (processed_pages, _now(), job_id, processed_pages),
        )


def insert_pages(job_id: str, page_numbers: Sequence[int]) -> None:
    """Tạo page rows pending trong một transaction: hoặc đủ hết, hoặc không row nào."""
    now = _now()
    rows = [(job_id, n, PageStatus.PENDING.value, now, now) for n in page_numbers]
    logger.debug(f"[DB] insert_pages: job_id={job_id}, count={len(rows)}")
    with _cursor("insert_pages") as cur:
        cur.executemany(
            """INSERT INTO pdf_pages (job_id, page_number, status, created_at, updated_at)
               VALUES (%s, %s, %s, %s, %s)""",
            rows,
        )


def transition_page(
    job_id: str,
    page_number: int,
    status: PageStatus,
    allowed_from: Sequence[PageStatus],
    error_message: Optional[str] = None,
) -> bool:
    fields = {"status": status}
    if error_message is not None:
        fields["error_message"] = error_message
    sets, vals = _set_clause(fields)
    vals.extend([job_id, page_number, [s.value for s in allowed_from]])
    q = (
        "UPDATE pdf_pages SET " + ", ".join(sets)
        + " WHERE job_id=%s AND page_number=%s AND status = ANY(%s)"
    )
    with _cursor("transition_page") as cur:
        cur.execute(q, vals)
        return cur.rowcount == 1


def upsert_page_result(job_id: str, page_number: int, text: str) -> bool:
    """Text + completed trong một câu lệnh; giao lại nhiều lần vẫn cho cùng kết quả. Không ghi đè trang failed."""
    now = _now()
    with _cursor("upsert_page_result") as cur:
        cur.execute(
            """INSERT INTO pdf_pages (job_id, page_number, status, extracted_text, error_message, created_at, updated_at)
               VALUES (%s, %s, 'completed', %s, NULL, %s, %s)
               ON CONFLICT (job_id, page_number) DO UPDATE
               SET status='completed', extracted_text=EXCLUDED.extracted_text,
                   error_message=NULL, updated_at=EXCLUDED.updated_at
               WHERE pdf_pages.status <> 'failed'""",
            (job_id, page_number, text, now, now),
        )
        return cur.rowcount == 1


def list_pages(job_id: str) -> List[Page]:
    with _cursor("list_pages") as cur:
        cur.execute(
            f"SELECT {', '.join(PAGE_COLUMNS)} FROM pdf_pages WHERE job_id=%s ORDER BY page_number",
            (job_id,),
        )
        rows = cur.fetchall()
    return [Page.model_validate(dict(zip(PAGE_COLUMNS, row))) for row in rows]


def count_pages(job_id: str) -> Dict[PageStatus, int]:
    with _cursor("count_pages") as cur:
        cur.execute(
            "SELECT status, COUNT(*) FROM pdf_pages WHERE job_id=%s GROUP BY status",
            (job_id,),
        )
        rows = cur.fetchall()
    return {PageStatus(status): count for status, count in rows}
