"""Service job PDF: dùng SQLAlchemy 2.x async (AsyncSession)."""
from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.db.models import PdfPage, PdfParsingJob

logger = get_logger("app.services.jobs")


async def create_job(
    session: AsyncSession,
    job_id: str,
    file_name: str,
    file_path: str,
    file_size: int,
) -> None:
    try:
        job = PdfParsingJob(
            id=job_id,
            file_name=file_name,
            file_path=file_path,
            file_size=file_size,
            status="pending",
            processed_pages=0,
        )
        session.add(job)
        await session.flush()
        logger.info(
            "Postgres INSERT job: job_id=%s, file=%s, size=%s (DB: host=%s, db=%s)",
            job_id, file_name, file_size, settings.postgres_host, settings.postgres_db,
        )
    except Exception as e:
        logger.exception("Lỗi ghi Postgres (create_job): %s", e)
        raise


async def fail_pending_job(session: AsyncSession, job_id: str, error_message: str) -> bool:
    """pending -> failed (khi không gửi được task dispatch). Job đã được worker nhận thì không đổi."""
    try:
        stmt = (
            update(PdfParsingJob)
            .where(PdfParsingJob.id == job_id, PdfParsingJob.status == "pending")
            .values(status="failed", error_message=error_message, updated_at=datetime.now(timezone.utc))
        )
        result = await session.execute(stmt)
        await session.flush()
        logger.info(
            "Postgres UPDATE job -> failed: job_id=%s (DB: host=%s, db=%s)",
            job_id, settings.postgres_host, settings.postgres_db,
        )
        return (result.rowcount or 0) > 0
    except Exception as e:
        logger.exception("Lỗi ghi Postgres (fail_pending_job job_id=%s): %s", job_id, e)
        raise


async def get_job(session: AsyncSession, job_id: str) -> dict | None:
    stmt = select(PdfParsingJob).where(PdfParsingJob.id == job_id)
    result = await session.execute(stmt)
    job = result.scalars().one_or_none()
    if job is None:
        return None
    return job.to_dict()


async def list_jobs(session: AsyncSession, limit: int = 50) -> list[dict]:
    stmt = select(PdfParsingJob).order_by(PdfParsingJob.created_at.desc()).limit(limit)
    result = await session.execute(stmt)
    rows = result.scalars().all()
    return [r.to_dict(include_text=False) for r in rows]


async def list_pages(session: AsyncSession, job_id: str) -> list[dict]:
    stmt = select(PdfPage).where(PdfPage.job_id == job_id).order_by(PdfPage.page_number)
    result = await session.execute(stmt)
    return [p.to_dict() for p in result.scalars().all()]


async def delete_job(session: AsyncSession, job_id: str) -> bool:
    """Xoá job; page rows bị xoá theo (ON DELETE CASCADE)."""
    result = await session.execute(delete(PdfParsingJob).where(PdfParsingJob.id == job_id))
    await session.flush()
    deleted = (result.rowcount or 0) > 0
    if deleted:
        logger.info("Postgres DELETE job: job_id=%s", job_id)
    return deleted
