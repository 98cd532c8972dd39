import uuid
from fastapi import APIRouter, UploadFile, File, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.db.session import get_session
from app.schemas.jobs import CreateJobResponse, JobStatusResponse, PageResponse
from app.services.jobs_service import (
    create_job,
    delete_job,
    fail_pending_job,
    get_job,
    list_jobs,
    list_pages,
)
from app.services.storage_service import delete_object, put_bytes, storage_configured
from pdf_core.errors import ValidationError
from pdf_core.validation import PDF_CONTENT_TYPE, storage_path, validate_upload

logger = get_logger("app.api.jobs")

router = APIRouter(prefix="/v1/pdf", tags=["pdf"])


def _job_response(job: dict) -> JobStatusResponse:
    return JobStatusResponse(job_id=job["id"], **{k: v for k, v in job.items() if k != "id"})


@router.get("/jobs")
async def list_pdf_jobs(
    session: AsyncSession = Depends(get_session),
    limit: int = 50,
):
    """Danh sách job mới nhất (không kèm extracted_text)."""
    jobs = await list_jobs(session, limit=min(max(limit, 1), 50))
    return {"jobs": jobs, "count": len(jobs)}


@router.post("/jobs", response_model=CreateJobResponse)
async def create_pdf_job(
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_session),
):
    """
    Upload PDF → lưu MinIO → tạo job pending → gửi task pdf.dispatch_job.
    Worker đọc số trang và chọn xử lý inline hoặc qua page queue.
    """
    data = await file.read()
    try:
        validate_upload(file.filename, file.content_type, len(data), settings.max_upload_bytes)
    except ValidationError as e:
        status_code = 413 if len(data) > settings.max_upload_bytes else 400
        raise HTTPException(status_code, str(e)) from e
    if not storage_configured():
        raise HTTPException(
            503,
            "MinIO chưa cấu hình. Đặt MINIO_ENDPOINT, MINIO_ACCESS_KEY, MINIO_SECRET_KEY trong .env.",
        )

    job_id = str(uuid.uuid4())
    file_name = file.filename or "document.pdf"
    key = storage_path(job_id, file_name)
    try:
        put_bytes(key, data, PDF_CONTENT_TYPE)
    except Exception as e:
        logger.exception("Lỗi upload MinIO: job_id=%s, key=%s", job_id, key)
        raise HTTPException(502, "Failed to upload file") from e

    try:
        await create_job(session, job_id=job_id, file_name=file_name, file_path=key, file_size=len(data))
        # commit trước khi gửi task để worker thấy job
        await session.commit()
    except Exception as e:
        await session.rollback()
        delete_object(key)
        raise HTTPException(500, "Failed to create job") from e
    logger.info("Đã lưu job vào Postgres và file vào MinIO: job_id=%s, file=%s", job_id, file_name)

    dispatched = True
    try:
        from app.core.deps import celery_app
        celery_app.send_task("pdf.dispatch_job", args=[job_id])
        logger.info(
            "Đã gửi task dispatch tới worker: job_id=%s (log xử lý ở worker: logs/worker_YYYY-MM-DD.log)",
            job_id,
        )
    except Exception as e:
        logger.warning("Redis/Celery lỗi, không gửi được task dispatch: job_id=%s, %s", job_id, e)
        dispatched = False
        await fail_pending_job(session, job_id, f"Failed to dispatch job: {e}")
        await session.commit()

    return CreateJobResponse(
        job_id=job_id,
        status="pending" if dispatched else "failed",
        file_name=file_name,
        file_path=key,
        file_size=len(data),
        dispatched=dispatched,
    )


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def job_status(
    job_id: str,
    session: AsyncSession = Depends(get_session),
):
    job = await get_job(session, job_id)
    if not job:
        raise HTTPException(404, "job not found")
    return _job_response(job)


@router.get("/jobs/{job_id}/pages", response_model=list[PageResponse])
async def job_pages(
    job_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Trạng thái từng trang (chỉ job xử lý qua page queue mới có page rows)."""
    job = await get_job(session, job_id)
    if not job:
        raise HTTPException(404, "job not found")
    return [PageResponse(**p) for p in await list_pages(session, job_id)]


@router.delete("/jobs/{job_id}")
async def remove_job(
    job_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Xoá job, page rows và file trên MinIO. Message còn trong queue sẽ bị worker bỏ qua (không còn page row)."""
    job = await get_job(session, job_id)
    if not job:
        raise HTTPException(404, "job not found")
    await delete_job(session, job_id)
    await session.commit()
    file_deleted = delete_object(job["file_path"]) if storage_configured() else False
    return {"job_id": job_id, "deleted": True, "file_deleted": file_deleted}
