"""
Job Finalizer cho chế độ queue: chạy sau mỗi kết quả trang (completed hoặc failed).

- processed_pages = số trang đã ở trạng thái cuối (ghi kiểu GREATEST, không giảm).
- Khi không còn trang pending/processing và đủ total_pages: queued → processing (nếu cần),
  rồi luôn processing → completed. Trang lỗi không làm job lỗi: chỉ được đếm trong
  parsed_content.failedPages (kể cả khi mọi trang đều lỗi).
- Transition có điều kiện nên khi nhiều worker cùng kiểm tra chỉ một worker thắng;
  worker thắng ghi extracted_text (best-effort).
"""
from __future__ import annotations
import logging
from typing import Optional

from pdf_core.domain.models import JobStatus, PageStatus
from pdf_core.domain.state import is_terminal
from pdf_core.pipeline.postprocess import join_pages
from pdf_core.ports import JobStore

logger = logging.getLogger(__name__)


class JobFinalizer:
    def __init__(self, store: JobStore):
        self.store = store

    def check(self, job_id: str) -> Optional[JobStatus]:
        """Trả về trạng thái cuối nếu lần gọi này vừa kết thúc job, ngược lại None."""
        job = self.store.get_job(job_id)
        if not job or is_terminal(job.status) or not job.total_pages:
            return None

        counts = self.store.count_pages(job_id)
        completed = counts.get(PageStatus.COMPLETED, 0)
        failed = counts.get(PageStatus.FAILED, 0)
        outstanding = counts.get(PageStatus.PENDING, 0) + counts.get(PageStatus.PROCESSING, 0)
        processed = min(completed + failed, job.total_pages)
        self.store.record_progress(job_id, processed)

        if outstanding or completed + failed < job.total_pages:
            return None

        if job.status == JobStatus.QUEUED:
            self.store.transition_job(job_id, JobStatus.PROCESSING, (JobStatus.QUEUED,))

        parsed_content = {
            "numPages": job.total_pages,
            "textPerPage": completed,
            "failedPages": failed,
        }
        if not self.store.transition_job(
            job_id,
            JobStatus.COMPLETED,
            (JobStatus.PROCESSING,),
            processed_pages=processed,
            parsed_content=parsed_content,
        ):
            return None
        if completed == 0:
            logger.warning("[FINALIZE] Job completed, không có trang nào trích xuất được: job_id=%s", job_id)
        else:
            logger.info(
                "[FINALIZE] Job completed: job_id=%s, completed=%s, failed=%s",
                job_id, completed, failed,
            )

        try:
            pages = self.store.list_pages(job_id)
            text = join_pages(
                p.extracted_text or "" for p in pages if p.status == PageStatus.COMPLETED
            )
            self.store.update_job(job_id, extracted_text=text)
        except Exception:
            logger.exception("[FINALIZE] Failed to save extracted text, job stays completed: job_id=%s", job_id)
        return JobStatus.COMPLETED
