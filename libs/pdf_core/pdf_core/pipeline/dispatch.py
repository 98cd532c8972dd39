"""
Intake Dispatcher: đọc số trang (chỉ metadata) rồi chọn chiến lược xử lý.

- p < inline_page_threshold: giữ status=pending, ghi total_pages, gửi trigger inline (fire-and-forget).
- p >= inline_page_threshold: status=queued, QueueProducer tạo page rows + message.
- Không đọc được metadata: status=failed, dừng.
"""
from __future__ import annotations
import logging
from typing import Optional

from pdf_core.config_loader import DispatchPolicy
from pdf_core.domain.models import DispatchResult, JobStatus, ProcessingMode
from pdf_core.engines import pdf_engine
from pdf_core.errors import MetadataError, PersistenceError, StorageError
from pdf_core.pipeline.producer import QueueProducer
from pdf_core.ports import BlobStorage, InlineTrigger, JobStore

logger = logging.getLogger(__name__)


def choose_mode(total_pages: int, threshold: int) -> ProcessingMode:
    return ProcessingMode.INLINE if total_pages < threshold else ProcessingMode.QUEUED


class IntakeDispatcher:
    def __init__(
        self,
        store: JobStore,
        storage: BlobStorage,
        producer: QueueProducer,
        trigger_inline: InlineTrigger,
        policy: DispatchPolicy,
        engine=pdf_engine,
    ):
        self.store = store
        self.storage = storage
        self.producer = producer
        self.trigger_inline = trigger_inline
        self.policy = policy
        self.engine = engine

    def dispatch(self, job_id: str, data: Optional[bytes] = None) -> Optional[DispatchResult]:
        job = self.store.get_job(job_id)
        if not job:
            logger.warning("[DISPATCH] Job not found: job_id=%s", job_id)
            return None
        if job.status != JobStatus.PENDING:
            logger.info("[DISPATCH] Job không còn pending (status=%s), bỏ qua: job_id=%s", job.status.value, job_id)
            return DispatchResult(job_id=job_id, total_pages=job.total_pages)

        try:
            if data is None:
                data = self.storage.download(job.file_path)
            total_pages = self.engine.count_pages(data)
        except (MetadataError, StorageError) as e:
            error = f"Failed to extract PDF metadata: {e}"
            logger.error("[DISPATCH] %s (job_id=%s)", error, job_id)
            self.store.transition_job(job_id, JobStatus.FAILED, (JobStatus.PENDING,), error_message=error)
            return DispatchResult(job_id=job_id, error=error)

        mode = choose_mode(total_pages, self.policy.inline_page_threshold)
        if mode is ProcessingMode.INLINE:
            return self._dispatch_inline(job_id, total_pages)
        return self._dispatch_queued(job, total_pages)

    def _dispatch_inline(self, job_id: str, total_pages: int) -> DispatchResult:
        logger.info("[DISPATCH] Job %s: PDF nhỏ (%s trang) -> inline", job_id, total_pages)
        self.store.update_job(job_id, total_pages=total_pages, processed_pages=0)
        triggered = True
        try:
            self.trigger_inline(job_id)
        except Exception:
            # trigger lỗi không hoàn tác state đã ghi
            logger.exception("[DISPATCH] Failed to trigger inline processing: job_id=%s", job_id)
            triggered = False
        return DispatchResult(
            job_id=job_id,
            mode=ProcessingMode.INLINE,
            total_pages=total_pages,
            triggered=triggered,
        )

    def _dispatch_queued(self, job, total_pages: int) -> DispatchResult:
        logger.info("[DISPATCH] Job %s: PDF lớn (%s trang) -> queue", job.id, total_pages)
        moved = self.store.transition_job(
            job.id,
            JobStatus.QUEUED,
            (JobStatus.PENDING,),
            total_pages=total_pages,
            processed_pages=0,
        )
        if not moved:
            logger.warning("[DISPATCH] Job đã rời trạng thái pending, không queue: job_id=%s", job.id)
            return DispatchResult(job_id=job.id, total_pages=total_pages)
        try:
            enqueued = self.producer.produce(job, total_pages)
        except PersistenceError as e:
            logger.exception("[DISPATCH] Queue producer failed: job_id=%s", job.id)
            self.store.transition_job(
                job.id, JobStatus.FAILED, (JobStatus.QUEUED,), error_message=str(e)
            )
            return DispatchResult(job_id=job.id, total_pages=total_pages, error=str(e))
        return DispatchResult(
            job_id=job.id,
            mode=ProcessingMode.QUEUED,
            total_pages=total_pages,
            enqueued=enqueued,
        )
