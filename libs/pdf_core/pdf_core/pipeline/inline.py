"""
Inline Processor: xử lý toàn bộ một PDF nhỏ trong một lần chạy.

Luồng: claim pending → processing, tải file một lần, trích text lần lượt từng trang,
checkpoint processed_pages mỗi `checkpoint_every` trang (và ở trang cuối).
Kết thúc bằng hai lần ghi:
  1) status=completed + total_pages/processed_pages/parsed_content: bắt buộc thành công;
  2) extracted_text: best-effort, lỗi thì job vẫn completed, extracted_text để null.
Mọi lỗi trước lần ghi (1) đánh job failed rồi raise lại.
"""
from __future__ import annotations
import logging
import time
from typing import Optional

from pdf_core.config_loader import DispatchPolicy
from pdf_core.domain.models import InlineReport, JobStatus
from pdf_core.engines import pdf_engine
from pdf_core.errors import PersistenceError, describe
from pdf_core.pipeline.postprocess import join_pages
from pdf_core.ports import BlobStorage, JobStore

logger = logging.getLogger(__name__)


class InlineProcessor:
    def __init__(self, store: JobStore, storage: BlobStorage, policy: DispatchPolicy, engine=pdf_engine):
        self.store = store
        self.storage = storage
        self.policy = policy
        self.engine = engine

    def run(self, job_id: str) -> Optional[InlineReport]:
        job = self.store.get_job(job_id)
        if not job:
            logger.warning("[INLINE] Job not found: job_id=%s", job_id)
            return None
        if not self.store.transition_job(job_id, JobStatus.PROCESSING, (JobStatus.PENDING,)):
            logger.info("[INLINE] Job không ở trạng thái pending (status=%s), skip: job_id=%s", job.status.value, job_id)
            return None

        t0 = time.perf_counter()
        try:
            logger.info("[INLINE] Downloading: job_id=%s, path=%s", job_id, job.file_path)
            data = self.storage.download(job.file_path)
            texts = self._extract_all(job_id, data)
            total_pages = len(texts)
            parsed_content = {"numPages": total_pages, "textPerPage": len(texts)}
            try:
                completed = self.store.transition_job(
                    job_id,
                    JobStatus.COMPLETED,
                    (JobStatus.PROCESSING,),
                    total_pages=total_pages,
                    processed_pages=total_pages,
                    parsed_content=parsed_content,
                    error_message=None,
                )
            except PersistenceError:
                raise
            except Exception as e:
                raise PersistenceError(f"Failed to update job status: {e}") from e
            if not completed:
                raise PersistenceError("Failed to update job status: job left processing state")
        except Exception as e:
            logger.exception("[INLINE] Job failed: job_id=%s", job_id)
            self.store.transition_job(
                job_id, JobStatus.FAILED, (JobStatus.PENDING, JobStatus.PROCESSING), error_message=describe(e)
            )
            raise

        extracted_text = join_pages(texts)
        text_saved = True
        try:
            self.store.update_job(job_id, extracted_text=extracted_text)
        except Exception:
            # job vẫn completed; chỉ thiếu extracted_text
            logger.exception(
                "[INLINE] Failed to save extracted text (len=%s), job stays completed: job_id=%s",
                len(extracted_text), job_id,
            )
            text_saved = False

        logger.info(
            "[INLINE] Job completed: job_id=%s, pages=%s, chars=%s, time=%.2fs",
            job_id, total_pages, len(extracted_text), time.perf_counter() - t0,
        )
        return InlineReport(
            job_id=job_id,
            total_pages=total_pages,
            text_length=len(extracted_text),
            text_saved=text_saved,
        )

    def _extract_all(self, job_id: str, data: bytes) -> list[str]:
        doc = self.engine.open_document(data)
        try:
            total_pages = doc.page_count
            self.store.update_job(job_id, total_pages=total_pages, processed_pages=0)
            texts: list[str] = []
            for page_number in range(1, total_pages + 1):
                texts.append(self.engine.page_text(doc, page_number))
                if page_number % self.policy.checkpoint_every == 0 or page_number == total_pages:
                    self.store.update_job(job_id, processed_pages=page_number)
                    logger.debug("[INLINE] Progress: %s/%s (job_id=%s)", page_number, total_pages, job_id)
            return texts
        finally:
            doc.close()
