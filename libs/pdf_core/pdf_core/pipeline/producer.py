"""Queue Producer: tạo page rows (pending) rồi enqueue một message cho mỗi trang."""
from __future__ import annotations
import logging

from pdf_core.config_loader import WorkerBudget
from pdf_core.domain.models import Job, PageTask
from pdf_core.errors import PersistenceError
from pdf_core.ports import JobStore, WorkQueue

logger = logging.getLogger(__name__)


class EnqueueError(PersistenceError):
    """Page rows đã tạo nhưng enqueue dừng giữa chừng."""

    def __init__(self, page_number: int, total_pages: int, cause: BaseException):
        super().__init__(f"Failed to enqueue page {page_number} of {total_pages}: {cause}")
        self.page_number = page_number
        self.total_pages = total_pages


class QueueProducer:
    def __init__(self, store: JobStore, queue: WorkQueue, budget: WorkerBudget):
        self.store = store
        self.queue = queue
        self.budget = budget

    def produce(self, job: Job, total_pages: int) -> int:
        """Trả về số message đã enqueue. Lỗi insert page rows -> PersistenceError, chưa enqueue gì."""
        page_numbers = list(range(1, total_pages + 1))
        try:
            self.store.insert_pages(job.id, page_numbers)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to create page records: {e}") from e
        logger.info("[PRODUCER] Đã tạo %s page rows: job_id=%s", total_pages, job.id)

        # enqueue theo thứ tự tăng dần; thứ tự giao message không được đảm bảo
        for page_number in page_numbers:
            task = PageTask(
                job_id=job.id,
                file_path=job.file_path,
                page_number=page_number,
                total_pages=total_pages,
            )
            try:
                self.queue.enqueue(self.budget.queue_name, task.model_dump())
            except Exception as e:
                raise EnqueueError(page_number, total_pages, e) from e
        logger.info(
            "[PRODUCER] Queued %s pages: job_id=%s, queue=%s",
            total_pages, job.id, self.budget.queue_name,
        )
        return total_pages
