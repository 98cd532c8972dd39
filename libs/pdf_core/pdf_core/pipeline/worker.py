"""
Bounded Worker: một invocation = một vòng lặp có giới hạn thời gian và số trang.

    loop:
      hết max_wall_seconds hoặc đủ max_pages -> dừng
      dequeue 1 message (lease = lease_seconds); queue rỗng -> dừng ngay
      page -> processing (trang 1 thì job queued -> processing)
      lấy document từ cache của invocation (tải nếu chưa có)
      trích text, upsert text + completed (một câu lệnh), delete message
      lỗi trang: page -> failed, archive message (không giao lại)
      finalizer kiểm tra job đã xong chưa

Thứ tự ghi: commit kết quả trang vào store TRƯỚC khi xoá message. Crash giữa hai bước
chỉ dẫn tới message được giao lại và xử lý lại, upsert idempotent nên không sai dữ liệu.
"""
from __future__ import annotations
import logging
import time
from typing import Callable, Optional

from pdf_core.config_loader import WorkerBudget
from pdf_core.domain.models import JobStatus, PageStatus, QueueMessage, WorkerReport
from pdf_core.domain.state import sources_for
from pdf_core.engines import pdf_engine
from pdf_core.errors import PersistenceError, describe
from pdf_core.pipeline.cache import DocumentCache
from pdf_core.pipeline.completion import JobFinalizer
from pdf_core.ports import BlobStorage, JobStore, WorkQueue

logger = logging.getLogger(__name__)

STOP_WALL_TIME = "wall_time"
STOP_PAGE_BUDGET = "page_budget"
STOP_QUEUE_EMPTY = "queue_empty"
STOP_QUEUE_ERROR = "queue_error"


class BoundedWorker:
    def __init__(
        self,
        store: JobStore,
        queue: WorkQueue,
        storage: BlobStorage,
        budget: WorkerBudget,
        finalizer: Optional[JobFinalizer] = None,
        clock: Callable[[], float] = time.monotonic,
        engine=pdf_engine,
    ):
        self.store = store
        self.queue = queue
        self.storage = storage
        self.budget = budget
        self.finalizer = finalizer or JobFinalizer(store)
        self.clock = clock
        self.engine = engine

    def run(self) -> WorkerReport:
        report = WorkerReport()
        start = self.clock()
        with DocumentCache(self.storage, engine=self.engine) as cache:
            while True:
                if self.clock() - start >= self.budget.max_wall_seconds:
                    report.stop_reason = STOP_WALL_TIME
                    break
                if report.pages_done + report.pages_skipped >= self.budget.max_pages:
                    report.stop_reason = STOP_PAGE_BUDGET
                    break
                try:
                    messages = self.queue.dequeue(self.budget.queue_name, self.budget.lease_seconds, 1)
                except Exception:
                    logger.exception("[WORKER] Queue read error: queue=%s", self.budget.queue_name)
                    report.stop_reason = STOP_QUEUE_ERROR
                    break
                if not messages:
                    logger.info("[WORKER] No more tasks in queue")
                    report.stop_reason = STOP_QUEUE_EMPTY
                    break
                self._handle(messages[0], cache, report)
        report.elapsed_seconds = self.clock() - start
        logger.info(
            "[WORKER] Invocation done: processed=%s, skipped=%s, duplicate=%s, elapsed=%.2fs, stop=%s",
            report.pages_done, report.pages_skipped, report.pages_duplicate,
            report.elapsed_seconds, report.stop_reason,
        )
        return report

    def _handle(self, message: QueueMessage, cache: DocumentCache, report: WorkerReport) -> None:
        task = message.task
        queue_name = self.budget.queue_name
        logger.info(
            "[WORKER] [%s] Processing page %s/%s (msg_id=%s, read_ct=%s)",
            task.job_id, task.page_number, task.total_pages, message.msg_id, message.read_count,
        )
        try:
            claimed = self.store.transition_page(
                task.job_id, task.page_number, PageStatus.PROCESSING, sources_for(PageStatus.PROCESSING)
            )
            if not claimed:
                # trang đã ở trạng thái cuối (message giao lại sau khi đã commit) hoặc không còn row
                logger.info(
                    "[WORKER] [%s] Page %s already final, dropping redelivered message %s",
                    task.job_id, task.page_number, message.msg_id,
                )
                self.queue.delete(queue_name, message.msg_id)
                report.pages_duplicate += 1
                self.finalizer.check(task.job_id)
                return

            if task.page_number == 1:
                self.store.transition_job(task.job_id, JobStatus.PROCESSING, (JobStatus.QUEUED,))

            doc = cache.get(task.file_path)
            text = self.engine.page_text(doc, task.page_number)
            if not self.store.upsert_page_result(task.job_id, task.page_number, text):
                raise PersistenceError(f"page {task.page_number} result was not committed")
        except Exception as e:
            logger.exception("[WORKER] [%s] Error processing page %s", task.job_id, task.page_number)
            self.store.transition_page(
                task.job_id,
                task.page_number,
                PageStatus.FAILED,
                sources_for(PageStatus.FAILED),
                error_message=describe(e),
            )
            self.queue.archive(queue_name, message.msg_id)
            report.pages_skipped += 1
            report.failed_pages.append(f"{task.job_id}:{task.page_number}")
        else:
            # kết quả đã commit; nếu delete lỗi, message được giao lại và bị bỏ như duplicate
            self.queue.delete(queue_name, message.msg_id)
            report.pages_done += 1
            logger.info("[WORKER] [%s] Page %s completed: %s characters", task.job_id, task.page_number, len(text))

        self.finalizer.check(task.job_id)
