"""
PDF extraction tasks.

1) pdf.dispatch_job: API gửi sau khi upload. Đọc số trang, chọn inline hoặc queued.
   - inline: gửi pdf.run_inline_job (fire-and-forget).
   - queued: page rows + message pgmq đã tạo; kick pdf.drain_page_queue ngay, không chờ beat.
2) pdf.run_inline_job: trích toàn bộ tài liệu nhỏ trong một lần chạy.
3) pdf.drain_page_queue: một invocation Bounded Worker (beat định kỳ + kick sau dispatch).

Không autoretry: retry duy nhất là lease của queue (message hết hạn lease thì được giao lại).
drain_page_queue chỉ có hard time_limit, không soft limit, để trang đang làm dở không bị
đánh failed mà được xử lý lại sau khi hết lease.
"""
from __future__ import annotations
import math

from celery import current_app, shared_task

from app.core.config import settings
from app.core.logging import get_logger
from app.services import db_service, queue_service, storage_service
from pdf_core.config_loader import load_budgets
from pdf_core.domain.models import ProcessingMode
from pdf_core.pipeline.completion import JobFinalizer
from pdf_core.pipeline.dispatch import IntakeDispatcher
from pdf_core.pipeline.inline import InlineProcessor
from pdf_core.pipeline.producer import QueueProducer
from pdf_core.pipeline.worker import BoundedWorker

logger = get_logger(__name__)

budgets = load_budgets()

# host kill chỉ xảy ra khi vòng lặp vượt xa max_wall_seconds (một trang rất chậm)
DRAIN_TIME_LIMIT = int(budgets.worker.max_wall_seconds) + 30


def trigger_inline(job_id: str):
    logger.info(f"[DISPATCH] Trigger inline job: job_id={job_id}")
    return current_app.send_task("pdf.run_inline_job", args=[job_id])


def kick_drains(enqueued: int) -> int:
    """Gửi đủ số invocation drain để xử lý `enqueued` trang, tối đa settings.drain_concurrency."""
    count = min(math.ceil(enqueued / budgets.worker.max_pages), settings.drain_concurrency)
    for _ in range(count):
        current_app.send_task("pdf.drain_page_queue")
    logger.info(f"[DISPATCH] Kicked {count} drain invocation(s) for {enqueued} pages")
    return count


@shared_task(name="pdf.dispatch_job")
def dispatch_job(job_id: str):
    logger.info(f"[DISPATCH] Dispatch job: job_id={job_id}")
    dispatcher = IntakeDispatcher(
        store=db_service,
        storage=storage_service,
        producer=QueueProducer(db_service, queue_service, budgets.worker),
        trigger_inline=trigger_inline,
        policy=budgets.dispatch,
    )
    result = dispatcher.dispatch(job_id)
    if result is None:
        return None
    if result.mode is ProcessingMode.QUEUED and result.enqueued:
        try:
            kick_drains(result.enqueued)
        except Exception:
            # beat vẫn drain queue theo chu kỳ
            logger.exception(f"[DISPATCH] Failed to kick drain, waiting for beat: job_id={job_id}")
    return result.model_dump(mode="json")


@shared_task(name="pdf.run_inline_job")
def run_inline_job(job_id: str):
    logger.info(f"[INLINE] Run inline job: job_id={job_id}")
    processor = InlineProcessor(db_service, storage_service, budgets.dispatch)
    report = processor.run(job_id)
    return report.model_dump() if report else None


@shared_task(name="pdf.drain_page_queue", time_limit=DRAIN_TIME_LIMIT)
def drain_page_queue(max_pages: int | None = None):
    budget = budgets.worker
    if max_pages:
        budget = budget.model_copy(update={"max_pages": max_pages})
    worker = BoundedWorker(
        db_service,
        queue_service,
        storage_service,
        budget,
        finalizer=JobFinalizer(db_service),
    )
    report = worker.run()
    if report.failed_pages:
        logger.warning(f"[WORKER] Failed pages this invocation: {report.failed_pages}")
    return report.model_dump()
