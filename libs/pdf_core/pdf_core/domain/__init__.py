"""Domain: model job/page/queue message và máy trạng thái."""
from pdf_core.domain.models import (
    DispatchResult,
    InlineReport,
    Job,
    JobStatus,
    Page,
    PageStatus,
    PageTask,
    ProcessingMode,
    QueueMessage,
    WorkerReport,
)

__all__ = [
    "DispatchResult",
    "InlineReport",
    "Job",
    "JobStatus",
    "Page",
    "PageStatus",
    "PageTask",
    "ProcessingMode",
    "QueueMessage",
    "WorkerReport",
]
