"""
Máy trạng thái job/page.

Job:  pending → {queued, processing, failed}; queued → {processing, failed};
      processing → {completed, failed}; completed/failed là trạng thái cuối.
Page: pending → processing → {completed, failed}; processing → processing chỉ dùng
      khi message được giao lại sau khi hết lease.

Store không cho phép ghi trạng thái ngoài các cạnh này: mỗi transition là một
UPDATE có điều kiện `status IN allowed_from` (xem sources_for).
"""
from __future__ import annotations
from typing import Dict, FrozenSet, Tuple

from pdf_core.domain.models import JobStatus, PageStatus

JOB_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.QUEUED, JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.QUEUED: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

PAGE_TRANSITIONS: Dict[PageStatus, FrozenSet[PageStatus]] = {
    PageStatus.PENDING: frozenset({PageStatus.PROCESSING}),
    PageStatus.PROCESSING: frozenset({PageStatus.PROCESSING, PageStatus.COMPLETED, PageStatus.FAILED}),
    PageStatus.COMPLETED: frozenset(),
    PageStatus.FAILED: frozenset(),
}

TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
TERMINAL_PAGE_STATUSES = frozenset({PageStatus.COMPLETED, PageStatus.FAILED})


def sources_for(target) -> Tuple:
    """Các trạng thái được phép đi tới `target`, theo thứ tự khai báo (dùng làm allowed_from)."""
    table = JOB_TRANSITIONS if isinstance(target, JobStatus) else PAGE_TRANSITIONS
    return tuple(src for src, targets in table.items() if target in targets)


def is_terminal(status) -> bool:
    return status in TERMINAL_JOB_STATUSES or status in TERMINAL_PAGE_STATUSES
