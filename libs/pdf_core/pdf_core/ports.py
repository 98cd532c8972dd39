"""
Collaborator contracts consumed by the pipeline.

The worker app satisfies these with modules of plain functions
(app.services.db_service / queue_service / storage_service); tests use in-memory fakes.
"""
from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from pdf_core.domain.models import Job, JobStatus, Page, PageStatus, QueueMessage


class JobStore(Protocol):
    def get_job(self, job_id: str) -> Optional[Job]: ...

    def update_job(self, job_id: str, **fields: Any) -> None: ...

    def transition_job(
        self,
        job_id: str,
        status: JobStatus,
        allowed_from: Sequence[JobStatus],
        **fields: Any,
    ) -> bool:
        """Single-row guarded UPDATE; True if the row was in allowed_from and got updated."""
        ...

    def record_progress(self, job_id: str, processed_pages: int) -> None:
        """processed_pages = max(processed_pages, value); never decreases."""
        ...

    def insert_pages(self, job_id: str, page_numbers: Sequence[int]) -> None:
        """All rows or none (status pending)."""
        ...

    def transition_page(
        self,
        job_id: str,
        page_number: int,
        status: PageStatus,
        allowed_from: Sequence[PageStatus],
        error_message: Optional[str] = None,
    ) -> bool: ...

    def upsert_page_result(self, job_id: str, page_number: int, text: str) -> bool:
        """Atomic text + completed on (job_id, page_number); never overwrites a failed page."""
        ...

    def list_pages(self, job_id: str) -> List[Page]: ...

    def count_pages(self, job_id: str) -> Dict[PageStatus, int]: ...


class WorkQueue(Protocol):
    def enqueue(self, queue_name: str, message: Dict[str, Any]) -> int: ...

    def dequeue(self, queue_name: str, lease_seconds: int, count: int) -> List[QueueMessage]: ...

    def delete(self, queue_name: str, msg_id: int) -> bool: ...

    def archive(self, queue_name: str, msg_id: int) -> bool: ...


class BlobStorage(Protocol):
    def download(self, path: str) -> bytes: ...


# Fire-and-forget: submit inline processing for job_id; return value is ignored.
InlineTrigger = Callable[[str], Any]
