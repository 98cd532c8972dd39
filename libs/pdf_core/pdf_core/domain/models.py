from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, model_validator


class JobStatus(str, Enum):
    PENDING = "pending"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingMode(str, Enum):
    INLINE = "inline"
    QUEUED = "queued"


class Job(BaseModel):
    id: str
    file_name: str = ""
    file_path: str
    file_size: Optional[int] = None
    status: JobStatus = JobStatus.PENDING
    total_pages: Optional[int] = None
    processed_pages: int = 0
    extracted_text: Optional[str] = None
    parsed_content: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Page(BaseModel):
    job_id: str
    page_number: int = Field(ge=1)
    status: PageStatus = PageStatus.PENDING
    extracted_text: Optional[str] = None
    error_message: Optional[str] = None


class PageTask(BaseModel):
    """Queue message payload: one page of one queued job."""
    job_id: str
    file_path: str
    page_number: int = Field(ge=1)
    total_pages: int = Field(ge=1)

    @model_validator(mode="after")
    def _page_in_range(self) -> "PageTask":
        if self.page_number > self.total_pages:
            raise ValueError(
                f"page_number {self.page_number} exceeds total_pages {self.total_pages}"
            )
        return self


class QueueMessage(BaseModel):
    msg_id: int
    read_count: int = 0
    task: PageTask


class DispatchResult(BaseModel):
    job_id: str
    mode: Optional[ProcessingMode] = None  # None khi job đã bị đánh failed
    total_pages: Optional[int] = None
    triggered: bool = False
    enqueued: int = 0
    error: Optional[str] = None


class InlineReport(BaseModel):
    job_id: str
    total_pages: int
    text_length: int
    text_saved: bool


class WorkerReport(BaseModel):
    pages_done: int = 0
    pages_skipped: int = 0
    pages_duplicate: int = 0
    elapsed_seconds: float = 0.0
    stop_reason: str = ""
    failed_pages: List[str] = Field(default_factory=list)  # "job_id:page_number"
