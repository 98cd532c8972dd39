from datetime import datetime
from pydantic import BaseModel
from typing import Any, Optional


class CreateJobResponse(BaseModel):
    job_id: str
    status: str
    file_name: str
    file_path: str
    file_size: int
    dispatched: bool  # False nếu không gửi được task dispatch (job bị đánh failed)


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    file_name: Optional[str] = None
    file_path: Optional[str] = None  # key file đã upload (MinIO)
    file_size: Optional[int] = None
    total_pages: Optional[int] = None
    processed_pages: int = 0
    extracted_text: Optional[str] = None
    parsed_content: Optional[dict[str, Any]] = None  # numPages, textPerPage, failedPages (queued)
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PageResponse(BaseModel):
    page_number: int
    status: str
    extracted_text: Optional[str] = None
    error_message: Optional[str] = None
    updated_at: Optional[datetime] = None
