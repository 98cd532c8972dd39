"""Kiểm tra file upload trước khi tạo job; đặt đường dẫn lưu trữ cho file."""
from __future__ import annotations
import re
from typing import Optional

from pdf_core.errors import ValidationError

MAX_UPLOAD_BYTES = 50 * 1024 * 1024

PDF_CONTENT_TYPE = "application/pdf"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def validate_upload(
    filename: Optional[str],
    content_type: Optional[str],
    size: int,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> None:
    ct = (content_type or "").lower()
    name = (filename or "").lower()
    is_pdf = ct == PDF_CONTENT_TYPE or (ct in ("", "application/octet-stream") and name.endswith(".pdf"))
    if not is_pdf:
        raise ValidationError("File must be a PDF")
    if size <= 0:
        raise ValidationError("File is empty")
    if size > max_bytes:
        raise ValidationError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")


def sanitize_filename(filename: Optional[str]) -> str:
    return _UNSAFE_CHARS.sub("_", filename or "") or "document.pdf"


def storage_path(job_id: str, filename: Optional[str]) -> str:
    return f"uploads/{job_id}/{sanitize_filename(filename)}"
