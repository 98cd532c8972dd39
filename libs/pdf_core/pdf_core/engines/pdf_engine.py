"""PDF engine: đếm trang bằng pypdf (chỉ đọc metadata), trích text từng trang bằng PyMuPDF (fitz).
Số trang luôn 1-based ở mọi hàm public.
"""
from __future__ import annotations
import io
import logging

import fitz
from pypdf import PdfReader

from pdf_core.errors import MetadataError, PageProcessingError
from pdf_core.pipeline.postprocess import normalize_page_text

logger = logging.getLogger(__name__)


def count_pages(data: bytes) -> int:
    """Số trang của tài liệu; MetadataError nếu file hỏng, mã hoá hoặc không có trang nào."""
    if not data:
        raise MetadataError("document is empty")
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            raise MetadataError("document is encrypted")
        total = len(reader.pages)
    except MetadataError:
        raise
    except Exception as e:
        raise MetadataError(f"cannot read page count: {e}") from e
    if total < 1:
        raise MetadataError("document has no pages")
    return total


def open_document(data: bytes) -> fitz.Document:
    try:
        return fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise PageProcessingError(f"cannot open document: {e}") from e


def page_text(doc: fitz.Document, page_number: int) -> str:
    """Text của trang `page_number` (1-based), đã chuẩn hoá dòng."""
    if page_number < 1 or page_number > doc.page_count:
        raise PageProcessingError(
            f"page {page_number} out of range (document has {doc.page_count} pages)"
        )
    try:
        page = doc.load_page(page_number - 1)
        raw = page.get_text("text", sort=True)
    except Exception as e:
        raise PageProcessingError(f"page {page_number}: {e}") from e
    return normalize_page_text(raw)
