"""PDF engines: pypdf (metadata/đếm trang), PyMuPDF (trích text theo trang)."""
from pdf_core.engines.pdf_engine import count_pages, open_document, page_text

__all__ = ["count_pages", "open_document", "page_text"]
