"""pdf_core: dispatch, inline processing and bounded page workers for PDF text extraction."""
