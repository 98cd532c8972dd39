"""Error taxonomy shared by the API, the dispatcher and the workers."""
from __future__ import annotations


class PdfJobError(Exception):
    """Base for every error the extraction pipeline raises on purpose."""


class ValidationError(PdfJobError):
    """Upload rejected before a job exists (wrong type, empty, too large)."""


class MetadataError(PdfJobError):
    """Document unreadable or its page count cannot be determined."""


class StorageError(PdfJobError):
    """Blob download/upload failed."""


class PageProcessingError(PdfJobError):
    """Text extraction failed for a single page."""


class PersistenceError(PdfJobError):
    """A required write to the state store failed."""


def describe(exc: BaseException) -> str:
    """Error detail as stored in error_message columns: '<Type>: <message>'."""
    message = str(exc) or "Unknown error"
    return f"{type(exc).__name__}: {message}"
