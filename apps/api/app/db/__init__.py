"""SQLAlchemy 2.x async: engine, session, models."""
from app.db.base import Base
from app.db.session import async_engine, async_session_factory, get_session
from app.db.models import PdfPage, PdfParsingJob

__all__ = ["Base", "async_engine", "async_session_factory", "get_session", "PdfParsingJob", "PdfPage"]
