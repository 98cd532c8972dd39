"""Model bảng pdf_parsing_jobs / pdf_pages (SQLAlchemy 2.x). Worker đọc/ghi cùng bảng bằng psycopg SQL thuần."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class PdfParsingJob(Base):
    __tablename__ = "pdf_parsing_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)
    file_size: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    # pending | queued | processing | completed | failed
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    total_pages: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    processed_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    extracted_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parsed_content: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    pages: Mapped[list["PdfPage"]] = relationship(
        back_populates="job", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self, include_text: bool = True) -> dict[str, Any]:
        d = {
            "id": self.id,
            "file_name": self.file_name,
            "file_path": self.file_path,
            "file_size": self.file_size,
            "status": self.status,
            "total_pages": self.total_pages,
            "processed_pages": self.processed_pages,
            "parsed_content": self.parsed_content,
            "error_message": self.error_message,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_text:
            d["extracted_text"] = self.extracted_text
        return d


class PdfPage(Base):
    """Một trang của job queued; (job_id, page_number) là duy nhất."""

    __tablename__ = "pdf_pages"
    __table_args__ = (UniqueConstraint("job_id", "page_number", name="uq_pdf_pages_job_page"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("pdf_parsing_jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    # pending | processing | completed | failed
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", server_default="pending")
    extracted_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    job: Mapped[PdfParsingJob] = relationship(back_populates="pages")

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_number": self.page_number,
            "status": self.status,
            "extracted_text": self.extracted_text,
            "error_message": self.error_message,
            "updated_at": self.updated_at,
        }
