"""Declarative base cho SQLAlchemy 2.x, dùng chung cho pdf_parsing_jobs / pdf_pages."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
