"""Document cache theo từng invocation: file_path -> tài liệu đã mở. Đóng hết khi invocation kết thúc."""
from __future__ import annotations
import logging

from pdf_core.engines import pdf_engine
from pdf_core.ports import BlobStorage

logger = logging.getLogger(__name__)


class DocumentCache:
    def __init__(self, storage: BlobStorage, engine=pdf_engine):
        self.storage = storage
        self.engine = engine
        self._docs: dict = {}

    def get(self, file_path: str):
        doc = self._docs.get(file_path)
        if doc is not None:
            logger.debug("[CACHE] Using cached document: %s", file_path)
            return doc
        logger.info("[CACHE] Downloading document: %s", file_path)
        data = self.storage.download(file_path)
        doc = self.engine.open_document(data)
        self._docs[file_path] = doc
        return doc

    def close(self) -> None:
        for path, doc in self._docs.items():
            try:
                doc.close()
            except Exception:
                logger.warning("[CACHE] Không đóng được document: %s", path)
        self._docs.clear()

    def __enter__(self) -> "DocumentCache":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
