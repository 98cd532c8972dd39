"""Logging configuration: format, level, console + file theo ngày (tự tạo file nếu chưa có)."""
import logging
import sys
from datetime import date
from pathlib import Path

from app.core.config import settings


_logging_configured = False


def _log_path_for(day: str) -> Path:
    """logs/api.log -> logs/api-YYYY-MM-DD.log; base là thư mục -> <dir>/api-YYYY-MM-DD.log."""
    base = Path(settings.log_file)
    if base.suffix:
        return base.parent / f"{base.stem}-{day}{base.suffix}"
    return base / f"api-{day}.log"


def _today() -> str:
    return date.today().strftime("%Y-%m-%d")


class DailyFileHandler(logging.FileHandler):
    """Handler ghi log theo ngày: sang ngày mới thì đóng file cũ, mở file mới."""

    def __init__(self, encoding: str = "utf-8"):
        self._current_day = _today()
        path = _log_path_for(self._current_day)
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(str(path), encoding=encoding, mode="a")

    def emit(self, record: logging.LogRecord) -> None:
        day = _today()
        if day != self._current_day:
            self.acquire()
            try:
                self.close()
                path = _log_path_for(day)
                path.parent.mkdir(parents=True, exist_ok=True)
                self.baseFilename = str(path.resolve())
                self._current_day = day
                self.stream = self._open()
            finally:
                self.release()
        super().emit(record)
        self.flush()


def setup_logging() -> None:
    """Cấu hình logging cho app: format, level, handler (console + file theo ngày)."""
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    level = getattr(logging, settings.log_level, logging.INFO)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(level)
    _log_file_used = None

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.log_file:
        try:
            fh = DailyFileHandler(encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(formatter)
            root.addHandler(fh)
            # Ghi access log của uvicorn vào file (uvicorn có thể không propagate lên root)
            for uvicorn_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
                logging.getLogger(uvicorn_name).addHandler(fh)
            _log_file_used = fh.baseFilename
        except OSError as e:
            root.warning("Không mở được log file %s: %s", settings.log_file, e)

    for name in ("app", "pdf_core"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("app").info("Đã cấu hình log: mức=%s, file=%s", settings.log_level, _log_file_used or "chỉ console")


def get_logger(name: str = "app") -> logging.Logger:
    """Lấy logger để ghi log trong module."""
    return logging.getLogger(name)
