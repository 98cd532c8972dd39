"""
Centralized logging configuration using loguru.
Format: time | level | name | function | message (đồng bộ kiểu với API, có thêm function).
Log stdlib của pdf_core (logging.getLogger(__name__)) được chuyển sang loguru qua InterceptHandler.
"""
import logging
import os
import sys
from loguru import logger

# Remove default handler
logger.remove()

_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
if _LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR"):
    _LOG_LEVEL = "INFO"
_FORMAT_CONSOLE = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> | <cyan>{function}</cyan> | <level>{message}</level>"
)
_FORMAT_FILE = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name} | {function} | {message}"
)

# Console handler
logger.add(
    sys.stdout,
    colorize=True,
    format=_FORMAT_CONSOLE,
    level=_LOG_LEVEL,
)

# File handler (theo ngày, tên file worker)
logger.add(
    "logs/worker_{time:YYYY-MM-DD}.log",
    rotation="00:00",
    retention="30 days",
    level="INFO",
    format=_FORMAT_FILE,
)


class InterceptHandler(logging.Handler):
    """Chuyển record stdlib sang loguru, giữ level và tên logger gốc."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        # {name}/{function} trong format lấy từ record gốc, không phải từ emit
        logger.patch(lambda r: r.update(name=record.name, function=record.funcName)).opt(
            exception=record.exc_info
        ).log(level, record.getMessage())


_core_logger = logging.getLogger("pdf_core")
_core_logger.handlers = [InterceptHandler()]
_core_logger.setLevel(_LOG_LEVEL)
_core_logger.propagate = False


def get_logger(name: str = "worker"):
    """Lấy logger gắn với tên module (giống API). Log sẽ có {name} và {function}."""
    return logger.bind(name=name)


# Export
__all__ = ["logger", "get_logger", "InterceptHandler"]
