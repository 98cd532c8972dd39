from __future__ import annotations
import re
from typing import Iterable

PAGE_SEPARATOR = "\n"

_BLANK_RUN = re.compile(r"\n{3,}")


def normalize_page_text(text: str) -> str:
    # bỏ khoảng trắng cuối dòng, gộp nhiều dòng trống liên tiếp
    lines = [line.rstrip() for line in (text or "").replace("\r\n", "\n").split("\n")]
    return _BLANK_RUN.sub("\n\n", "\n".join(lines)).strip()


def join_pages(texts: Iterable[str], separator: str = PAGE_SEPARATOR) -> str:
    """Ghép text các trang theo thứ tự truyền vào; không strip kết quả để giữ đúng ranh giới trang."""
    return separator.join(texts)
