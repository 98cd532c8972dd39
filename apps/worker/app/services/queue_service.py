"""
Work queue trên pgmq (extension PostgreSQL): send / read với visibility timeout / delete / archive.

pgmq.read không block: queue rỗng trả về danh sách rỗng ngay.
Message có payload không hợp lệ được archive luôn để không bị giao lại mãi,
rồi dequeue đọc tiếp nên worker không tưởng nhầm là queue rỗng.
"""
from typing import Any, Dict, List

import psycopg
from pydantic import ValidationError
from psycopg.types.json import Jsonb

from app.core.logging import get_logger
from app.services.db_service import db_conn
from pdf_core.domain.models import PageTask, QueueMessage
from pdf_core.errors import PersistenceError

logger = get_logger(__name__)


def _execute(op: str, query: str, params: tuple):
    try:
        with db_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()
    except psycopg.Error as e:
        logger.error(f"[QUEUE] {op} failed: {e}")
        raise PersistenceError(f"queue {op} failed: {e}") from e


def ensure_queue(queue_name: str) -> None:
    logger.info(f"[QUEUE] Ensuring queue exists: {queue_name}")
    _execute("create", "SELECT pgmq.create(%s)", (queue_name,))


def enqueue(queue_name: str, message: Dict[str, Any]) -> int:
    rows = _execute("send", "SELECT * FROM pgmq.send(%s, %s)", (queue_name, Jsonb(message)))
    return int(rows[0][0])


def dequeue(queue_name: str, lease_seconds: int, count: int) -> List[QueueMessage]:
    """Đọc tới `count` message hợp lệ; message lỗi payload bị archive và đọc tiếp thay cho nó."""
    out: List[QueueMessage] = []
    while len(out) < count:
        rows = _execute(
            "read",
            "SELECT msg_id, read_ct, message FROM pgmq.read(%s, %s, %s)",
            (queue_name, lease_seconds, count - len(out)),
        )
        if not rows:
            break
        for msg_id, read_ct, payload in rows:
            try:
                task = PageTask.model_validate(payload)
            except ValidationError as e:
                logger.error(f"[QUEUE] Invalid payload, archiving msg_id={msg_id}: {e}")
                archive(queue_name, msg_id)
                continue
            out.append(QueueMessage(msg_id=msg_id, read_count=read_ct, task=task))
    return out


def delete(queue_name: str, msg_id: int) -> bool:
    rows = _execute("delete", "SELECT pgmq.delete(%s, %s::bigint)", (queue_name, msg_id))
    return bool(rows and rows[0][0])


def archive(queue_name: str, msg_id: int) -> bool:
    rows = _execute("archive", "SELECT pgmq.archive(%s, %s::bigint)", (queue_name, msg_id))
    return bool(rows and rows[0][0])
