#!/usr/bin/env python3
"""
Chạy trực tiếp (không qua Celery) một invocation drain hoặc một job inline, in report dạng JSON.

Cách chạy (cần DB + pgmq + MinIO đang chạy):
  cd apps/worker
  uv run python scripts/run_drain.py drain
  uv run python scripts/run_drain.py drain --max-pages 5
  uv run python scripts/run_drain.py inline 613ee70d1a0c46a1aa7a00107783da62
  uv run python scripts/run_drain.py dispatch 613ee70d1a0c46a1aa7a00107783da62 --no-trigger
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Thư mục worker để import app.*
_worker_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_worker_dir))

from app.services import db_service, queue_service, storage_service
from app.tasks.pdf_tasks import budgets
from pdf_core.pipeline.dispatch import IntakeDispatcher
from pdf_core.pipeline.inline import InlineProcessor
from pdf_core.pipeline.producer import QueueProducer
from pdf_core.pipeline.worker import BoundedWorker


def _print(report) -> None:
    print(json.dumps(report.model_dump(mode="json") if report else None, indent=2, ensure_ascii=False))


def main() -> int:
    parser = argparse.ArgumentParser(description="Chạy drain / inline / dispatch cho PDF extraction, không qua Celery.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_drain = sub.add_parser("drain", help="Một invocation Bounded Worker trên page queue")
    p_drain.add_argument("--max-pages", type=int, default=None, help="Ghi đè max_pages cho lần chạy này")
    p_drain.add_argument("--max-seconds", type=float, default=None, help="Ghi đè max_wall_seconds cho lần chạy này")

    p_inline = sub.add_parser("inline", help="Xử lý inline một job pending")
    p_inline.add_argument("job_id")

    p_dispatch = sub.add_parser("dispatch", help="Dispatch một job pending (inline chạy luôn trong process này)")
    p_dispatch.add_argument("job_id")
    p_dispatch.add_argument("--no-trigger", action="store_true", help="Không chạy inline sau khi dispatch")

    args = parser.parse_args()

    if args.command == "drain":
        update = {}
        if args.max_pages:
            update["max_pages"] = args.max_pages
        if args.max_seconds:
            update["max_wall_seconds"] = args.max_seconds
        budget = budgets.worker.model_copy(update=update)
        _print(BoundedWorker(db_service, queue_service, storage_service, budget).run())
        return 0

    processor = InlineProcessor(db_service, storage_service, budgets.dispatch)
    if args.command == "inline":
        report = processor.run(args.job_id)
        _print(report)
        return 0 if report else 1

    dispatcher = IntakeDispatcher(
        store=db_service,
        storage=storage_service,
        producer=QueueProducer(db_service, queue_service, budgets.worker),
        trigger_inline=(lambda job_id: None) if args.no_trigger else processor.run,
        policy=budgets.dispatch,
    )
    result = dispatcher.dispatch(args.job_id)
    _print(result)
    return 0 if result and not result.error else 1


if __name__ == "__main__":
    sys.exit(main())
