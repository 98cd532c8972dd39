from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from app.api.v1.routes_jobs import router as jobs_router
from app.core.config import settings
from app.core.logging import setup_logging, get_logger
from app.db.base import Base
from app.db import models  # noqa: F401  # đăng ký model với Base.metadata
from app.db.session import async_engine, async_session_factory
from app.services.storage_service import ensure_bucket, storage_configured

setup_logging()


def _mask_broker_url(url: str) -> str:
    """Ẩn mật khẩu trong URL khi log."""
    if not url or "@" not in url:
        return url.split("/")[0] if url else ""
    return f"...@{url.split('@', 1)[1].split('/')[0]}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    log = get_logger("app")
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        log.info("[DB] Kết nối Postgres thành công (host=%s, db=%s)", settings.postgres_host, settings.postgres_db)
    except Exception as e:
        log.exception("[DB] Lỗi kết nối Postgres khi khởi động (host=%s, db=%s): %s", settings.postgres_host, settings.postgres_db, e)
        raise
    try:
        log.info("[DB] Kiểm tra / tạo bảng (create_all)...")
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("[DB] ✅ Bảng đã sẵn sàng (pdf_parsing_jobs, pdf_pages)")
    except Exception as e:
        log.exception("[DB] Lỗi tạo bảng khi khởi động: %s", e)
        raise
    # pgmq: worker tạo queue khi khởi động; API chỉ bật extension nếu có quyền
    try:
        async with async_engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS pgmq"))
        log.info("[DB] ✅ Extension pgmq sẵn sàng")
    except Exception as e:
        log.warning("[DB] Không bật được extension pgmq (job lớn sẽ lỗi khi enqueue): %s", e)
    if storage_configured():
        ensure_bucket()
    # Redis (Celery broker): kiểm tra kết nối để đảm bảo gửi task được
    if settings.celery_broker_url:
        try:
            log.info("[REDIS] Đang kiểm tra kết nối Redis (broker)...")
            from app.core.deps import celery_app
            with celery_app.connection_or_acquire() as conn:
                conn.ensure_connection(max_retries=1)
            log.info("[REDIS] ✅ Kết nối Redis thành công (broker=%s)", _mask_broker_url(settings.celery_broker_url))
        except Exception as e:
            log.exception("[REDIS] ❌ Không kết nối được Redis (broker). Job mới sẽ bị đánh failed khi gửi dispatch: %s", e)
            # Không raise để API vẫn chạy (đọc job/page vẫn dùng được)
    else:
        log.warning("[REDIS] CELERY_BROKER_URL chưa cấu hình. Sẽ không gửi được task dispatch.")
    yield
    await async_engine.dispose()


app = FastAPI(title="PDF Extraction API", lifespan=lifespan)

# CORS: cho phép frontend (vd. Angular localhost:4200) gọi API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:4200", "http://127.0.0.1:4200"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs_router)


@app.get("/health")
def health():
    return {"ok": True, "storage": storage_configured(), "broker": bool(settings.celery_broker_url)}
