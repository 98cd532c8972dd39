from pathlib import Path

from pydantic import BaseModel
import os

# Load infra/.env khi chạy worker (apps/worker/app/core/config.py -> repo root = 4 levels up)
_repo_root = Path(__file__).resolve().parent.parent.parent.parent.parent
_infra_env = _repo_root / "infra" / ".env"
if _infra_env.exists():
    from dotenv import load_dotenv
    load_dotenv(_infra_env)

# budgets (pdf_core.config_loader) tìm infra/system_config.yml từ repo root nếu chưa cấu hình
os.environ.setdefault("PDF_CONFIG_BASE", str(_repo_root))


def _database_url() -> str:
    """Ưu tiên DATABASE_URL; không có thì lắp từ POSTGRES_* (sync với API)."""
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        # API dùng driver asyncpg; psycopg cần URL thuần postgresql://
        return url.replace("postgresql+asyncpg://", "postgresql://", 1)
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    user = os.getenv("POSTGRES_USER", "pdf")
    password = os.getenv("POSTGRES_PASSWORD", "pdf")
    db = os.getenv("POSTGRES_DB", "pdf")
    return f"postgresql://{user}:{password}@{host}:{port}/{db}"


def _s3_endpoint() -> str:
    """S3/MinIO endpoint: ưu tiên S3_ENDPOINT, fallback MINIO_ENDPOINT + MINIO_SECURE."""
    ep = os.getenv("S3_ENDPOINT")
    if ep:
        return ep
    minio_ep = os.getenv("MINIO_ENDPOINT", "")
    if not minio_ep:
        return ""
    scheme = "https" if os.getenv("MINIO_SECURE", "false").lower() in ("true", "1") else "http"
    return f"{scheme}://{minio_ep}"


class Settings(BaseModel):
    database_url: str = _database_url()
    s3_endpoint: str = _s3_endpoint()
    s3_access_key: str = os.getenv("S3_ACCESS_KEY") or os.getenv("MINIO_ACCESS_KEY", "")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY") or os.getenv("MINIO_SECRET_KEY", "")
    s3_bucket: str = os.getenv("S3_BUCKET") or os.getenv("MINIO_PDF_BUCKET", "pdf-uploads")
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "")
    celery_result_backend: str = os.getenv("CELERY_RESULT_BACKEND", "")
    # chu kỳ beat cho pdf.drain_page_queue (giây)
    drain_interval_seconds: float = float(os.getenv("DRAIN_INTERVAL_SECONDS", "60"))
    # số invocation drain tối đa được kick ngay sau một lần dispatch queued
    drain_concurrency: int = int(os.getenv("DRAIN_CONCURRENCY", "4"))


settings = Settings()
