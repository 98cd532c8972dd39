import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.logging import get_logger
from pdf_core.errors import StorageError

logger = get_logger(__name__)


def s3_client():
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint or None,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
    )


def ensure_bucket():
    logger.info(f"[STORAGE] Ensuring bucket exists: {settings.s3_bucket}")
    c = s3_client()
    try:
        c.head_bucket(Bucket=settings.s3_bucket)
        logger.info(f"[STORAGE] ✅ Bucket already exists: {settings.s3_bucket}")
    except ClientError:
        c.create_bucket(Bucket=settings.s3_bucket)
        logger.info(f"[STORAGE] ✅ Bucket created: {settings.s3_bucket}")


def download(path: str) -> bytes:
    logger.debug(f"[STORAGE] download: key={path}")
    try:
        obj = s3_client().get_object(Bucket=settings.s3_bucket, Key=path)
        return obj["Body"].read()
    except (BotoCoreError, ClientError) as e:
        raise StorageError(f"cannot download {path}: {e}") from e
