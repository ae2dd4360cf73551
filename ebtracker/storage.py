"""Blob storage on Cloudflare R2 (S3 API) for deliverables and proposal files"""

import logging
import re
import time
from typing import Optional

import boto3
from botocore.config import Config

from .config import R2_ACCESS_KEY_ID, R2_ACCOUNT_ID, R2_BUCKET_NAME, R2_SECRET_ACCESS_KEY

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour)
PRESIGNED_URL_EXPIRATION = 3600

UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def safe_filename(filename: Optional[str]) -> str:
    name = (filename or "file").replace("\\", "/").split("/")[-1]
    return UNSAFE_FILENAME_CHARS.sub("_", name)[:200] or "file"


def build_key(prefix: str, filename: Optional[str]) -> str:
    """`{prefix}/{epoch millis}-{sanitized name}`"""
    return f"{prefix}/{int(time.time() * 1000)}-{safe_filename(filename)}"


def upload_blob(key: str, contents: bytes, content_type: Optional[str]) -> str:
    r2 = get_r2_client()
    r2.put_object(
        Bucket=R2_BUCKET_NAME,
        Key=key,
        Body=contents,
        ContentType=content_type or "application/octet-stream",
    )
    logger.info(f"📤 Uploaded {key} ({len(contents)} bytes)")
    return key


def delete_blob(key: str) -> bool:
    """Delete a blob; failures are logged and reported, not raised"""
    try:
        get_r2_client().delete_object(Bucket=R2_BUCKET_NAME, Key=key)
        logger.info(f"🗑️ Deleted blob {key}")
        return True
    except Exception as e:
        logger.warning(f"⚠️ Storage delete failed for {key}: {e}")
        return False


def generate_presigned_url(key: str, expiration: int = PRESIGNED_URL_EXPIRATION) -> Optional[str]:
    """Presigned GET URL for a private object, or None if signing fails"""
    try:
        return get_r2_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": R2_BUCKET_NAME, "Key": key},
            ExpiresIn=expiration,
        )
    except Exception as e:
        logger.error(f"❌ Failed to generate presigned URL for key {key}: {e}")
        return None
