"""
File storage for uploaded provider documents.

Two drivers, chosen by STORAGE_DRIVER:
  local: files are written under LOCAL_UPLOADS_DIR and served from /uploads
  s3:    objects are put into S3_BUCKET through a boto3 client created on first use
"""
import logging
import os
import time
import uuid
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config

from marketplace.core.config import settings

logger = logging.getLogger(__name__)

_s3_client = None


@dataclass
class StoredFile:
    key: str
    url: str
    size: int
    file_name: str
    mime_type: Optional[str] = None


def get_s3_client():
    global _s3_client
    if _s3_client is not None:
        return _s3_client

    if not settings.S3_REGION or not settings.S3_BUCKET:
        raise RuntimeError("S3 configuration missing. Please set S3_REGION and S3_BUCKET env vars.")

    # a failed put or delete surfaces to the caller on the first attempt
    kwargs = {
        "region_name": settings.S3_REGION,
        "config": Config(retries={"max_attempts": 0, "mode": "standard"}),
    }
    if settings.S3_ENDPOINT:
        kwargs["endpoint_url"] = settings.S3_ENDPOINT
    if settings.S3_ACCESS_KEY_ID and settings.S3_SECRET_ACCESS_KEY:
        kwargs["aws_access_key_id"] = settings.S3_ACCESS_KEY_ID
        kwargs["aws_secret_access_key"] = settings.S3_SECRET_ACCESS_KEY

    _s3_client = boto3.client("s3", **kwargs)
    logger.info(f"S3 client initialized for bucket: {settings.S3_BUCKET}")
    return _s3_client


def build_file_key(folder: str, original_name: str):
    """Returns (key, file_name) where key is ``<folder>/<epoch-ms>-<uuid4><ext>``."""
    ext = os.path.splitext(original_name or "")[1]
    file_name = f"{int(time.time() * 1000)}-{uuid.uuid4()}{ext}"
    clean_folder = (folder or "").replace("\\", "/").strip("/")
    key = f"{clean_folder}/{file_name}" if clean_folder else file_name
    return key, file_name


def _local_path(key: str) -> str:
    root = os.path.abspath(settings.LOCAL_UPLOADS_DIR)
    target = os.path.abspath(os.path.join(root, *key.split("/")))
    if os.path.commonpath([root, target]) != root:
        raise ValueError(f"Storage key escapes uploads directory: {key}")
    return target


def _public_url(base: str, key: str) -> str:
    return f"{base.rstrip('/')}/{key}"


# --------------------------
# Local driver
# --------------------------
def _save_local(content: bytes, key: str, file_name: str, content_type: Optional[str]) -> StoredFile:
    path = _local_path(key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(content)

    return StoredFile(
        key=key,
        url=_public_url(settings.STORAGE_PUBLIC_URL or "/uploads", key),
        size=len(content),
        file_name=file_name,
        mime_type=content_type,
    )


def _delete_local(key: str) -> None:
    try:
        os.remove(_local_path(key))
    except FileNotFoundError:
        logger.debug(f"Local file already removed: {key}")


# --------------------------
# S3 driver
# --------------------------
def _save_s3(content: bytes, key: str, file_name: str, content_type: Optional[str]) -> StoredFile:
    client = get_s3_client()
    extra = {"ContentType": content_type} if content_type else {}
    client.put_object(Bucket=settings.S3_BUCKET, Key=key, Body=content, **extra)

    base = settings.STORAGE_PUBLIC_URL or f"https://{settings.S3_BUCKET}.s3.{settings.S3_REGION}.amazonaws.com"
    return StoredFile(
        key=key,
        url=_public_url(base, key),
        size=len(content),
        file_name=file_name,
        mime_type=content_type,
    )


def _delete_s3(key: str) -> None:
    client = get_s3_client()
    client.delete_object(Bucket=settings.S3_BUCKET, Key=key)


# --------------------------
# Public API
# --------------------------
def save_file(
    content: bytes, original_name: str, folder: str, content_type: Optional[str] = None
) -> StoredFile:
    key, file_name = build_file_key(folder, original_name)
    if settings.STORAGE_DRIVER == "s3":
        stored = _save_s3(content, key, file_name, content_type)
    else:
        stored = _save_local(content, key, file_name, content_type)
    logger.info(f"Stored {stored.size} bytes at {stored.key}")
    return stored


def delete_file(key: Optional[str]) -> None:
    if not key:
        return
    if settings.STORAGE_DRIVER == "s3":
        _delete_s3(key)
    else:
        _delete_local(key)
    logger.info(f"Deleted stored file {key}")
