"""S3-compatible object storage helpers backed by MinIO client."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import TYPE_CHECKING, Any

logger = logging.getLogger(__name__)


if TYPE_CHECKING:
    from minio import Minio


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Runtime configuration for S3-compatible object storage."""

    enabled: bool
    endpoint: str
    access_key: str
    secret_key: str
    bucket: str
    secure: bool
    region: str | None
    link_expiry_hours: int


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    """Load storage configuration from environment."""

    return StorageConfig(
        enabled=_env_flag("TUNEFLOW_STORAGE_ENABLED"),
        endpoint=os.getenv("TUNEFLOW_S3_ENDPOINT", "minio:9000"),
        access_key=os.getenv("TUNEFLOW_S3_ACCESS_KEY", "minioadmin"),
        secret_key=os.getenv("TUNEFLOW_S3_SECRET_KEY", "minioadmin"),
        bucket=os.getenv("TUNEFLOW_S3_BUCKET", "tuneflow-releases"),
        secure=_env_flag("TUNEFLOW_S3_SECURE"),
        region=os.getenv("TUNEFLOW_S3_REGION"),
        link_expiry_hours=int(os.getenv("TUNEFLOW_S3_LINK_EXPIRY_HOURS", "24")),
    )


class StorageWriteError(RuntimeError):
    """Raised when an asset could not be written to object storage."""


@lru_cache(maxsize=1)
def get_storage_client() -> Any:
    """Build and cache a MinIO client for object storage."""

    from minio import Minio

    config = load_storage_config()
    return Minio(
        endpoint=config.endpoint,
        access_key=config.access_key,
        secret_key=config.secret_key,
        secure=config.secure,
        region=config.region,
    )


def store_release_asset(*, object_name: str, payload: bytes, content_type: str = "application/octet-stream") -> str:
    """Store a release asset and return a presigned download link.

    Raises ``StorageWriteError`` when storage is disabled or the write fails.
    """

    config = load_storage_config()
    if not config.enabled:
        raise StorageWriteError("Object storage is disabled; set TUNEFLOW_STORAGE_ENABLED=true.")

    try:
        client = get_storage_client()
        if not client.bucket_exists(config.bucket):
            client.make_bucket(config.bucket)

        client.put_object(
            bucket_name=config.bucket,
            object_name=object_name,
            data=_bytes_to_stream(payload),
            length=len(payload),
            content_type=content_type,
        )

        return client.presigned_get_object(
            bucket_name=config.bucket,
            object_name=object_name,
            expires=timedelta(hours=config.link_expiry_hours),
        )
    except Exception as error:  # noqa: BLE001
        logger.warning("Release asset storage failed.", extra={"object_name": object_name}, exc_info=error)
        raise StorageWriteError(f"Could not store {object_name}.") from error


def _bytes_to_stream(payload: bytes):
    from io import BytesIO

    return BytesIO(payload)
