"""S3-compatible storage (Cloudflare R2) for customer videos."""

from __future__ import annotations

import asyncio
import posixpath
import re
import time
from dataclasses import dataclass
from typing import Any, Callable
from uuid import UUID

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from ugc_rewards_api.core.settings import Settings

ALLOWED_CONTENT_TYPES = ("video/mp4", "video/webm", "video/quicktime", "video/x-msvideo")
ALLOWED_EXTENSIONS = (".mp4", ".webm", ".mov", ".avi")
KEY_PREFIX = "ugc"


class StorageError(RuntimeError):
    """Base exception for video storage failures."""


class StorageValidationError(StorageError, ValueError):
    """Raised when an upload is rejected before reaching storage."""


class StorageUnavailableError(StorageError):
    """Raised when storage is not configured or the backend call failed."""


@dataclass(slots=True, frozen=True)
class UploadTarget:
    upload_url: str
    video_key: str
    public_url: str
    expires_in: int


@dataclass(slots=True, frozen=True)
class StoredVideo:
    video_key: str
    public_url: str
    size: int


def sanitize_filename(filename: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9.\-]", "_", filename.strip())
    return cleaned or "video"


class VideoStorageService:
    """Validates uploads, presigns PUT URLs and proxies uploads into the bucket."""

    def __init__(
        self,
        settings: Settings,
        *,
        s3_client_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._bucket = (settings.storage_bucket or "").strip()
        self._public_base_url = (settings.storage_public_base_url or "").rstrip("/")
        self._url_ttl = settings.storage_upload_url_ttl_seconds
        self._max_bytes = settings.storage_max_upload_bytes
        self._settings = settings
        self._s3_client_factory = s3_client_factory
        self._client = self._build_client()

    @property
    def is_configured(self) -> bool:
        return bool(self._bucket) and self._client is not None

    @property
    def max_upload_bytes(self) -> int:
        return self._max_bytes

    def validate(self, filename: str, content_type: str, file_size: int | None) -> None:
        if not filename or not filename.strip():
            raise StorageValidationError("Filename is required")
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise StorageValidationError(f"Invalid file type. Allowed: {', '.join(ALLOWED_CONTENT_TYPES)}")
        extension = posixpath.splitext(filename.strip().lower())[1]
        if extension not in ALLOWED_EXTENSIONS:
            raise StorageValidationError(f"Invalid file extension. Allowed: {', '.join(ALLOWED_EXTENSIONS)}")
        if file_size is not None:
            if file_size <= 0:
                raise StorageValidationError("File is empty")
            if file_size > self._max_bytes:
                limit_mb = self._max_bytes // (1024 * 1024)
                raise StorageValidationError(f"File too large. Maximum size is {limit_mb}MB")

    def build_key(self, filename: str, *, shop_domain: str, customer_id: UUID | str) -> str:
        timestamp_ms = int(time.time() * 1000)
        return f"{KEY_PREFIX}/{shop_domain}/{customer_id}/{timestamp_ms}_{sanitize_filename(filename)}"

    @staticmethod
    def key_belongs_to(video_key: str, *, shop_domain: str, customer_id: UUID | str) -> bool:
        prefix = f"{KEY_PREFIX}/{shop_domain}/{customer_id}/"
        return video_key.startswith(prefix) and ".." not in video_key and len(video_key) > len(prefix)

    def public_url(self, video_key: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{video_key.lstrip('/')}"
        return video_key

    async def create_upload_url(
        self,
        filename: str,
        content_type: str,
        *,
        customer_id: UUID | str,
        shop_domain: str,
        file_size: int | None = None,
    ) -> UploadTarget:
        """Presign a PUT for a fresh key scoped to the shop and customer."""

        self.validate(filename, content_type, file_size)
        client = self._require_client()
        video_key = self.build_key(filename, shop_domain=shop_domain, customer_id=customer_id)
        params = {
            "Bucket": self._bucket,
            "Key": video_key,
            "ContentType": content_type,
            "Metadata": {"customer-id": str(customer_id), "shop-domain": shop_domain},
        }
        try:
            upload_url = await asyncio.to_thread(
                client.generate_presigned_url,
                "put_object",
                Params=params,
                ExpiresIn=self._url_ttl,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to presign upload URL", video_key=video_key, error=str(exc))
            raise StorageUnavailableError("Failed to generate upload URL") from exc

        logger.info("Presigned video upload", video_key=video_key, customer_id=str(customer_id), merchant=shop_domain)
        return UploadTarget(
            upload_url=upload_url,
            video_key=video_key,
            public_url=self.public_url(video_key),
            expires_in=self._url_ttl,
        )

    async def upload(
        self,
        payload: bytes,
        filename: str,
        content_type: str,
        *,
        customer_id: UUID | str,
        shop_domain: str,
    ) -> StoredVideo:
        """Server-side upload for clients that cannot reach storage directly."""

        self.validate(filename, content_type, len(payload))
        client = self._require_client()
        video_key = self.build_key(filename, shop_domain=shop_domain, customer_id=customer_id)
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=self._bucket,
                Key=video_key,
                Body=payload,
                ContentType=content_type,
                Metadata={"customer-id": str(customer_id), "shop-domain": shop_domain},
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to store video", video_key=video_key, error=str(exc))
            raise StorageUnavailableError("Failed to upload video") from exc

        logger.info("Stored video via proxy", video_key=video_key, size=len(payload), merchant=shop_domain)
        return StoredVideo(video_key=video_key, public_url=self.public_url(video_key), size=len(payload))

    async def check_bucket(self) -> None:
        """Raise :class:`StorageUnavailableError` when the bucket cannot be reached."""

        client = self._require_client()
        try:
            await asyncio.to_thread(client.head_bucket, Bucket=self._bucket)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            raise StorageUnavailableError(f"Bucket check failed ({code or 'unknown error'})") from exc
        except BotoCoreError as exc:
            raise StorageUnavailableError(f"Storage unreachable ({exc})") from exc

    def _require_client(self) -> Any:
        if not self._bucket or self._client is None:
            raise StorageUnavailableError("Video storage is not configured")
        return self._client

    def _build_client(self) -> Any:
        if self._s3_client_factory is not None:
            return self._s3_client_factory()
        if not self._bucket:
            return None
        config = None
        if self._settings.storage_force_path_style:
            config = Config(s3={"addressing_style": "path"}, signature_version="s3v4")
        else:
            config = Config(signature_version="s3v4")
        return boto3.client(
            "s3",
            region_name=self._settings.storage_region,
            endpoint_url=self._settings.storage_endpoint or None,
            aws_access_key_id=self._settings.storage_access_key_id or None,
            aws_secret_access_key=self._settings.storage_secret_access_key or None,
            config=config,
        )


__all__ = [
    "ALLOWED_CONTENT_TYPES",
    "ALLOWED_EXTENSIONS",
    "StorageError",
    "StorageUnavailableError",
    "StorageValidationError",
    "StoredVideo",
    "UploadTarget",
    "VideoStorageService",
    "sanitize_filename",
]
