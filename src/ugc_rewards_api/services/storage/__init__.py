"""Video object storage."""

from .video_storage import (
    ALLOWED_CONTENT_TYPES,
    ALLOWED_EXTENSIONS,
    StorageError,
    StorageUnavailableError,
    StorageValidationError,
    StoredVideo,
    UploadTarget,
    VideoStorageService,
    sanitize_filename,
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
