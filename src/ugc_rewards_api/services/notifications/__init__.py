"""Notification services package."""

from .backend import EmailBackend, InMemoryEmailBackend, SMTPEmailBackend
from .service import NotificationDeliveryError, NotificationEvent, NotificationService, build_email_backend

__all__ = [
    "EmailBackend",
    "InMemoryEmailBackend",
    "NotificationDeliveryError",
    "NotificationEvent",
    "NotificationService",
    "SMTPEmailBackend",
    "build_email_backend",
]
