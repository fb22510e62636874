"""Webhook signature checks and delivery ledger."""

from .ledger import RecordedWebhookEvent, record_webhook_event
from .signatures import (
    compute_oauth_query_hmac,
    compute_webhook_signature,
    verify_oauth_query,
    verify_webhook_signature,
)

__all__ = [
    "RecordedWebhookEvent",
    "compute_oauth_query_hmac",
    "compute_webhook_signature",
    "record_webhook_event",
    "verify_oauth_query",
    "verify_webhook_signature",
]
