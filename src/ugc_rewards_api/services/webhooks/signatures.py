"""HMAC checks for Shopify webhooks and OAuth redirects."""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Mapping

_OAUTH_EXCLUDED_PARAMS = {"hmac", "signature"}


def compute_webhook_signature(body: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of the raw request body, as sent in ``X-Shopify-Hmac-Sha256``."""

    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(body: bytes, signature: str | None, secret: str) -> bool:
    if not signature or not secret:
        return False
    expected = compute_webhook_signature(body, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8"))


def compute_oauth_query_hmac(params: Mapping[str, str], secret: str) -> str:
    """Hex HMAC-SHA256 over the sorted ``key=value`` pairs, ``hmac`` itself excluded."""

    message = "&".join(
        f"{key}={value}" for key, value in sorted(params.items()) if key not in _OAUTH_EXCLUDED_PARAMS
    )
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_oauth_query(params: Mapping[str, str], secret: str) -> bool:
    provided = params.get("hmac")
    if not provided or not secret:
        return False
    expected = compute_oauth_query_hmac(params, secret)
    return hmac.compare_digest(expected.encode("ascii"), provided.strip().lower().encode("utf-8"))


__all__ = [
    "compute_oauth_query_hmac",
    "compute_webhook_signature",
    "verify_oauth_query",
    "verify_webhook_signature",
]
