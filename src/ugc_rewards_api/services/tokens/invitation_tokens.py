"""Signed invitation tokens embedded in UGC invitation links.

Token layout: ``<issued_ms>.<expires_ms>.<hex digest>`` where the digest is an
HMAC-SHA256 over ``customer_id:merchant_domain:issued_ms:expires_ms`` keyed with
a server-held secret. Minting is deterministic, so verification recomputes the
token from the same inputs and compares in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

_DELIMITER = ":"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


@dataclass(slots=True, frozen=True)
class ParsedInvitationToken:
    issued_at: datetime
    expires_at: datetime
    digest: str


def _to_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MS


def _from_millis(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


class InvitationTokenCodec:
    """Mints and verifies invitation tokens."""

    def __init__(self, secret: str, *, ttl: timedelta = timedelta(days=7)) -> None:
        if not secret:
            raise ValueError("Invitation token secret must not be empty")
        self._secret = secret.encode("utf-8")
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def mint(self, customer_id: UUID | str, merchant_domain: str, issued_at: datetime) -> str:
        issued_ms = _to_millis(issued_at)
        expires_ms = issued_ms + self._ttl // _ONE_MS
        message = _DELIMITER.join((str(customer_id), merchant_domain, str(issued_ms), str(expires_ms)))
        digest = hmac.new(self._secret, message.encode("utf-8"), hashlib.sha256).hexdigest()
        return f"{issued_ms}.{expires_ms}.{digest}"

    def verify(self, token: str, customer_id: UUID | str, merchant_domain: str, issued_at: datetime) -> bool:
        expected = self.mint(customer_id, merchant_domain, issued_at)
        return hmac.compare_digest(expected.encode("utf-8"), token.encode("utf-8"))

    @staticmethod
    def parse(token: str) -> ParsedInvitationToken | None:
        """Split a token into its parts; ``None`` when it is malformed."""

        parts = token.split(".")
        if len(parts) != 3:
            return None
        issued_raw, expires_raw, digest = parts
        if not issued_raw.isdigit() or not expires_raw.isdigit():
            return None
        if len(digest) != 64:
            return None
        try:
            int(digest, 16)
        except ValueError:
            return None
        return ParsedInvitationToken(
            issued_at=_from_millis(int(issued_raw)),
            expires_at=_from_millis(int(expires_raw)),
            digest=digest,
        )

    @classmethod
    def is_expired(cls, token: str, *, now: datetime | None = None) -> bool:
        parsed = cls.parse(token)
        if parsed is None:
            return True
        current = now or datetime.now(timezone.utc)
        return parsed.expires_at <= current


__all__ = ["InvitationTokenCodec", "ParsedInvitationToken"]
