"""Single-use upload tokens handed to form respondents."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.upload_token import UploadToken

TOKEN_PREFIX = "ugc_"


class UploadTokenInvalidError(RuntimeError):
    """Raised when an upload token is unknown, used or expired."""


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def looks_like_upload_token(token: str | None) -> bool:
    return bool(token) and token.startswith(TOKEN_PREFIX)


class UploadTokenService:
    def __init__(self, db_session: AsyncSession, *, ttl: timedelta = timedelta(days=7)) -> None:
        self._db = db_session
        self._ttl = ttl

    async def issue(self, customer: Customer, *, form_response_token: str | None = None) -> UploadToken:
        now = datetime.now(timezone.utc)
        record = UploadToken(
            token=f"{TOKEN_PREFIX}{secrets.token_urlsafe(32)}",
            customer_id=customer.id,
            form_response_token=form_response_token,
            expires_at=now + self._ttl,
        )
        self._db.add(record)
        await self._db.commit()
        logger.info("Upload token issued", customer_id=str(customer.id), expires_at=record.expires_at.isoformat())
        return record

    async def resolve(self, token: str, *, now: datetime | None = None) -> UploadToken:
        """Return the unused, unexpired token with its customer and merchant loaded."""

        token = (token or "").strip()
        if not token:
            raise UploadTokenInvalidError("Upload token is required")
        stmt = (
            select(UploadToken)
            .options(selectinload(UploadToken.customer).selectinload(Customer.merchant))
            .where(UploadToken.token == token)
            .execution_options(populate_existing=True)
        )
        record = (await self._db.execute(stmt)).scalar_one_or_none()
        if record is None:
            raise UploadTokenInvalidError("Invalid upload token")
        if record.used_at is not None:
            raise UploadTokenInvalidError("Upload token has already been used")
        current = now or datetime.now(timezone.utc)
        if _as_aware(record.expires_at) <= current:
            raise UploadTokenInvalidError("Upload token has expired")
        return record

    async def consume(self, token: str) -> None:
        """Mark the token used; only the first caller wins. Not committed here."""

        stmt = (
            update(UploadToken)
            .where(UploadToken.token == token, UploadToken.used_at.is_(None))
            .values(used_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        if result.rowcount != 1:
            raise UploadTokenInvalidError("Upload token has already been used")


__all__ = ["TOKEN_PREFIX", "UploadTokenInvalidError", "UploadTokenService", "looks_like_upload_token"]
