"""Invitation records: one per customer and merchant."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.invitation import Invitation
from ugc_rewards_api.models.merchant import Merchant
from ugc_rewards_api.services.tokens.invitation_tokens import InvitationTokenCodec


class InvitationError(RuntimeError):
    """Base exception for invitation failures."""


class InvitationAlreadySentError(InvitationError):
    """Raised when the customer already holds an invitation for the merchant."""


class InvitationTokenInvalidError(InvitationError):
    """Raised when an invitation token is malformed, unknown, expired or forged."""


def token_digest(token: str) -> str:
    """Lookup key stored for a token; the raw token is never persisted."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class InvitationTracker:
    """Records invitations and redeems invitation tokens."""

    def __init__(self, db_session: AsyncSession, codec: InvitationTokenCodec) -> None:
        self._db = db_session
        self._codec = codec

    async def has_invitation(self, customer_id: UUID, merchant_id: UUID) -> bool:
        stmt = select(Invitation.id).where(
            Invitation.customer_id == customer_id,
            Invitation.merchant_id == merchant_id,
        )
        result = await self._db.execute(stmt)
        return result.first() is not None

    async def record_invitation(
        self,
        customer: Customer,
        merchant: Merchant,
        *,
        sent_at: datetime | None = None,
    ) -> tuple[Invitation, str]:
        """Insert the invitation and mint its token without committing.

        The caller commits once the invitation email went out, or rolls back so a
        later order can retry. A concurrent or repeated insert for the same
        customer raises :class:`InvitationAlreadySentError`.
        """

        customer_id = customer.id
        shop_domain = merchant.shop_domain
        issued_at = sent_at or datetime.now(timezone.utc)
        token = self._codec.mint(customer_id, shop_domain, issued_at)
        parsed = self._codec.parse(token)
        invitation = Invitation(
            customer_id=customer_id,
            merchant_id=merchant.id,
            token_digest=token_digest(token),
            # Stored at millisecond precision so verification can recompute the token.
            sent_at=parsed.issued_at if parsed else issued_at,
        )
        self._db.add(invitation)
        try:
            await self._db.flush()
        except IntegrityError as exc:
            await self._db.rollback()
            logger.info(
                "Invitation already recorded",
                customer_id=str(customer_id),
                merchant=shop_domain,
            )
            raise InvitationAlreadySentError(
                f"Customer {customer_id} already invited by {shop_domain}"
            ) from exc

        logger.info(
            "Recorded invitation",
            invitation_id=str(invitation.id),
            customer_id=str(customer_id),
            merchant=shop_domain,
        )
        return invitation, token

    async def find_by_digest(self, digest: str) -> Invitation | None:
        stmt = (
            select(Invitation)
            .options(selectinload(Invitation.customer), selectinload(Invitation.merchant))
            .where(Invitation.token_digest == digest)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def redeem(self, token: str, *, now: datetime | None = None) -> Invitation:
        """Resolve a token to its invitation, checking expiry and signature."""

        token = (token or "").strip()
        parsed = self._codec.parse(token)
        if parsed is None:
            raise InvitationTokenInvalidError("Malformed invitation token")
        if self._codec.is_expired(token, now=now):
            raise InvitationTokenInvalidError("Invitation token has expired")

        invitation = await self.find_by_digest(token_digest(token))
        if invitation is None:
            raise InvitationTokenInvalidError("Unknown invitation token")

        if not self._codec.verify(
            token,
            invitation.customer_id,
            invitation.merchant.shop_domain,
            parsed.issued_at,
        ):
            raise InvitationTokenInvalidError("Invitation token signature mismatch")
        return invitation


__all__ = [
    "InvitationAlreadySentError",
    "InvitationError",
    "InvitationTokenInvalidError",
    "InvitationTracker",
    "token_digest",
]
