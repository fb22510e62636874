"""Paid-order webhook handling: count orders and invite eligible customers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.models.webhook_event import WebhookProviderEnum
from ugc_rewards_api.services.customers import CustomerLedger, ExternalCustomer, is_eligible
from ugc_rewards_api.services.invitations import InvitationAlreadySentError, InvitationTracker
from ugc_rewards_api.services.merchants import MerchantService
from ugc_rewards_api.services.notifications import NotificationDeliveryError, NotificationService
from ugc_rewards_api.services.tokens import InvitationTokenCodec
from ugc_rewards_api.services.webhooks import record_webhook_event

InvitationStatus = Literal["not_eligible", "sent", "already_sent", "failed"]
OrderEventStatus = Literal["processed", "ignored", "duplicate"]

ORDER_CREATED_TOPIC = "orders/create"


class OrderPayloadError(ValueError):
    """Raised when an order payload cannot be interpreted."""


@dataclass(slots=True)
class OrderOutcome:
    status: OrderEventStatus
    message: str | None = None
    customer_email: str | None = None
    orders_count: int | None = None
    ugc_eligible: bool | None = None
    invitation_status: InvitationStatus | None = None


class OrderEventProcessor:
    """Runs the order -> count -> eligibility -> invitation flow for one webhook."""

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        codec: InvitationTokenCodec,
        notifications: NotificationService,
    ) -> None:
        self._db = db_session
        self._ledger = CustomerLedger(db_session)
        self._tracker = InvitationTracker(db_session, codec)
        self._merchants = MerchantService(db_session)
        self._notifications = notifications

    async def handle_order(self, shop_domain: str, payload: Mapping[str, Any]) -> OrderOutcome:
        customer_payload = payload.get("customer")
        if not isinstance(customer_payload, Mapping):
            return OrderOutcome(status="ignored", message="No customer in order")
        if payload.get("financial_status") != "paid":
            return OrderOutcome(status="ignored", message="Order not paid yet")

        try:
            external = ExternalCustomer.from_payload(customer_payload)
        except ValueError as exc:
            raise OrderPayloadError(str(exc)) from exc

        merchant = await self._merchants.require_by_domain(shop_domain)
        shop_domain = merchant.shop_domain
        customer = await self._ledger.find_or_create(external, merchant)
        customer_id = customer.id

        order_id = payload.get("id")
        if order_id is not None:
            recorded = await record_webhook_event(
                self._db,
                provider=WebhookProviderEnum.SHOPIFY,
                external_id=f"{shop_domain}:{ORDER_CREATED_TOPIC}:{order_id}",
                event_type=ORDER_CREATED_TOPIC,
            )
            if not recorded.created:
                current = await self._ledger.get(customer_id)
                return OrderOutcome(
                    status="duplicate",
                    message="Order already processed",
                    customer_email=current.email if current else None,
                    orders_count=current.orders_count if current else None,
                )

        # Commits the ledger row above together with the new count.
        customer = await self._ledger.increment_order_count(customer_id)
        email = customer.email
        orders_count = customer.orders_count
        logger.info(
            "Order processed",
            order_id=str(order_id) if order_id is not None else None,
            order_number=payload.get("order_number"),
            customer=email,
            orders_count=orders_count,
            merchant=shop_domain,
        )

        eligible = is_eligible(orders_count)
        invitation_status: InvitationStatus = "not_eligible"
        if eligible:
            invitation_status = await self._invite(shop_domain, customer_id)

        return OrderOutcome(
            status="processed",
            customer_email=email,
            orders_count=orders_count,
            ugc_eligible=eligible,
            invitation_status=invitation_status,
        )

    async def _invite(self, shop_domain: str, customer_id: UUID) -> InvitationStatus:
        """Insert the invitation, email it, then commit; an email failure undoes the insert."""

        merchant = await self._merchants.require_by_domain(shop_domain)
        if await self._tracker.has_invitation(customer_id, merchant.id):
            logger.info("Customer already invited", customer_id=str(customer_id), merchant=shop_domain)
            return "already_sent"

        customer = await self._ledger.get(customer_id)
        if customer is None:
            return "failed"
        try:
            _, token = await self._tracker.record_invitation(customer, merchant)
        except InvitationAlreadySentError:
            return "already_sent"

        try:
            await self._notifications.send_invitation(customer, merchant, token)
        except NotificationDeliveryError as exc:
            await self._db.rollback()
            logger.warning(
                "Invitation email failed; invitation not recorded",
                customer_id=str(customer_id),
                merchant=shop_domain,
                error=str(exc),
            )
            return "failed"

        await self._db.commit()
        logger.info("UGC invitation sent", customer_id=str(customer_id), merchant=shop_domain)
        return "sent"


__all__ = ["OrderEventProcessor", "OrderOutcome", "OrderPayloadError", "ORDER_CREATED_TOPIC"]
