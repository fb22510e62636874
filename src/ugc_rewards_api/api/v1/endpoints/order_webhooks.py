"""Shopify order webhooks."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.api.dependencies.services import (
    get_app_settings,
    get_notification_service,
    get_token_codec,
)
from ugc_rewards_api.core.settings import Settings
from ugc_rewards_api.db.session import get_session
from ugc_rewards_api.observability.tracing import annotate_current_span
from ugc_rewards_api.schemas.webhooks import OrderWebhookResponse
from ugc_rewards_api.services.merchants import MerchantNotFoundError
from ugc_rewards_api.services.notifications import NotificationService
from ugc_rewards_api.services.orders import OrderEventProcessor, OrderPayloadError
from ugc_rewards_api.services.tokens import InvitationTokenCodec
from ugc_rewards_api.services.webhooks import verify_webhook_signature

router = APIRouter(prefix="/webhooks/orders", tags=["webhooks"])


@router.post("/create", response_model=OrderWebhookResponse, response_model_exclude_none=True)
async def shopify_order_created(
    request: Request,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
    codec: InvitationTokenCodec = Depends(get_token_codec),
    notifications: NotificationService = Depends(get_notification_service),
) -> OrderWebhookResponse:
    """Count a paid order and invite the customer once they become eligible."""

    signature = request.headers.get("X-Shopify-Hmac-Sha256")
    shop_domain = request.headers.get("X-Shopify-Shop-Domain")
    if not signature or not shop_domain:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required headers")

    secret = settings.shopify_webhook_secret
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Shopify webhook secret not configured",
        )

    body = await request.body()
    if not verify_webhook_signature(body, signature, secret):
        logger.warning("Rejected order webhook with invalid signature", merchant=shop_domain)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload body") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload body")

    annotate_current_span(shop_domain=shop_domain, order_id=payload.get("id"))
    processor = OrderEventProcessor(db, codec=codec, notifications=notifications)
    try:
        outcome = await processor.handle_order(shop_domain, payload)
    except OrderPayloadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except MerchantNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    annotate_current_span(order_status=outcome.status, invitation_status=outcome.invitation_status)
    if outcome.status == "duplicate":
        logger.info("Duplicate order webhook", merchant=shop_domain, order_id=payload.get("id"))

    return OrderWebhookResponse(
        status=outcome.status,
        message=outcome.message,
        customer=outcome.customer_email,
        orders_count=outcome.orders_count,
        ugc_eligible=outcome.ugc_eligible,
        invitation_status=outcome.invitation_status,
    )
