"""Typeform webhooks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.api.dependencies.services import (
    get_notification_service,
    get_token_codec,
    get_upload_token_service,
)
from ugc_rewards_api.db.session import get_session
from ugc_rewards_api.schemas.webhooks import FormWebhookResponse
from ugc_rewards_api.services.forms import FormIntakeService, FormPayloadError
from ugc_rewards_api.services.notifications import NotificationService
from ugc_rewards_api.services.tokens import InvitationTokenCodec, UploadTokenService

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/typeform", response_model=FormWebhookResponse, response_model_exclude_none=True)
async def typeform_response(
    request: Request,
    db: AsyncSession = Depends(get_session),
    codec: InvitationTokenCodec = Depends(get_token_codec),
    notifications: NotificationService = Depends(get_notification_service),
    upload_tokens: UploadTokenService = Depends(get_upload_token_service),
) -> FormWebhookResponse:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload body") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload body")

    service = FormIntakeService(db, codec=codec, notifications=notifications, upload_tokens=upload_tokens)
    try:
        outcome = await service.handle_form_response(payload)
    except FormPayloadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return FormWebhookResponse(
        status=outcome.status,
        message=outcome.message,
        customer_id=outcome.customer_id,
        email_sent=outcome.email_sent,
    )
