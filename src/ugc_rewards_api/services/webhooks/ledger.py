"""Webhook delivery ledger used to drop redelivered events."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.models.webhook_event import WebhookEvent, WebhookProviderEnum


@dataclass(slots=True)
class RecordedWebhookEvent:
    event: WebhookEvent
    created: bool


async def record_webhook_event(
    session: AsyncSession,
    *,
    provider: WebhookProviderEnum,
    external_id: str,
    event_type: str | None = None,
) -> RecordedWebhookEvent:
    """Flush a ledger row for the event unless it was already recorded.

    The row is not committed here; it becomes durable together with the work the
    caller performs for the event.
    """

    stmt = select(WebhookEvent).where(
        WebhookEvent.provider == provider,
        WebhookEvent.external_id == external_id,
    )
    existing = (await session.execute(stmt)).scalar_one_or_none()
    if existing is not None:
        logger.info("Duplicate webhook delivery", provider=provider.value, external_id=external_id)
        return RecordedWebhookEvent(event=existing, created=False)

    event = WebhookEvent(provider=provider, external_id=external_id, event_type=event_type)
    session.add(event)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        found = (await session.execute(stmt)).scalar_one_or_none()
        if found is None:
            raise
        logger.info("Duplicate webhook delivery", provider=provider.value, external_id=external_id)
        return RecordedWebhookEvent(event=found, created=False)

    return RecordedWebhookEvent(event=event, created=True)


__all__ = ["RecordedWebhookEvent", "record_webhook_event"]
