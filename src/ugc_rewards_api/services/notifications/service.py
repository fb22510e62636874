"""High-level notification service for customer emails."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

from loguru import logger

from ugc_rewards_api.core.settings import Settings
from ugc_rewards_api.domain.rewards import reward_text
from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.merchant import Merchant
from ugc_rewards_api.models.submission import Reward

from .backend import EmailBackend, SMTPEmailBackend
from .templates import RenderedTemplate, render_invitation, render_reward_issued, render_upload_link


class NotificationDeliveryError(RuntimeError):
    """Raised when an email could not be handed to the backend."""


@dataclass
class NotificationEvent:
    """Representation of a notification that was sent."""

    recipient: str
    subject: str
    body_text: str
    body_html: str | None
    event_type: str
    metadata: dict[str, Any] = field(default_factory=dict)


def build_email_backend(settings: Settings) -> Optional[EmailBackend]:
    """SMTP backend when configured; ``None`` means emails are only logged."""

    if not settings.smtp_host or not settings.smtp_sender_email:
        return None
    return SMTPEmailBackend(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        sender_email=settings.smtp_sender_email,
    )


def _customer_name(customer: Customer) -> str:
    return customer.first_name or customer.display_name or "there"


class NotificationService:
    """Coordinates notification delivery via a pluggable backend."""

    def __init__(self, backend: Optional[EmailBackend], *, app_url: str, upload_token_ttl_days: int = 7) -> None:
        self._backend = backend
        self._app_url = app_url.rstrip("/")
        self._upload_token_ttl_days = upload_token_ttl_days
        self._events: list[NotificationEvent] = []

    @property
    def sent_events(self) -> list[NotificationEvent]:
        """Expose events (useful for tests)."""
        return self._events

    def invitation_form_url(self, token: str) -> str:
        return f"{self._app_url}/ugc-form?token={quote(token, safe='')}"

    def upload_url(self, token: str) -> str:
        return f"{self._app_url}/ugc-upload?token={quote(token, safe='')}"

    async def send_invitation(self, customer: Customer, merchant: Merchant, token: str) -> None:
        """Send the video invitation; raises :class:`NotificationDeliveryError` on failure."""

        template = render_invitation(
            customer_name=_customer_name(customer),
            shop_domain=merchant.shop_domain,
            form_url=self.invitation_form_url(token),
            reward_text=reward_text(merchant.reward_type, merchant.reward_value, merchant.reward_currency),
            merchant_template=merchant.email_template,
        )
        await self._deliver(
            customer.email,
            template,
            event_type="ugc_invitation",
            metadata={"customer_id": str(customer.id), "merchant": merchant.shop_domain},
        )

    async def send_upload_link(self, customer: Customer, merchant: Merchant, token: str) -> None:
        template = render_upload_link(
            customer_name=_customer_name(customer),
            shop_domain=merchant.shop_domain,
            upload_url=self.upload_url(token),
            expires_days=self._upload_token_ttl_days,
        )
        await self._deliver(
            customer.email,
            template,
            event_type="ugc_upload_link",
            metadata={"customer_id": str(customer.id), "merchant": merchant.shop_domain},
        )

    async def send_reward_issued(self, customer: Customer, merchant: Merchant, reward: Reward) -> None:
        template = render_reward_issued(
            customer_name=_customer_name(customer),
            shop_domain=merchant.shop_domain,
            reward_text=reward_text(reward.reward_type, reward.value, reward.currency),
            code=reward.code,
        )
        await self._deliver(
            customer.email,
            template,
            event_type="ugc_reward_issued",
            metadata={"reward_id": str(reward.id), "merchant": merchant.shop_domain},
        )

    async def _deliver(
        self,
        recipient: str,
        template: RenderedTemplate,
        *,
        event_type: str,
        metadata: dict[str, Any],
    ) -> None:
        if not recipient:
            raise NotificationDeliveryError("Recipient email address is missing")

        if self._backend is None:
            logger.info(
                "Email delivery skipped; SMTP not configured",
                recipient=recipient,
                subject=template.subject,
                event_type=event_type,
                body=template.text_body,
            )
        else:
            try:
                await self._backend.send_email(
                    recipient,
                    template.subject,
                    template.text_body,
                    body_html=template.html_body,
                )
            except Exception as exc:
                logger.warning("Email delivery failed", recipient=recipient, event_type=event_type, error=str(exc))
                raise NotificationDeliveryError(str(exc)) from exc
            logger.info("Email sent", recipient=recipient, event_type=event_type)

        self._events.append(
            NotificationEvent(
                recipient=recipient,
                subject=template.subject,
                body_text=template.text_body,
                body_html=template.html_body,
                event_type=event_type,
                metadata=metadata,
            )
        )


__all__ = [
    "NotificationDeliveryError",
    "NotificationEvent",
    "NotificationService",
    "build_email_backend",
]
