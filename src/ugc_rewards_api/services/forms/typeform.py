"""Typeform webhook intake: turn a form response into an upload link."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.merchant import Merchant
from ugc_rewards_api.models.webhook_event import WebhookProviderEnum
from ugc_rewards_api.services.customers import CustomerLedger, ExternalCustomer
from ugc_rewards_api.services.invitations import InvitationTokenInvalidError, InvitationTracker
from ugc_rewards_api.services.merchants import MerchantService
from ugc_rewards_api.services.notifications import NotificationDeliveryError, NotificationService
from ugc_rewards_api.services.tokens import InvitationTokenCodec, UploadTokenService
from ugc_rewards_api.services.webhooks import record_webhook_event

FORM_RESPONSE_EVENT = "form_response"


class FormPayloadError(ValueError):
    """Raised when a form response lacks the fields needed to issue an upload link."""


@dataclass(slots=True, frozen=True)
class FormAnswers:
    email: str | None
    name: str | None
    shop_domain: str | None
    customer_token: str | None


@dataclass(slots=True)
class FormIntakeOutcome:
    status: Literal["processed", "ignored", "duplicate"]
    message: str
    customer_id: UUID | None = None
    email_sent: bool = False


def _field(answer: Mapping[str, Any]) -> Mapping[str, Any]:
    field = answer.get("field")
    return field if isinstance(field, Mapping) else {}


def _text(answer: Mapping[str, Any] | None) -> str | None:
    if answer is None:
        return None
    value = answer.get("text")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract_answers(answers: Iterable[Any]) -> FormAnswers:
    """Pick the email, name, shop domain and customer token answers."""

    items = [answer for answer in answers if isinstance(answer, Mapping)]
    email_answer = next((a for a in items if a.get("type") == "email"), None)
    name_answer = next(
        (a for a in items if _field(a).get("type") == "short_text" and _field(a).get("ref") == "name"),
        None,
    )
    shop_answer = next((a for a in items if _field(a).get("ref") == "shop_domain"), None)
    token_answer = next((a for a in items if _field(a).get("ref") == "customer_token"), None)

    email = email_answer.get("email") if email_answer else None
    return FormAnswers(
        email=email.strip() if isinstance(email, str) and email.strip() else None,
        name=_text(name_answer),
        shop_domain=_text(shop_answer).lower() if _text(shop_answer) else None,
        customer_token=_text(token_answer),
    )


class FormIntakeService:
    def __init__(
        self,
        db_session: AsyncSession,
        *,
        codec: InvitationTokenCodec,
        notifications: NotificationService,
        upload_tokens: UploadTokenService,
    ) -> None:
        self._db = db_session
        self._ledger = CustomerLedger(db_session)
        self._tracker = InvitationTracker(db_session, codec)
        self._merchants = MerchantService(db_session)
        self._notifications = notifications
        self._upload_tokens = upload_tokens

    async def handle_form_response(self, payload: Mapping[str, Any]) -> FormIntakeOutcome:
        if payload.get("event_type") != FORM_RESPONSE_EVENT:
            return FormIntakeOutcome(status="ignored", message="Event ignored")

        form_response = payload.get("form_response")
        if not isinstance(form_response, Mapping):
            raise FormPayloadError("form_response is required")
        answers = extract_answers(form_response.get("answers") or [])
        if not answers.email:
            raise FormPayloadError("Email required")
        if not answers.shop_domain:
            raise FormPayloadError("Shop domain required")
        response_token = str(form_response.get("token") or "").strip()
        if not response_token:
            raise FormPayloadError("form_response.token required")

        merchant = await self._merchants.get_by_domain(answers.shop_domain)
        if merchant is None or not merchant.is_active:
            raise FormPayloadError(f"Unknown shop domain: {answers.shop_domain}")
        shop_domain = merchant.shop_domain

        event_id = payload.get("event_id")
        if event_id:
            recorded = await record_webhook_event(
                self._db,
                provider=WebhookProviderEnum.TYPEFORM,
                external_id=str(event_id),
                event_type=FORM_RESPONSE_EVENT,
            )
            if not recorded.created:
                return FormIntakeOutcome(status="duplicate", message="Form response already processed")
            merchant = await self._merchants.require_by_domain(shop_domain)

        customer = await self._resolve_customer(answers, merchant, response_token)
        owner = await self._db.get(Merchant, customer.merchant_id)
        merchant = owner if owner is not None else merchant
        upload_token = await self._upload_tokens.issue(customer, form_response_token=response_token)

        email_sent = True
        try:
            await self._notifications.send_upload_link(customer, merchant, upload_token.token)
        except NotificationDeliveryError as exc:
            email_sent = False
            logger.warning("Upload link email failed", customer_id=str(customer.id), error=str(exc))

        logger.info(
            "Form response processed",
            customer_id=str(customer.id),
            merchant=merchant.shop_domain,
            email_sent=email_sent,
        )
        message = "Upload link sent successfully" if email_sent else "Upload link created; email delivery failed"
        return FormIntakeOutcome(status="processed", message=message, customer_id=customer.id, email_sent=email_sent)

    async def _resolve_customer(self, answers: FormAnswers, merchant: Merchant, response_token: str) -> Customer:
        if answers.customer_token:
            try:
                invitation = await self._tracker.redeem(answers.customer_token)
            except InvitationTokenInvalidError as exc:
                logger.info("Ignoring invalid customer token in form response", reason=str(exc))
            else:
                return invitation.customer

        existing = await self._ledger.find_by_email(merchant, answers.email or "")
        if existing is not None:
            return existing

        email = answers.email or ""
        external = ExternalCustomer(
            external_id=f"form:{response_token}",
            email=email,
            first_name=answers.name or email.split("@")[0],
        )
        return await self._ledger.find_or_create(external, merchant)


__all__ = ["FORM_RESPONSE_EVENT", "FormAnswers", "FormIntakeOutcome", "FormIntakeService", "FormPayloadError", "extract_answers"]
