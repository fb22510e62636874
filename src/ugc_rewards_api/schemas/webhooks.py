from __future__ import annotations

from uuid import UUID

from .common import CamelModel


class OrderWebhookResponse(CamelModel):
    success: bool = True
    status: str
    message: str | None = None
    customer: str | None = None
    orders_count: int | None = None
    ugc_eligible: bool | None = None
    invitation_status: str | None = None


class FormWebhookResponse(CamelModel):
    success: bool = True
    status: str
    message: str
    customer_id: UUID | None = None
    email_sent: bool = False
