"""Models for the merchant review dashboard."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field

from ugc_rewards_api.models.merchant import RewardTypeEnum
from ugc_rewards_api.models.submission import RewardStatusEnum, SubmissionStatusEnum

from .common import CamelModel, CamelORMModel


class SubmissionCustomer(CamelORMModel):
    id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None
    orders_count: int


class RewardSummary(CamelORMModel):
    id: UUID
    status: RewardStatusEnum
    reward_type: RewardTypeEnum
    value: float
    currency: str
    code: str | None = None
    external_id: str | None = None
    error_message: str | None = None
    attempts: int
    sent_at: datetime | None = None


class SubmissionSummary(CamelORMModel):
    id: UUID
    status: SubmissionStatusEnum
    video_key: str
    video_url: str | None = None
    review_notes: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    customer: SubmissionCustomer
    reward: RewardSummary | None = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class SubmissionListResponse(CamelModel):
    success: bool = True
    submissions: list[SubmissionSummary]
    pagination: Pagination


class ReviewRequest(CamelModel):
    notes: str | None = Field(default=None, max_length=5000)


class ReviewResponse(CamelModel):
    success: bool = True
    message: str
    submission: SubmissionSummary
    reward: RewardSummary | None = None
    warning: str | None = None


class MerchantSettingsResponse(CamelModel):
    shop_domain: str
    reward_type: RewardTypeEnum
    reward_value: float
    reward_currency: str
    reward_text: str
    email_template: str | None = None


class MerchantSettingsUpdate(CamelModel):
    reward_type: RewardTypeEnum | None = None
    reward_value: Decimal | None = None
    reward_currency: str | None = Field(default=None, max_length=16)
    email_template: str | None = None
