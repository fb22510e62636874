"""Request/response models for the customer-facing UGC endpoints."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from .common import CamelModel


class TokenRequest(CamelModel):
    token: str = Field(default="", description="Invitation or upload token")


class ShopRewardSettings(CamelModel):
    reward_type: str
    reward_value: float
    reward_currency: str
    reward_text: str


class InvitationTokenValidation(CamelModel):
    valid: bool
    customer_id: UUID | None = None
    shop_domain: str | None = None
    email: str | None = None
    customer_name: str | None = None
    shop_settings: ShopRewardSettings | None = None
    error: str | None = None


class UploadTokenCustomer(CamelModel):
    id: UUID
    email: str
    first_name: str | None = None
    shop_domain: str


class UploadTokenValidation(CamelModel):
    valid: bool
    customer: UploadTokenCustomer | None = None
    error: str | None = None


class UploadUrlRequest(CamelModel):
    token: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)
    file_size: int | None = Field(default=None, ge=0)


class UploadConstraints(CamelModel):
    max_file_size: int
    allowed_types: list[str]
    expires_in: int


class UploadUrlResponse(CamelModel):
    success: bool = True
    upload_url: str
    video_key: str
    public_url: str
    constraints: UploadConstraints


class ProxyUploadResponse(CamelModel):
    success: bool = True
    video_key: str
    public_url: str
    size: int


class SubmitRequest(CamelModel):
    token: str = Field(..., min_length=1)
    video_key: str = Field(..., min_length=1)


class SubmissionCreatedResponse(CamelModel):
    success: bool = True
    submission_id: UUID
    status: str
    message: str = "Video submitted successfully"
