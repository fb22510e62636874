"""Merchant dashboard: submission review and reward settings."""

from __future__ import annotations

import math
from datetime import date
from typing import NoReturn
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.api.dependencies.security import require_merchant
from ugc_rewards_api.api.dependencies.services import (
    get_app_settings,
    get_notification_service,
    get_shopify_client,
)
from ugc_rewards_api.core.settings import Settings
from ugc_rewards_api.db.session import get_session
from ugc_rewards_api.domain.rewards import reward_text
from ugc_rewards_api.models.merchant import Merchant
from ugc_rewards_api.models.submission import Submission, SubmissionStatusEnum
from ugc_rewards_api.observability.tracing import annotate_current_span
from ugc_rewards_api.schemas.admin import (
    MerchantSettingsResponse,
    MerchantSettingsUpdate,
    Pagination,
    ReviewRequest,
    ReviewResponse,
    RewardSummary,
    SubmissionListResponse,
    SubmissionSummary,
)
from ugc_rewards_api.services.merchants import MerchantService, MerchantSettingsError
from ugc_rewards_api.services.notifications import NotificationService
from ugc_rewards_api.services.rewards import RewardDispatcher, RewardResult
from ugc_rewards_api.services.shopify import ShopifyAdminClient
from ugc_rewards_api.services.submissions import (
    MAX_PAGE_SIZE,
    SubmissionConflictError,
    SubmissionLifecycle,
    SubmissionNotFoundError,
    SubmissionValidationError,
)

router = APIRouter(prefix="/admin", tags=["admin"])


def _raise_for_lifecycle_error(error: Exception) -> NoReturn:
    if isinstance(error, SubmissionNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error)) from error
    if isinstance(error, SubmissionConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error)) from error
    if isinstance(error, SubmissionValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error)) from error
    raise error


def _dispatcher(
    db: AsyncSession,
    shopify: ShopifyAdminClient,
    notifications: NotificationService,
    settings: Settings,
) -> RewardDispatcher:
    return RewardDispatcher(
        db,
        shopify,
        notifications=notifications,
        discount_validity_days=settings.reward_discount_validity_days,
    )


def _reward_response(submission: Submission, result: RewardResult, *, success_message: str) -> ReviewResponse:
    annotate_current_span(reward_status=result.reward.status.value, reward_attempts=result.reward.attempts)
    warning = None
    message = success_message
    if not result.success:
        message = "Submission approved, but the reward could not be issued; it can be retried"
        warning = f"Reward issuance failed: {result.error}"
    return ReviewResponse(
        message=message,
        submission=SubmissionSummary.model_validate(submission),
        reward=RewardSummary.model_validate(result.reward),
        warning=warning,
    )


def _settings_response(merchant: Merchant) -> MerchantSettingsResponse:
    return MerchantSettingsResponse(
        shop_domain=merchant.shop_domain,
        reward_type=merchant.reward_type,
        reward_value=float(merchant.reward_value),
        reward_currency=merchant.reward_currency,
        reward_text=reward_text(merchant.reward_type, merchant.reward_value, merchant.reward_currency),
        email_template=merchant.email_template,
    )


@router.get("/ugc", response_model=SubmissionListResponse)
async def list_submissions(
    status_filter: str = Query("pending", alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    customer_email: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    merchant: Merchant = Depends(require_merchant),
    db: AsyncSession = Depends(get_session),
) -> SubmissionListResponse:
    """List the merchant's submissions; ``status=all`` disables the status filter."""

    status_value: SubmissionStatusEnum | None = None
    if status_filter != "all":
        try:
            status_value = SubmissionStatusEnum(status_filter)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid status: {status_filter}") from exc

    result = await SubmissionLifecycle(db).list_for_merchant(
        merchant,
        status=status_value,
        customer_email=customer_email,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=min(limit, MAX_PAGE_SIZE),
    )
    return SubmissionListResponse(
        submissions=[SubmissionSummary.model_validate(item) for item in result.items],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=math.ceil(result.total / result.limit) if result.total else 0,
        ),
    )


@router.post("/ugc/{submission_id}/approve", response_model=ReviewResponse)
async def approve_submission(
    submission_id: UUID,
    body: ReviewRequest | None = Body(None),
    merchant: Merchant = Depends(require_merchant),
    db: AsyncSession = Depends(get_session),
    shopify: ShopifyAdminClient = Depends(get_shopify_client),
    notifications: NotificationService = Depends(get_notification_service),
    settings: Settings = Depends(get_app_settings),
) -> ReviewResponse:
    """Approve, then issue the reward; an issuance failure still returns success with a warning."""

    annotate_current_span(shop_domain=merchant.shop_domain, submission_id=submission_id)
    lifecycle = SubmissionLifecycle(db)
    try:
        submission = await lifecycle.approve(submission_id, merchant, notes=body.notes if body else None)
    except (SubmissionNotFoundError, SubmissionConflictError) as exc:
        _raise_for_lifecycle_error(exc)

    result = await _dispatcher(db, shopify, notifications, settings).issue(merchant, submission, submission.reward)
    return _reward_response(submission, result, success_message="Submission approved and reward sent")


@router.post("/ugc/{submission_id}/reject", response_model=ReviewResponse, response_model_exclude_none=True)
async def reject_submission(
    submission_id: UUID,
    body: ReviewRequest | None = Body(None),
    merchant: Merchant = Depends(require_merchant),
    db: AsyncSession = Depends(get_session),
) -> ReviewResponse:
    try:
        submission = await SubmissionLifecycle(db).reject(submission_id, merchant, notes=body.notes if body else None)
    except (SubmissionNotFoundError, SubmissionConflictError, SubmissionValidationError) as exc:
        _raise_for_lifecycle_error(exc)

    return ReviewResponse(message="Submission rejected", submission=SubmissionSummary.model_validate(submission))


@router.post("/ugc/{submission_id}/reward/retry", response_model=ReviewResponse)
async def retry_reward(
    submission_id: UUID,
    merchant: Merchant = Depends(require_merchant),
    db: AsyncSession = Depends(get_session),
    shopify: ShopifyAdminClient = Depends(get_shopify_client),
    notifications: NotificationService = Depends(get_notification_service),
    settings: Settings = Depends(get_app_settings),
) -> ReviewResponse:
    annotate_current_span(shop_domain=merchant.shop_domain, submission_id=submission_id)
    try:
        submission = await SubmissionLifecycle(db).prepare_reward_retry(submission_id, merchant)
    except (SubmissionNotFoundError, SubmissionConflictError) as exc:
        _raise_for_lifecycle_error(exc)

    result = await _dispatcher(db, shopify, notifications, settings).issue(merchant, submission, submission.reward)
    return _reward_response(submission, result, success_message="Reward sent")


@router.get("/settings", response_model=MerchantSettingsResponse)
async def get_reward_settings(merchant: Merchant = Depends(require_merchant)) -> MerchantSettingsResponse:
    return _settings_response(merchant)


@router.patch("/settings", response_model=MerchantSettingsResponse)
async def update_reward_settings(
    body: MerchantSettingsUpdate,
    merchant: Merchant = Depends(require_merchant),
    db: AsyncSession = Depends(get_session),
) -> MerchantSettingsResponse:
    changes = {}
    if "email_template" in body.model_fields_set:
        changes["email_template"] = body.email_template
    try:
        merchant = await MerchantService(db).update_settings(
            merchant,
            reward_type=body.reward_type,
            reward_value=body.reward_value,
            reward_currency=body.reward_currency,
            **changes,
        )
    except MerchantSettingsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _settings_response(merchant)
