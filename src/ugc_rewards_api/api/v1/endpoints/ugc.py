"""Customer-facing endpoints: token checks, video upload and submission."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.api.dependencies.services import (
    get_token_codec,
    get_upload_token_service,
    get_video_storage,
)
from ugc_rewards_api.db.session import get_session
from ugc_rewards_api.domain.rewards import reward_text
from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.merchant import Merchant
from ugc_rewards_api.schemas.ugc import (
    InvitationTokenValidation,
    ProxyUploadResponse,
    ShopRewardSettings,
    SubmissionCreatedResponse,
    SubmitRequest,
    TokenRequest,
    UploadConstraints,
    UploadTokenCustomer,
    UploadTokenValidation,
    UploadUrlRequest,
    UploadUrlResponse,
)
from ugc_rewards_api.services.invitations import InvitationTokenInvalidError, InvitationTracker
from ugc_rewards_api.services.storage import (
    ALLOWED_CONTENT_TYPES,
    StorageUnavailableError,
    StorageValidationError,
    VideoStorageService,
)
from ugc_rewards_api.services.submissions import (
    SubmissionConflictError,
    SubmissionLifecycle,
    SubmissionValidationError,
)
from ugc_rewards_api.services.tokens import (
    InvitationTokenCodec,
    UploadTokenInvalidError,
    UploadTokenService,
    looks_like_upload_token,
)

router = APIRouter(prefix="/ugc", tags=["ugc"])

INVALID_TOKEN_MESSAGE = "Invalid or expired token"


def _shop_settings(merchant: Merchant) -> ShopRewardSettings:
    return ShopRewardSettings(
        reward_type=merchant.reward_type.value,
        reward_value=float(merchant.reward_value),
        reward_currency=merchant.reward_currency,
        reward_text=reward_text(merchant.reward_type, merchant.reward_value, merchant.reward_currency),
    )


async def _resolve_token_holder(
    token: str,
    *,
    db: AsyncSession,
    codec: InvitationTokenCodec,
    upload_tokens: UploadTokenService,
) -> tuple[Customer, Merchant]:
    """Accept either an invitation token or an upload token."""

    try:
        if looks_like_upload_token(token):
            record = await upload_tokens.resolve(token)
            return record.customer, record.customer.merchant
        invitation = await InvitationTracker(db, codec).redeem(token)
        return invitation.customer, invitation.merchant
    except (InvitationTokenInvalidError, UploadTokenInvalidError) as exc:
        logger.info("Rejected UGC token", reason=str(exc))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_TOKEN_MESSAGE) from exc


async def _ensure_no_submission(db: AsyncSession, customer: Customer) -> None:
    existing = await SubmissionLifecycle(db).find_for_customer(customer.id)
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A video submission already exists for this customer (Status: {existing.status.value})",
        )


async def _create_submission(
    db: AsyncSession,
    storage: VideoStorageService,
    customer: Customer,
    merchant: Merchant,
    video_key: str,
) -> SubmissionCreatedResponse:
    video_key = video_key.strip()
    if not storage.key_belongs_to(video_key, shop_domain=merchant.shop_domain, customer_id=customer.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Video key does not belong to this customer",
        )

    try:
        submission = await SubmissionLifecycle(db).create(
            customer,
            merchant,
            video_key=video_key,
            video_url=storage.public_url(video_key),
        )
    except SubmissionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SubmissionConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return SubmissionCreatedResponse(submission_id=submission.id, status=submission.status.value)


@router.post("/validate-token", response_model=InvitationTokenValidation, response_model_exclude_none=True)
async def validate_invitation_token(
    body: TokenRequest,
    db: AsyncSession = Depends(get_session),
    codec: InvitationTokenCodec = Depends(get_token_codec),
) -> InvitationTokenValidation:
    if not body.token.strip():
        return InvitationTokenValidation(valid=False, error="Token is required")

    try:
        invitation = await InvitationTracker(db, codec).redeem(body.token)
    except InvitationTokenInvalidError:
        return InvitationTokenValidation(valid=False, error=INVALID_TOKEN_MESSAGE)

    customer = invitation.customer
    merchant = invitation.merchant
    existing = await SubmissionLifecycle(db).find_for_customer(customer.id)
    if existing is not None:
        return InvitationTokenValidation(
            valid=False,
            error=f"You have already submitted a video (Status: {existing.status.value})",
        )

    return InvitationTokenValidation(
        valid=True,
        customer_id=customer.id,
        shop_domain=merchant.shop_domain,
        email=customer.email,
        customer_name=customer.first_name or "Customer",
        shop_settings=_shop_settings(merchant),
    )


@router.post("/validate-upload-token", response_model=UploadTokenValidation, response_model_exclude_none=True)
async def validate_upload_token(
    body: TokenRequest,
    upload_tokens: UploadTokenService = Depends(get_upload_token_service),
) -> UploadTokenValidation:
    if not body.token.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token required")

    try:
        record = await upload_tokens.resolve(body.token)
    except UploadTokenInvalidError:
        return UploadTokenValidation(valid=False, error=INVALID_TOKEN_MESSAGE)

    customer = record.customer
    return UploadTokenValidation(
        valid=True,
        customer=UploadTokenCustomer(
            id=customer.id,
            email=customer.email,
            first_name=customer.first_name,
            shop_domain=customer.merchant.shop_domain,
        ),
    )


@router.post("/upload-url", response_model=UploadUrlResponse)
async def create_upload_url(
    body: UploadUrlRequest,
    db: AsyncSession = Depends(get_session),
    codec: InvitationTokenCodec = Depends(get_token_codec),
    upload_tokens: UploadTokenService = Depends(get_upload_token_service),
    storage: VideoStorageService = Depends(get_video_storage),
) -> UploadUrlResponse:
    """Presign a direct-to-storage upload for the token holder."""

    customer, merchant = await _resolve_token_holder(body.token, db=db, codec=codec, upload_tokens=upload_tokens)
    await _ensure_no_submission(db, customer)

    try:
        target = await storage.create_upload_url(
            body.filename,
            body.content_type,
            customer_id=customer.id,
            shop_domain=merchant.shop_domain,
            file_size=body.file_size,
        )
    except StorageValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return UploadUrlResponse(
        upload_url=target.upload_url,
        video_key=target.video_key,
        public_url=target.public_url,
        constraints=UploadConstraints(
            max_file_size=storage.max_upload_bytes,
            allowed_types=list(ALLOWED_CONTENT_TYPES),
            expires_in=target.expires_in,
        ),
    )


@router.post("/proxy-upload", response_model=ProxyUploadResponse)
async def proxy_upload(
    token: str = Form(...),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_session),
    codec: InvitationTokenCodec = Depends(get_token_codec),
    upload_tokens: UploadTokenService = Depends(get_upload_token_service),
    storage: VideoStorageService = Depends(get_video_storage),
) -> ProxyUploadResponse:
    """Upload through the API for clients that cannot reach storage directly."""

    customer, merchant = await _resolve_token_holder(token, db=db, codec=codec, upload_tokens=upload_tokens)
    await _ensure_no_submission(db, customer)

    # One byte over the limit is enough for validation to reject it.
    payload = await file.read(storage.max_upload_bytes + 1)
    try:
        stored = await storage.upload(
            payload,
            file.filename or "",
            file.content_type or "",
            customer_id=customer.id,
            shop_domain=merchant.shop_domain,
        )
    except StorageValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    finally:
        await file.close()

    return ProxyUploadResponse(video_key=stored.video_key, public_url=stored.public_url, size=stored.size)


@router.post("/submit", response_model=SubmissionCreatedResponse, status_code=status.HTTP_201_CREATED)
async def submit_video(
    body: SubmitRequest,
    db: AsyncSession = Depends(get_session),
    codec: InvitationTokenCodec = Depends(get_token_codec),
    storage: VideoStorageService = Depends(get_video_storage),
) -> SubmissionCreatedResponse:
    try:
        invitation = await InvitationTracker(db, codec).redeem(body.token)
    except InvitationTokenInvalidError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_TOKEN_MESSAGE) from exc

    return await _create_submission(db, storage, invitation.customer, invitation.merchant, body.video_key)


@router.post("/submit-from-token", response_model=SubmissionCreatedResponse, status_code=status.HTTP_201_CREATED)
async def submit_video_from_upload_token(
    body: SubmitRequest,
    db: AsyncSession = Depends(get_session),
    upload_tokens: UploadTokenService = Depends(get_upload_token_service),
    storage: VideoStorageService = Depends(get_video_storage),
) -> SubmissionCreatedResponse:
    """Create the submission and consume the upload token in the same commit."""

    try:
        record = await upload_tokens.resolve(body.token)
        customer = record.customer
        merchant = customer.merchant
        await upload_tokens.consume(record.token)
    except UploadTokenInvalidError as exc:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_TOKEN_MESSAGE) from exc

    return await _create_submission(db, storage, customer, merchant, body.video_key)
