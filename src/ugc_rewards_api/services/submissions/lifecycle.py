"""Submission review state machine and reward bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.merchant import Merchant
from ugc_rewards_api.models.submission import (
    Reward,
    RewardStatusEnum,
    Submission,
    SubmissionStatusEnum,
)

MAX_PAGE_SIZE = 100


class SubmissionError(RuntimeError):
    """Base exception for submission lifecycle failures."""


class SubmissionNotFoundError(SubmissionError):
    """Raised when the submission does not exist for the merchant."""


class SubmissionConflictError(SubmissionError):
    """Raised when the requested change clashes with the current state."""


class SubmissionValidationError(SubmissionError, ValueError):
    """Raised when review input is unusable."""


@dataclass(slots=True)
class SubmissionPage:
    items: list[Submission]
    total: int
    page: int
    limit: int


class SubmissionLifecycle:
    """Creates submissions and moves them through review."""

    _ALLOWED_TRANSITIONS: dict[SubmissionStatusEnum, set[SubmissionStatusEnum]] = {
        SubmissionStatusEnum.PENDING: {
            SubmissionStatusEnum.APPROVED,
            SubmissionStatusEnum.REJECTED,
        },
        SubmissionStatusEnum.PROCESSING: set(),
        SubmissionStatusEnum.APPROVED: set(),
        SubmissionStatusEnum.REJECTED: set(),
    }

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def create(
        self,
        customer: Customer,
        merchant: Merchant,
        *,
        video_key: str,
        video_url: str | None,
    ) -> Submission:
        """Store the customer's single submission; a second one is a conflict."""

        if not video_key or not video_key.strip():
            raise SubmissionValidationError("Video key is required")

        customer_id = customer.id
        shop_domain = merchant.shop_domain
        submission = Submission(
            customer_id=customer_id,
            merchant_id=merchant.id,
            video_key=video_key.strip(),
            video_url=video_url,
            status=SubmissionStatusEnum.PENDING,
        )
        self._db.add(submission)
        try:
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            existing = await self.find_for_customer(customer_id)
            label = existing.status.value if existing else "unknown"
            raise SubmissionConflictError(
                f"A video submission already exists for this customer (Status: {label})"
            ) from exc

        logger.info(
            "Submission created",
            submission_id=str(submission.id),
            customer_id=str(customer_id),
            merchant=shop_domain,
        )
        return submission

    async def find_for_customer(self, customer_id: UUID) -> Submission | None:
        stmt = select(Submission).where(Submission.customer_id == customer_id)
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, submission_id: UUID, merchant: Merchant) -> Submission:
        stmt = (
            select(Submission)
            .options(selectinload(Submission.customer), selectinload(Submission.reward))
            .where(Submission.id == submission_id, Submission.merchant_id == merchant.id)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        submission = result.scalar_one_or_none()
        if submission is None:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return submission

    async def approve(self, submission_id: UUID, merchant: Merchant, *, notes: str | None = None) -> Submission:
        """Approve and attach a pending reward in one commit.

        The reward snapshot copies the merchant's current reward settings. Issuing
        it is the dispatcher's job; the approval itself is never undone.
        """

        submission = await self.get(submission_id, merchant)
        if submission.status == SubmissionStatusEnum.APPROVED:
            raise SubmissionConflictError("Submission is already approved")
        if submission.reward is not None:
            raise SubmissionConflictError("Reward already exists for this submission")
        self._ensure_transition(submission, SubmissionStatusEnum.APPROVED)

        submission.status = SubmissionStatusEnum.APPROVED
        submission.review_notes = notes.strip() if notes and notes.strip() else None
        submission.reviewed_at = datetime.now(timezone.utc)
        reward = Reward(
            submission_id=submission.id,
            merchant_id=merchant.id,
            reward_type=merchant.reward_type,
            value=merchant.reward_value,
            currency=merchant.reward_currency,
            status=RewardStatusEnum.PENDING,
            attempts=0,
        )
        self._db.add(reward)
        try:
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            raise SubmissionConflictError("Reward already exists for this submission") from exc

        logger.info(
            "Submission approved",
            submission_id=str(submission.id),
            reward_id=str(reward.id),
            merchant=merchant.shop_domain,
        )
        return await self.get(submission_id, merchant)

    async def reject(self, submission_id: UUID, merchant: Merchant, *, notes: str | None) -> Submission:
        cleaned = (notes or "").strip()
        if not cleaned:
            raise SubmissionValidationError("Rejection notes are required")

        submission = await self.get(submission_id, merchant)
        if submission.status == SubmissionStatusEnum.REJECTED:
            raise SubmissionConflictError("Submission is already rejected")
        if submission.status == SubmissionStatusEnum.APPROVED:
            raise SubmissionConflictError("Cannot reject an approved submission")
        self._ensure_transition(submission, SubmissionStatusEnum.REJECTED)

        submission.status = SubmissionStatusEnum.REJECTED
        submission.review_notes = cleaned
        submission.reviewed_at = datetime.now(timezone.utc)
        await self._db.commit()

        logger.info("Submission rejected", submission_id=str(submission.id), merchant=merchant.shop_domain)
        return submission

    async def prepare_reward_retry(self, submission_id: UUID, merchant: Merchant) -> Submission:
        """Return an approved submission whose reward failed and may be issued again."""

        submission = await self.get(submission_id, merchant)
        if submission.status != SubmissionStatusEnum.APPROVED or submission.reward is None:
            raise SubmissionConflictError("Submission has no reward to retry")
        if submission.reward.status != RewardStatusEnum.FAILED:
            raise SubmissionConflictError(
                f"Reward is {submission.reward.status.value}; only failed rewards can be retried"
            )
        return submission

    async def list_for_merchant(
        self,
        merchant: Merchant,
        *,
        status: SubmissionStatusEnum | None = SubmissionStatusEnum.PENDING,
        customer_email: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SubmissionPage:
        """Page through a merchant's submissions, newest first."""

        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        filters = [Submission.merchant_id == merchant.id]
        if status is not None:
            filters.append(Submission.status == status)
        if customer_email:
            filters.append(Customer.email.ilike(f"%{customer_email.strip()}%"))
        if date_from:
            filters.append(Submission.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
        if date_to:
            upper = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
            filters.append(Submission.created_at < upper)

        count_stmt = select(func.count(Submission.id)).join(Customer, Submission.customer_id == Customer.id).where(*filters)
        total = (await self._db.execute(count_stmt)).scalar_one()

        stmt = (
            select(Submission)
            .join(Customer, Submission.customer_id == Customer.id)
            .options(selectinload(Submission.customer), selectinload(Submission.reward))
            .where(*filters)
            .order_by(Submission.created_at.desc(), Submission.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self._db.execute(stmt)
        return SubmissionPage(items=list(result.scalars()), total=total, page=page, limit=limit)

    def _ensure_transition(self, submission: Submission, target: SubmissionStatusEnum) -> None:
        allowed = self._ALLOWED_TRANSITIONS.get(submission.status, set())
        if target not in allowed:
            raise SubmissionConflictError(
                f"Cannot transition submission from {submission.status.value} to {target.value}"
            )


__all__ = [
    "MAX_PAGE_SIZE",
    "SubmissionConflictError",
    "SubmissionError",
    "SubmissionLifecycle",
    "SubmissionNotFoundError",
    "SubmissionPage",
    "SubmissionValidationError",
]
