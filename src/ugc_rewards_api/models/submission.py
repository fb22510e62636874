"""Video submissions and the rewards issued for approved ones."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ugc_rewards_api.db.base import Base
from ugc_rewards_api.db.types import enum_values
from ugc_rewards_api.models.merchant import RewardTypeEnum


class SubmissionStatusEnum(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"


class RewardStatusEnum(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class Submission(Base):
    """A customer's uploaded video and its review status."""

    __tablename__ = "ugc_submissions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(
        UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    merchant_id = Column(UUID(as_uuid=True), ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False, index=True)
    video_key = Column(String(1024), nullable=False)
    video_url = Column(String(2048), nullable=True)
    status = Column(
        SqlEnum(SubmissionStatusEnum, name="ugc_submission_status_enum", values_callable=enum_values),
        nullable=False,
        default=SubmissionStatusEnum.PENDING,
        server_default=SubmissionStatusEnum.PENDING.value,
    )
    review_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    customer = relationship("Customer")
    merchant = relationship("Merchant")
    reward = relationship("Reward", back_populates="submission", uselist=False)


class Reward(Base):
    """Discount code or gift card issued for an approved submission."""

    __tablename__ = "ugc_rewards"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    submission_id = Column(
        UUID(as_uuid=True),
        ForeignKey("ugc_submissions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    merchant_id = Column(UUID(as_uuid=True), ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False)
    reward_type = Column(SqlEnum(RewardTypeEnum, name="reward_type_enum", values_callable=enum_values), nullable=False)
    value = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(16), nullable=False)
    external_id = Column(String, nullable=True)
    code = Column(String, nullable=True)
    status = Column(
        SqlEnum(RewardStatusEnum, name="ugc_reward_status_enum", values_callable=enum_values),
        nullable=False,
        default=RewardStatusEnum.PENDING,
        server_default=RewardStatusEnum.PENDING.value,
    )
    error_message = Column(String(1024), nullable=True)
    attempts = Column(Integer, nullable=False, default=0, server_default="0")
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    submission = relationship("Submission", back_populates="reward")
