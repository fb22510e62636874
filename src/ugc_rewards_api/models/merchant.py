"""Merchant (shop) installations and their reward configuration."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Enum as SqlEnum, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ugc_rewards_api.db.base import Base
from ugc_rewards_api.db.types import enum_values


class RewardTypeEnum(str, Enum):
    DISCOUNT = "discount"
    GIFT_CARD = "gift_card"


PERCENTAGE_CURRENCY = "PERCENTAGE"


class Merchant(Base):
    """A Shopify store that installed the app."""

    __tablename__ = "merchants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    shop_domain = Column(String, nullable=False, unique=True, index=True)
    access_token = Column(String, nullable=False)
    scope = Column(String, nullable=True)
    admin_token = Column(String, nullable=False, unique=True)
    reward_type = Column(
        SqlEnum(RewardTypeEnum, name="reward_type_enum", values_callable=enum_values),
        nullable=False,
        default=RewardTypeEnum.DISCOUNT,
        server_default=RewardTypeEnum.DISCOUNT.value,
    )
    reward_value = Column(Numeric(12, 2), nullable=False, default=10, server_default="10")
    reward_currency = Column(String(16), nullable=False, default=PERCENTAGE_CURRENCY, server_default=PERCENTAGE_CURRENCY)
    email_template = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    customers = relationship("Customer", back_populates="merchant")
