from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ugc_rewards_api.db.base import Base


class Invitation(Base):
    """Marks that a customer was invited to submit a video; one per customer and merchant."""

    __tablename__ = "ugc_invitations"
    __table_args__ = (
        UniqueConstraint("customer_id", "merchant_id", name="uq_ugc_invitations_customer_merchant"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    merchant_id = Column(UUID(as_uuid=True), ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False)
    token_digest = Column(String(64), nullable=False, unique=True, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = relationship("Customer")
    merchant = relationship("Merchant")
