"""Merchants, customers, invitations, submissions, rewards, upload tokens and webhook ledger.

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "20261019_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


reward_type_enum = postgresql.ENUM("discount", "gift_card", name="reward_type_enum", create_type=False)
submission_status_enum = postgresql.ENUM(
    "pending", "processing", "approved", "rejected", name="ugc_submission_status_enum", create_type=False
)
reward_status_enum = postgresql.ENUM("pending", "sent", "failed", name="ugc_reward_status_enum", create_type=False)
webhook_provider_enum = postgresql.ENUM("shopify", "typeform", name="webhook_provider_enum", create_type=False)

_ENUMS = (reward_type_enum, submission_status_enum, reward_status_enum, webhook_provider_enum)


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum in _ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "merchants",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("shop_domain", sa.String(), nullable=False),
        sa.Column("access_token", sa.String(), nullable=False),
        sa.Column("scope", sa.String(), nullable=True),
        sa.Column("admin_token", sa.String(), nullable=False),
        sa.Column("reward_type", reward_type_enum, nullable=False, server_default="discount"),
        sa.Column("reward_value", sa.Numeric(12, 2), nullable=False, server_default="10"),
        sa.Column("reward_currency", sa.String(16), nullable=False, server_default="PERCENTAGE"),
        sa.Column("email_template", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("admin_token", name="uq_merchants_admin_token"),
    )
    op.create_index("ix_merchants_shop_domain", "merchants", ["shop_domain"], unique=True)

    op.create_table(
        "customers",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("merchant_id", _uuid(), nullable=False),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("orders_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("merchant_id", "external_id", name="uq_customers_merchant_external"),
    )
    op.create_index("ix_customers_merchant_id", "customers", ["merchant_id"])
    op.create_index("ix_customers_email", "customers", ["email"])

    op.create_table(
        "ugc_invitations",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), nullable=False),
        sa.Column("merchant_id", _uuid(), nullable=False),
        sa.Column("token_digest", sa.String(64), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("customer_id", "merchant_id", name="uq_ugc_invitations_customer_merchant"),
    )
    op.create_index("ix_ugc_invitations_token_digest", "ugc_invitations", ["token_digest"], unique=True)

    op.create_table(
        "ugc_submissions",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), nullable=False),
        sa.Column("merchant_id", _uuid(), nullable=False),
        sa.Column("video_key", sa.String(1024), nullable=False),
        sa.Column("video_url", sa.String(2048), nullable=True),
        sa.Column("status", submission_status_enum, nullable=False, server_default="pending"),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("customer_id", name="uq_ugc_submissions_customer"),
    )
    op.create_index("ix_ugc_submissions_merchant_id", "ugc_submissions", ["merchant_id"])

    op.create_table(
        "ugc_rewards",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("submission_id", _uuid(), nullable=False),
        sa.Column("merchant_id", _uuid(), nullable=False),
        sa.Column("reward_type", reward_type_enum, nullable=False),
        sa.Column("value", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(16), nullable=False),
        sa.Column("external_id", sa.String(), nullable=True),
        sa.Column("code", sa.String(), nullable=True),
        sa.Column("status", reward_status_enum, nullable=False, server_default="pending"),
        sa.Column("error_message", sa.String(1024), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["submission_id"], ["ugc_submissions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("submission_id", name="uq_ugc_rewards_submission"),
    )

    op.create_table(
        "ugc_upload_tokens",
        sa.Column("token", sa.String(128), primary_key=True),
        sa.Column("customer_id", _uuid(), nullable=False),
        sa.Column("form_response_token", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_ugc_upload_tokens_customer_id", "ugc_upload_tokens", ["customer_id"])

    op.create_table(
        "webhook_events",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("provider", webhook_provider_enum, nullable=False),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("provider", "external_id", name="uq_webhook_events_provider_external"),
    )


def downgrade() -> None:
    op.drop_table("webhook_events")
    op.drop_index("ix_ugc_upload_tokens_customer_id", table_name="ugc_upload_tokens")
    op.drop_table("ugc_upload_tokens")
    op.drop_table("ugc_rewards")
    op.drop_index("ix_ugc_submissions_merchant_id", table_name="ugc_submissions")
    op.drop_table("ugc_submissions")
    op.drop_index("ix_ugc_invitations_token_digest", table_name="ugc_invitations")
    op.drop_table("ugc_invitations")
    op.drop_index("ix_customers_email", table_name="customers")
    op.drop_index("ix_customers_merchant_id", table_name="customers")
    op.drop_table("customers")
    op.drop_index("ix_merchants_shop_domain", table_name="merchants")
    op.drop_table("merchants")

    bind = op.get_bind()
    for enum in reversed(_ENUMS):
        enum.drop(bind, checkfirst=True)
