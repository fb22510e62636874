"""Issue discount codes and gift cards for approved submissions."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.domain.rewards import format_amount
from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.merchant import PERCENTAGE_CURRENCY, Merchant, RewardTypeEnum
from ugc_rewards_api.models.submission import Reward, RewardStatusEnum, Submission
from ugc_rewards_api.services.notifications import NotificationDeliveryError, NotificationService
from ugc_rewards_api.services.shopify import ShopifyAdminClient, ShopifyApiError

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_SUFFIX_LENGTH = 6
_MAX_ERROR_LENGTH = 1024


@dataclass(slots=True)
class RewardResult:
    success: bool
    reward: Reward
    error: str | None = None


def build_discount_code(value: Any, currency: str) -> str:
    unit = "PCT" if currency == PERCENTAGE_CURRENCY else currency.upper()
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(_CODE_SUFFIX_LENGTH))
    return f"UGC-{format_amount(value)}{unit}-{suffix}"


def build_price_rule(
    reward: Reward,
    customer: Customer,
    *,
    now: datetime,
    validity: timedelta,
) -> dict[str, Any]:
    """Single-use price rule valid for ``validity``, restricted to the customer when possible."""

    is_percentage = reward.currency == PERCENTAGE_CURRENCY
    label = customer.display_name or customer.email
    rule: dict[str, Any] = {
        "title": f"UGC Reward - {label}",
        "target_type": "line_item",
        "target_selection": "all",
        "allocation_method": "across",
        "value_type": "percentage" if is_percentage else "fixed_amount",
        "value": f"-{format_amount(reward.value)}",
        "customer_selection": "all",
        "usage_limit": 1,
        "once_per_customer": True,
        "starts_at": now.isoformat(),
        "ends_at": (now + validity).isoformat(),
    }
    if customer.external_id and customer.external_id.isdigit():
        rule["customer_selection"] = "prerequisite"
        rule["prerequisite_customer_ids"] = [int(customer.external_id)]
    return rule


class RewardDispatcher:
    """Calls Shopify for a pending or failed reward and records the outcome."""

    def __init__(
        self,
        db_session: AsyncSession,
        shopify: ShopifyAdminClient,
        *,
        notifications: NotificationService | None = None,
        discount_validity_days: int = 30,
    ) -> None:
        self._db = db_session
        self._shopify = shopify
        self._notifications = notifications
        self._validity = timedelta(days=discount_validity_days)

    async def issue(self, merchant: Merchant, submission: Submission, reward: Reward) -> RewardResult:
        """Issue ``reward``; failures leave it ``failed`` so it can be retried."""

        customer = submission.customer
        reward.attempts = (reward.attempts or 0) + 1
        try:
            if reward.reward_type == RewardTypeEnum.DISCOUNT:
                external_id, code = await self._create_discount(merchant, customer, reward)
            elif reward.reward_type == RewardTypeEnum.GIFT_CARD:
                external_id, code = await self._create_gift_card(merchant, customer, reward)
            else:
                raise ValueError(f"Unsupported reward type: {reward.reward_type}")
        except (ShopifyApiError, ValueError) as exc:
            reward.status = RewardStatusEnum.FAILED
            reward.error_message = str(exc)[:_MAX_ERROR_LENGTH]
            await self._db.commit()
            logger.warning(
                "Reward issuance failed",
                reward_id=str(reward.id),
                submission_id=str(submission.id),
                merchant=merchant.shop_domain,
                attempts=reward.attempts,
                error=reward.error_message,
            )
            return RewardResult(success=False, reward=reward, error=reward.error_message)

        reward.status = RewardStatusEnum.SENT
        reward.external_id = external_id
        reward.code = code
        reward.error_message = None
        reward.sent_at = datetime.now(timezone.utc)
        await self._db.commit()
        logger.info(
            "Reward issued",
            reward_id=str(reward.id),
            submission_id=str(submission.id),
            merchant=merchant.shop_domain,
            reward_type=reward.reward_type.value,
            external_id=external_id,
        )

        if self._notifications is not None:
            try:
                await self._notifications.send_reward_issued(customer, merchant, reward)
            except NotificationDeliveryError as exc:
                logger.warning("Reward email not delivered", reward_id=str(reward.id), error=str(exc))
        return RewardResult(success=True, reward=reward)

    async def _create_discount(self, merchant: Merchant, customer: Customer, reward: Reward) -> tuple[str, str]:
        now = datetime.now(timezone.utc)
        price_rule = await self._shopify.create_price_rule(
            merchant.shop_domain,
            merchant.access_token,
            build_price_rule(reward, customer, now=now, validity=self._validity),
        )
        price_rule_id = price_rule.get("id")
        if price_rule_id is None:
            raise ShopifyApiError("Price rule response has no id")
        discount = await self._shopify.create_discount_code(
            merchant.shop_domain,
            merchant.access_token,
            str(price_rule_id),
            build_discount_code(reward.value, reward.currency),
        )
        return str(price_rule_id), str(discount.get("code") or "")

    async def _create_gift_card(self, merchant: Merchant, customer: Customer, reward: Reward) -> tuple[str, str]:
        label = customer.display_name or customer.email
        gift_card = await self._shopify.create_gift_card(
            merchant.shop_domain,
            merchant.access_token,
            {
                "initial_value": format_amount(reward.value),
                "currency": reward.currency,
                "note": f"UGC Reward for {label} ({customer.email})",
            },
        )
        gift_card_id = gift_card.get("id")
        if gift_card_id is None:
            raise ShopifyApiError("Gift card response has no id")
        code = gift_card.get("code") or gift_card.get("last_characters") or ""
        return str(gift_card_id), str(code)


__all__ = ["RewardDispatcher", "RewardResult", "build_discount_code", "build_price_rule"]
