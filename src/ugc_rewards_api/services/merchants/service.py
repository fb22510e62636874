"""Merchant installations, admin authentication and reward settings."""

from __future__ import annotations

import hmac
import re
import secrets
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.domain.rewards import coerce_decimal
from ugc_rewards_api.models.merchant import PERCENTAGE_CURRENCY, Merchant, RewardTypeEnum

_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
_UNSET: Any = object()


class MerchantError(RuntimeError):
    """Base exception for merchant operations."""


class MerchantNotFoundError(MerchantError):
    """Raised when no merchant is installed for a shop domain."""


class MerchantAuthenticationError(MerchantError):
    """Raised when admin credentials do not match the merchant."""


class MerchantSettingsError(MerchantError, ValueError):
    """Raised when reward settings are invalid."""


def generate_admin_token() -> str:
    return secrets.token_urlsafe(32)


class MerchantService:
    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_by_domain(self, shop_domain: str) -> Merchant | None:
        stmt = select(Merchant).where(Merchant.shop_domain == shop_domain.strip().lower())
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def require_by_domain(self, shop_domain: str) -> Merchant:
        merchant = await self.get_by_domain(shop_domain)
        if merchant is None or not merchant.is_active:
            raise MerchantNotFoundError(f"Shop not found for domain: {shop_domain}")
        return merchant

    async def authenticate(self, shop_domain: str | None, admin_token: str | None) -> Merchant:
        """Match the admin header pair against the stored merchant in constant time."""

        if not shop_domain or not admin_token:
            raise MerchantAuthenticationError("Missing authentication headers")
        merchant = await self.get_by_domain(shop_domain)
        if merchant is None or not merchant.is_active:
            raise MerchantAuthenticationError("Invalid credentials")
        if not hmac.compare_digest(merchant.admin_token.encode("utf-8"), admin_token.encode("utf-8")):
            raise MerchantAuthenticationError("Invalid credentials")
        return merchant

    async def upsert_installation(self, shop_domain: str, *, access_token: str, scope: str | None) -> Merchant:
        """Create the merchant on first install; re-auth refreshes credentials and keeps the admin token."""

        merchant = await self.get_by_domain(shop_domain)
        if merchant is None:
            merchant = Merchant(
                shop_domain=shop_domain,
                access_token=access_token,
                scope=scope,
                admin_token=generate_admin_token(),
                is_active=True,
            )
            self._db.add(merchant)
            try:
                await self._db.commit()
            except IntegrityError:
                await self._db.rollback()
                merchant = await self.get_by_domain(shop_domain)
                if merchant is None:
                    raise
            else:
                logger.info("Merchant installed", merchant=shop_domain)
                return merchant

        merchant.access_token = access_token
        merchant.scope = scope
        merchant.is_active = True
        await self._db.commit()
        logger.info("Merchant re-authorized", merchant=shop_domain)
        return merchant

    async def update_settings(
        self,
        merchant: Merchant,
        *,
        reward_type: RewardTypeEnum | None = None,
        reward_value: Any = None,
        reward_currency: str | None = None,
        email_template: Any = _UNSET,
    ) -> Merchant:
        """Validate and store the merchant's reward configuration.

        ``email_template=None`` clears a custom template; omitting it leaves the
        template unchanged.
        """

        new_type = reward_type or merchant.reward_type
        new_value = merchant.reward_value if reward_value is None else _validate_value(reward_value)
        new_currency = merchant.reward_currency if reward_currency is None else reward_currency.strip().upper()

        if new_currency != PERCENTAGE_CURRENCY and not _CURRENCY_PATTERN.match(new_currency):
            raise MerchantSettingsError("Reward currency must be PERCENTAGE or a 3-letter currency code")
        if new_type == RewardTypeEnum.GIFT_CARD and new_currency == PERCENTAGE_CURRENCY:
            raise MerchantSettingsError("Gift card rewards need a currency code")
        if new_currency == PERCENTAGE_CURRENCY and Decimal(new_value) > 100:
            raise MerchantSettingsError("Percentage discounts cannot exceed 100")

        merchant.reward_type = new_type
        merchant.reward_value = new_value
        merchant.reward_currency = new_currency
        if email_template is not _UNSET:
            merchant.email_template = email_template.strip() if email_template and email_template.strip() else None
        await self._db.commit()
        logger.info(
            "Merchant reward settings updated",
            merchant=merchant.shop_domain,
            reward_type=new_type.value,
            reward_value=str(new_value),
            reward_currency=new_currency,
        )
        return merchant


def _validate_value(raw: Any) -> Decimal:
    try:
        value = coerce_decimal(raw)
    except ValueError as exc:
        raise MerchantSettingsError(str(exc)) from exc
    if not value.is_finite() or value <= 0:
        raise MerchantSettingsError("Reward value must be greater than zero")
    return value.quantize(Decimal("0.01"))


__all__ = [
    "MerchantAuthenticationError",
    "MerchantError",
    "MerchantNotFoundError",
    "MerchantService",
    "MerchantSettingsError",
    "generate_admin_token",
]
