"""Formatting helpers for reward amounts."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from ugc_rewards_api.models.merchant import PERCENTAGE_CURRENCY, RewardTypeEnum


def coerce_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid reward value: {value!r}") from exc


def format_amount(value: Any) -> str:
    """Render ``10.00`` as ``10`` and ``12.50`` as ``12.5``."""

    amount = coerce_decimal(value)
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal(1)))
    return format(amount.normalize(), "f")


def reward_text(reward_type: RewardTypeEnum | str | None, value: Any, currency: str | None) -> str:
    """Human readable reward description used in customer emails."""

    kind = reward_type.value if isinstance(reward_type, RewardTypeEnum) else reward_type
    if value is None:
        return "a special reward"
    try:
        amount = format_amount(value)
    except ValueError:
        return "a special reward"

    if kind == RewardTypeEnum.DISCOUNT.value:
        if (currency or PERCENTAGE_CURRENCY) == PERCENTAGE_CURRENCY:
            return f"a {amount}% discount"
        return f"a {amount} {currency} discount"
    if kind == RewardTypeEnum.GIFT_CARD.value:
        return f"a {amount} {currency} gift card"
    return "a special reward"


__all__ = ["coerce_decimal", "format_amount", "reward_text"]
