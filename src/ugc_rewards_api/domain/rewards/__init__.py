"""Reward domain helpers."""

from .values import coerce_decimal, format_amount, reward_text  # noqa: F401
