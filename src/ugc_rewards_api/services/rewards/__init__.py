"""Reward issuance."""

from .dispatcher import RewardDispatcher, RewardResult, build_discount_code, build_price_rule

__all__ = ["RewardDispatcher", "RewardResult", "build_discount_code", "build_price_rule"]
