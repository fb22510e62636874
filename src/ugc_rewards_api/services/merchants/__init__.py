"""Merchant registry and Shopify OAuth helpers."""

from .oauth import (
    OAUTH_COOKIE_MAX_AGE_SECONDS,
    SHOP_COOKIE,
    STATE_COOKIE,
    InvalidShopDomainError,
    build_authorize_url,
    generate_state,
    normalize_shop_domain,
)
from .service import (
    MerchantAuthenticationError,
    MerchantError,
    MerchantNotFoundError,
    MerchantService,
    MerchantSettingsError,
    generate_admin_token,
)

__all__ = [
    "InvalidShopDomainError",
    "MerchantAuthenticationError",
    "MerchantError",
    "MerchantNotFoundError",
    "MerchantService",
    "MerchantSettingsError",
    "OAUTH_COOKIE_MAX_AGE_SECONDS",
    "SHOP_COOKIE",
    "STATE_COOKIE",
    "build_authorize_url",
    "generate_admin_token",
    "generate_state",
    "normalize_shop_domain",
]
