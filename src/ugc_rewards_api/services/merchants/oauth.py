"""Shopify OAuth install helpers."""

from __future__ import annotations

import re
import secrets
from typing import Iterable
from urllib.parse import urlencode

SHOP_DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")
SHOP_DOMAIN_SUFFIX = ".myshopify.com"

STATE_COOKIE = "shopify_oauth_state"
SHOP_COOKIE = "shopify_shop_domain"
OAUTH_COOKIE_MAX_AGE_SECONDS = 600


class InvalidShopDomainError(ValueError):
    """Raised when a shop parameter is not a ``*.myshopify.com`` domain."""


def normalize_shop_domain(raw: str | None) -> str:
    """Turn ``my-store`` or ``my-store.myshopify.com`` into the full domain."""

    shop = (raw or "").strip().lower()
    if not shop:
        raise InvalidShopDomainError("Missing shop parameter")
    if SHOP_DOMAIN_SUFFIX not in shop:
        shop = f"{shop}{SHOP_DOMAIN_SUFFIX}"
    if not SHOP_DOMAIN_PATTERN.match(shop):
        raise InvalidShopDomainError("Invalid shop domain")
    return shop


def generate_state() -> str:
    return secrets.token_hex(32)


def build_authorize_url(
    shop_domain: str,
    *,
    client_id: str,
    scopes: Iterable[str],
    redirect_uri: str,
    state: str,
) -> str:
    query = urlencode(
        {
            "client_id": client_id,
            "scope": ",".join(scopes),
            "redirect_uri": redirect_uri,
            "state": state,
            "grant_options[]": "",
        }
    )
    return f"https://{shop_domain}/admin/oauth/authorize?{query}"


__all__ = [
    "InvalidShopDomainError",
    "OAUTH_COOKIE_MAX_AGE_SECONDS",
    "SHOP_COOKIE",
    "SHOP_DOMAIN_PATTERN",
    "STATE_COOKIE",
    "build_authorize_url",
    "generate_state",
    "normalize_shop_domain",
]
