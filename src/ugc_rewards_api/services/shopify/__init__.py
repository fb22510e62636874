"""Shopify Admin API integration."""

from .client import AccessGrant, ShopifyAdminClient, ShopifyApiError

__all__ = ["AccessGrant", "ShopifyAdminClient", "ShopifyApiError"]
