"""Thin async client for the Shopify Admin REST API and OAuth token exchange."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx
from loguru import logger


class ShopifyApiError(RuntimeError):
    """Raised when Shopify rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


@dataclass(slots=True, frozen=True)
class AccessGrant:
    access_token: str
    scope: str | None


class ShopifyAdminClient:
    """Issues Admin API calls on behalf of an installed shop.

    The underlying ``httpx.AsyncClient`` is owned by the application and shared
    across requests; tests hand in one backed by ``httpx.MockTransport``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        api_version: str,
        client_id: str,
        client_secret: str,
    ) -> None:
        self._http = http_client
        self._api_version = api_version
        self._client_id = client_id
        self._client_secret = client_secret

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def admin_url(self, shop_domain: str, path: str) -> str:
        return f"https://{shop_domain}/admin/api/{self._api_version}/{path.lstrip('/')}"

    async def exchange_access_token(self, shop_domain: str, code: str) -> AccessGrant:
        """Trade an OAuth authorization code for a permanent access token."""

        url = f"https://{shop_domain}/admin/oauth/access_token"
        payload = {"client_id": self._client_id, "client_secret": self._client_secret, "code": code}
        data = await self._request("POST", url, json=payload)
        token = data.get("access_token")
        if not isinstance(token, str) or not token:
            raise ShopifyApiError("Shopify did not return an access token", url=url)
        scope = data.get("scope")
        return AccessGrant(access_token=token, scope=scope if isinstance(scope, str) else None)

    async def create_price_rule(self, shop_domain: str, access_token: str, price_rule: Mapping[str, Any]) -> dict[str, Any]:
        data = await self._admin_post(shop_domain, access_token, "price_rules.json", {"price_rule": dict(price_rule)})
        return _unwrap(data, "price_rule")

    async def create_discount_code(
        self,
        shop_domain: str,
        access_token: str,
        price_rule_id: str,
        code: str,
    ) -> dict[str, Any]:
        data = await self._admin_post(
            shop_domain,
            access_token,
            f"price_rules/{price_rule_id}/discount_codes.json",
            {"discount_code": {"code": code}},
        )
        return _unwrap(data, "discount_code")

    async def create_gift_card(self, shop_domain: str, access_token: str, gift_card: Mapping[str, Any]) -> dict[str, Any]:
        data = await self._admin_post(shop_domain, access_token, "gift_cards.json", {"gift_card": dict(gift_card)})
        return _unwrap(data, "gift_card")

    async def _admin_post(
        self,
        shop_domain: str,
        access_token: str,
        path: str,
        payload: Mapping[str, Any],
    ) -> dict[str, Any]:
        headers = {"X-Shopify-Access-Token": access_token}
        return await self._request("POST", self.admin_url(shop_domain, path), json=payload, headers=headers)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        request_headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)
        try:
            response = await self._http.request(method, url, json=json, headers=request_headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:512] if exc.response is not None else None
            logger.warning("Shopify returned HTTP error", url=url, status=exc.response.status_code, body=body)
            raise ShopifyApiError(
                _error_message(exc.response),
                status_code=exc.response.status_code,
                url=url,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Shopify request failed", url=url, error=str(exc))
            raise ShopifyApiError(f"Shopify request failed: {exc}", url=url) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ShopifyApiError("Shopify returned a non-JSON body", status_code=response.status_code, url=url) from exc
        if not isinstance(data, dict):
            raise ShopifyApiError("Shopify returned an unexpected body", status_code=response.status_code, url=url)
        return data


def _unwrap(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ShopifyApiError(f"Shopify response is missing '{key}'")
    return value


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"Shopify API error ({response.status_code})"
    errors = data.get("errors") if isinstance(data, dict) else None
    if isinstance(errors, dict):
        parts = [f"{field}: {', '.join(map(str, msgs)) if isinstance(msgs, list) else msgs}" for field, msgs in errors.items()]
        return f"Shopify API error ({response.status_code}): {'; '.join(parts)}"
    if errors:
        return f"Shopify API error ({response.status_code}): {errors}"
    return f"Shopify API error ({response.status_code})"


__all__ = ["AccessGrant", "ShopifyAdminClient", "ShopifyApiError"]
