from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import select

from conftest import ADMIN_TOKEN, CLIENT_SECRET, SHOP_DOMAIN, build_settings
from ugc_rewards_api.models.merchant import Merchant
from ugc_rewards_api.services.webhooks import compute_oauth_query_hmac

INSTALL = "/api/v1/auth/shopify/install"
CALLBACK = "/api/v1/auth/shopify/callback"


def _signed_params(**overrides) -> dict[str, str]:
    params = {"code": "auth-code", "shop": SHOP_DOMAIN, "state": "state-123", "timestamp": "1700000000"}
    params.update(overrides)
    params["hmac"] = compute_oauth_query_hmac(params, CLIENT_SECRET)
    return params


def _cookies(state: str = "state-123", shop: str = SHOP_DOMAIN) -> dict[str, str]:
    return {"Cookie": f"shopify_oauth_state={state}; shopify_shop_domain={shop}"}


@pytest.mark.asyncio
async def test_install_redirects_to_shopify(client):
    response = await client.get(INSTALL, params={"shop": "demo-store"})

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    query = parse_qs(location.query)
    assert location.netloc == SHOP_DOMAIN
    assert location.path == "/admin/oauth/authorize"
    assert query["client_id"] == ["shopify-client-id"]
    assert query["redirect_uri"] == ["https://app.test/api/v1/auth/shopify/callback"]

    cookies = response.headers.get_list("set-cookie")
    state_cookie = next(cookie for cookie in cookies if cookie.startswith("shopify_oauth_state="))
    assert f"shopify_oauth_state={query['state'][0]};" in state_cookie
    assert "HttpOnly" in state_cookie
    assert "Max-Age=600" in state_cookie
    assert any(cookie.startswith(f"shopify_shop_domain={SHOP_DOMAIN}") for cookie in cookies)


@pytest.mark.asyncio
async def test_install_rejects_bad_shop(client):
    response = await client.get(INSTALL, params={"shop": "evil.example.com/x"})

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_install_requires_app_credentials(app_with_db, client):
    app, _ = app_with_db
    app.state.settings = build_settings(shopify_client_id="")

    response = await client.get(INSTALL, params={"shop": "demo-store"})

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_callback_installs_merchant(app_with_db, client, shopify_stub):
    _, session_factory = app_with_db

    response = await client.get(CALLBACK, params=_signed_params(), headers=_cookies())

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    query = parse_qs(location.query)
    assert f"{location.scheme}://{location.netloc}{location.path}" == "https://app.test/dashboard"
    assert query["shop"] == [SHOP_DOMAIN]

    async with session_factory() as session:
        merchant = (await session.execute(select(Merchant).where(Merchant.shop_domain == SHOP_DOMAIN))).scalar_one()
    assert merchant.access_token == "shpat_exchanged"
    assert query["access_token"] == [merchant.admin_token]
    assert shopify_stub.paths() == ["/admin/oauth/access_token"]
    assert any(cookie.startswith('shopify_oauth_state=""') for cookie in response.headers.get_list("set-cookie"))


@pytest.mark.asyncio
async def test_reinstall_keeps_admin_token(app_with_db, client, merchant):
    _, session_factory = app_with_db

    response = await client.get(CALLBACK, params=_signed_params(), headers=_cookies())

    query = parse_qs(urlparse(response.headers["location"]).query)
    assert query["access_token"] == [ADMIN_TOKEN]
    async with session_factory() as session:
        refreshed = await session.get(Merchant, merchant.id)
    assert refreshed.access_token == "shpat_exchanged"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, headers, status_code, error",
    [
        ({"shop": SHOP_DOMAIN}, _cookies(), 400, "Missing required OAuth parameters"),
        (_signed_params(), _cookies(state="other-state"), 400, "Invalid state parameter"),
        (_signed_params(), {"Cookie": "shopify_oauth_state=state-123"}, 400, "Shop domain mismatch"),
        ({**_signed_params(), "hmac": "0" * 64}, _cookies(), 401, "Invalid HMAC signature"),
    ],
)
async def test_callback_rejections(client, shopify_stub, params, headers, status_code, error):
    response = await client.get(CALLBACK, params=params, headers=headers)

    assert response.status_code == status_code
    assert response.json() == {"success": False, "error": error}
    assert shopify_stub.requests == []


@pytest.mark.asyncio
async def test_callback_token_exchange_failure(client, shopify_stub):
    shopify_stub.fail_status = 500

    response = await client.get(CALLBACK, params=_signed_params(), headers=_cookies())

    assert response.status_code == 502
    assert response.json()["error"] == "Failed to obtain access token"
