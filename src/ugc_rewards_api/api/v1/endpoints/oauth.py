"""Shopify app install (OAuth authorization code flow)."""

from __future__ import annotations

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.api.dependencies.services import get_app_settings, get_shopify_client
from ugc_rewards_api.core.settings import Settings
from ugc_rewards_api.db.session import get_session
from ugc_rewards_api.services.merchants import (
    OAUTH_COOKIE_MAX_AGE_SECONDS,
    SHOP_COOKIE,
    STATE_COOKIE,
    InvalidShopDomainError,
    MerchantService,
    build_authorize_url,
    generate_state,
    normalize_shop_domain,
)
from ugc_rewards_api.services.shopify import ShopifyAdminClient, ShopifyApiError
from ugc_rewards_api.services.webhooks import verify_oauth_query

router = APIRouter(prefix="/auth/shopify", tags=["auth"])


def _redirect_uri(settings: Settings) -> str:
    if settings.shopify_redirect_uri:
        return settings.shopify_redirect_uri
    return f"{settings.app_url.rstrip('/')}/api/v1/auth/shopify/callback"


@router.get("/install")
async def shopify_install(
    shop: str | None = Query(None),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    if not settings.shopify_client_id:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Shopify app not configured")
    try:
        shop_domain = normalize_shop_domain(shop)
    except InvalidShopDomainError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    state = generate_state()
    url = build_authorize_url(
        shop_domain,
        client_id=settings.shopify_client_id,
        scopes=settings.shopify_scopes,
        redirect_uri=_redirect_uri(settings),
        state=state,
    )
    response = RedirectResponse(url, status_code=status.HTTP_302_FOUND)
    secure = settings.environment == "production"
    for name, value in ((STATE_COOKIE, state), (SHOP_COOKIE, shop_domain)):
        response.set_cookie(
            name,
            value,
            max_age=OAUTH_COOKIE_MAX_AGE_SECONDS,
            httponly=True,
            samesite="lax",
            secure=secure,
        )
    logger.info("Starting Shopify install", merchant=shop_domain)
    return response


@router.get("/callback")
async def shopify_callback(
    request: Request,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
    shopify: ShopifyAdminClient = Depends(get_shopify_client),
) -> RedirectResponse:
    """Verify the callback, store the access token and hand the dashboard its admin token."""

    params = dict(request.query_params)
    code = params.get("code")
    state = params.get("state")
    shop = params.get("shop")
    if not code or not state or not shop:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required OAuth parameters")

    if state != request.cookies.get(STATE_COOKIE):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid state parameter")
    try:
        shop_domain = normalize_shop_domain(shop)
    except InvalidShopDomainError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if shop_domain != request.cookies.get(SHOP_COOKIE):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Shop domain mismatch")
    if not settings.shopify_client_secret or not verify_oauth_query(params, settings.shopify_client_secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid HMAC signature")

    try:
        grant = await shopify.exchange_access_token(shop_domain, code)
    except ShopifyApiError as exc:
        logger.error("Shopify token exchange failed", merchant=shop_domain, error=str(exc))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to obtain access token") from exc

    merchant = await MerchantService(db).upsert_installation(
        shop_domain,
        access_token=grant.access_token,
        scope=grant.scope,
    )
    query = urlencode({"shop": merchant.shop_domain, "access_token": merchant.admin_token})
    response = RedirectResponse(f"{settings.app_url.rstrip('/')}/dashboard?{query}", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(STATE_COOKIE)
    response.delete_cookie(SHOP_COOKIE)
    return response
