from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.db.session import get_session
from ugc_rewards_api.models.merchant import Merchant
from ugc_rewards_api.services.merchants import MerchantAuthenticationError, MerchantService


async def require_merchant(
    shop_domain: str | None = Header(None, alias="X-Shopify-Shop-Domain"),
    access_token: str | None = Header(None, alias="X-Access-Token"),
    db: AsyncSession = Depends(get_session),
) -> Merchant:
    """Resolve the merchant from the dashboard's shop domain + admin token headers."""

    try:
        return await MerchantService(db).authenticate(shop_domain, access_token)
    except MerchantAuthenticationError as error:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(error),
        ) from error
