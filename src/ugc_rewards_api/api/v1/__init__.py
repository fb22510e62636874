from fastapi import APIRouter

from .endpoints import (
    admin,
    form_webhooks,
    health,
    oauth,
    order_webhooks,
    ugc,
)

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(order_webhooks.router)
router.include_router(form_webhooks.router)
router.include_router(ugc.router)
router.include_router(admin.router)
router.include_router(oauth.router)
