from __future__ import annotations

from typing import Dict, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.api.dependencies.services import get_app_settings, get_video_storage
from ugc_rewards_api.core.settings import Settings
from ugc_rewards_api.db.session import get_session
from ugc_rewards_api.services.storage import StorageUnavailableError, VideoStorageService


router = APIRouter()


class ComponentStatus(BaseModel):
    status: Literal["ready", "disabled", "error"]
    detail: str | None = Field(default=None, description="Human readable status detail")


class ReadinessPayload(BaseModel):
    status: Literal["ready", "degraded", "error"]
    components: Dict[str, ComponentStatus]


@router.get("/healthz", summary="Service health check")
async def service_health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(
    session: AsyncSession = Depends(get_session),
    storage: VideoStorageService = Depends(get_video_storage),
    settings: Settings = Depends(get_app_settings),
) -> ReadinessPayload:
    components: Dict[str, ComponentStatus] = {}
    status: Literal["ready", "degraded", "error"] = "ready"

    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as error:
        components["database"] = ComponentStatus(status="error", detail=f"Database unreachable ({error})")
        status = "error"
    else:
        components["database"] = ComponentStatus(status="ready")

    if not storage.is_configured:
        components["video_storage"] = ComponentStatus(status="disabled", detail="Video storage bucket not configured")
    else:
        try:
            await storage.check_bucket()
        except StorageUnavailableError as error:
            components["video_storage"] = ComponentStatus(status="error", detail=str(error))
            status = "degraded" if status != "error" else status
        else:
            components["video_storage"] = ComponentStatus(status="ready")

    missing = [
        name
        for name, value in (
            ("client id", settings.shopify_client_id),
            ("client secret", settings.shopify_client_secret),
            ("webhook secret", settings.shopify_webhook_secret),
        )
        if not value
    ]
    if missing:
        components["shopify"] = ComponentStatus(status="error", detail=f"Missing Shopify {', '.join(missing)}")
        status = "degraded" if status != "error" else status
    else:
        components["shopify"] = ComponentStatus(status="ready")

    return ReadinessPayload(status=status, components=components)
