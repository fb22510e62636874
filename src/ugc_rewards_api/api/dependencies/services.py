"""Accessors for the clients ``create_app`` places on ``app.state``."""

from __future__ import annotations

from datetime import timedelta

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.core.settings import Settings
from ugc_rewards_api.db.session import get_session
from ugc_rewards_api.services.notifications import NotificationService
from ugc_rewards_api.services.shopify import ShopifyAdminClient
from ugc_rewards_api.services.storage import VideoStorageService
from ugc_rewards_api.services.tokens import InvitationTokenCodec, UploadTokenService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_codec(request: Request) -> InvitationTokenCodec:
    return request.app.state.token_codec


def get_shopify_client(request: Request) -> ShopifyAdminClient:
    return request.app.state.shopify_client


def get_video_storage(request: Request) -> VideoStorageService:
    return request.app.state.video_storage


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notifications


def get_upload_token_service(
    settings: Settings = Depends(get_app_settings),
    db: AsyncSession = Depends(get_session),
) -> UploadTokenService:
    return UploadTokenService(db, ttl=timedelta(days=settings.upload_token_ttl_days))
