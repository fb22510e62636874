from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Callable

import httpx
from fastapi import FastAPI
from loguru import logger

from ugc_rewards_api.core.settings import Settings, get_settings
from ugc_rewards_api.db.session import build_engine, build_session_factory
from .api.errors import register_exception_handlers
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .services.notifications import EmailBackend, NotificationService, build_email_backend
from .services.shopify import ShopifyAdminClient
from .services.storage import VideoStorageService
from .services.tokens import InvitationTokenCodec


APP_VERSION = "0.1.0"
SERVICE_NAME = "ugc-rewards-api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    logger.info(
        "UGC rewards API started",
        environment=state.settings.environment,
        storage_configured=state.video_storage.is_configured,
        shopify_configured=state.shopify_client.is_configured,
    )
    try:
        yield
    finally:
        if state.owns_http_client:
            await state.http_client.aclose()
        await state.engine.dispose()
        logger.info("UGC rewards API stopped")


def create_app(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    s3_client_factory: Callable[[], Any] | None = None,
    email_backend: EmailBackend | None = None,
) -> FastAPI:
    """Application factory; every shared client is built here and released in ``lifespan``."""
    settings = settings or get_settings()
    configure_logging(
        service_name=SERVICE_NAME,
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="UGC Rewards API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    if settings.tracing_enabled:
        configure_tracing(app, settings, service_name=SERVICE_NAME, service_version=APP_VERSION)

    engine = build_engine(settings.database_url)
    owns_http_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.shopify_request_timeout_seconds)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.http_client = http_client
    app.state.owns_http_client = owns_http_client
    app.state.shopify_client = ShopifyAdminClient(
        http_client,
        api_version=settings.shopify_api_version,
        client_id=settings.shopify_client_id,
        client_secret=settings.shopify_client_secret,
    )
    app.state.video_storage = VideoStorageService(settings, s3_client_factory=s3_client_factory)
    app.state.notifications = NotificationService(
        email_backend if email_backend is not None else build_email_backend(settings),
        app_url=settings.app_url,
        upload_token_ttl_days=settings.upload_token_ttl_days,
    )
    app.state.token_codec = InvitationTokenCodec(
        settings.invitation_token_secret,
        ttl=timedelta(days=settings.invitation_token_ttl_days),
    )

    register_exception_handlers(app, environment=settings.environment)
    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
