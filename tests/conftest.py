import base64
import hashlib
import hmac
import json
import re
import sys
from decimal import Decimal
from pathlib import Path
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from ugc_rewards_api.app import create_app  # noqa: E402
from ugc_rewards_api.core.settings import Settings  # noqa: E402
from ugc_rewards_api.db.base import Base  # noqa: E402
from ugc_rewards_api.db.session import get_session  # noqa: E402
import ugc_rewards_api.models  # noqa: E402,F401
from ugc_rewards_api.models.merchant import Merchant, RewardTypeEnum  # noqa: E402
from ugc_rewards_api.services.notifications import InMemoryEmailBackend  # noqa: E402

SHOP_DOMAIN = "demo-store.myshopify.com"
ADMIN_TOKEN = "admin-token-123"
WEBHOOK_SECRET = "shopify-webhook-secret"
CLIENT_SECRET = "shopify-client-secret"
TOKEN_SECRET = "invitation-token-secret"

_TOKEN_IN_URL = re.compile(r"token=([^\s\"'&<]+)")


class FakeS3Client:
    """Records presign/put calls the way boto3's S3 client is called."""

    def __init__(self) -> None:
        self.objects: dict[str, dict] = {}
        self.presigned: list[dict] = []
        self.head_bucket_error: Exception | None = None

    def generate_presigned_url(self, operation, Params, ExpiresIn):  # noqa: N803
        self.presigned.append({"operation": operation, "params": Params, "expires_in": ExpiresIn})
        return f"https://r2.test/{Params['Bucket']}/{Params['Key']}?X-Amz-Expires={ExpiresIn}"

    def put_object(self, **kwargs):
        self.objects[kwargs["Key"]] = kwargs
        return {"ETag": '"etag"'}

    def head_bucket(self, Bucket):  # noqa: N803
        if self.head_bucket_error is not None:
            raise self.head_bucket_error
        return {}


class ShopifyStub:
    """Answers Admin API calls through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.fail_status: int | None = None
        self.access_token = "shpat_exchanged"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"errors": {"base": ["Something went wrong"]}})

        path = request.url.path
        if path.endswith("/admin/oauth/access_token"):
            return httpx.Response(200, json={"access_token": self.access_token, "scope": "read_orders,write_discounts"})
        if path.endswith("/price_rules.json"):
            return httpx.Response(201, json={"price_rule": {"id": 9001}})
        if "/price_rules/" in path and path.endswith("/discount_codes.json"):
            payload = json.loads(request.content)
            return httpx.Response(201, json={"discount_code": {"id": 77, "code": payload["discount_code"]["code"]}})
        if path.endswith("/gift_cards.json"):
            return httpx.Response(201, json={"gift_card": {"id": 5005, "code": "GIFTCODE1234"}})
        return httpx.Response(404, json={"errors": "Not Found"})

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


def build_settings(**overrides) -> Settings:
    values = {
        "environment": "development",
        "database_url": "sqlite+aiosqlite:///:memory:",
        "app_url": "https://app.test",
        "invitation_token_secret": TOKEN_SECRET,
        "shopify_client_id": "shopify-client-id",
        "shopify_client_secret": CLIENT_SECRET,
        "shopify_webhook_secret": WEBHOOK_SECRET,
        "shopify_redirect_uri": "https://app.test/api/v1/auth/shopify/callback",
        "storage_bucket": "ugc-videos",
        "storage_public_base_url": "https://cdn.test",
        "smtp_host": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def extract_token(body: str) -> str:
    match = _TOKEN_IN_URL.search(body)
    assert match is not None, body
    return unquote(match.group(1))


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def test_settings() -> Settings:
    return build_settings()


@pytest.fixture
def shopify_stub() -> ShopifyStub:
    return ShopifyStub()


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def email_backend() -> InMemoryEmailBackend:
    return InMemoryEmailBackend()


@pytest_asyncio.fixture
async def app_with_db(session_factory, test_settings, shopify_stub, s3_client, email_backend):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(shopify_stub.handler))
    app = create_app(
        test_settings,
        http_client=http_client,
        s3_client_factory=lambda: s3_client,
        email_backend=email_backend,
    )

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()
        await http_client.aclose()
        await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app_with_db):
    app, _ = app_with_db
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


@pytest_asyncio.fixture
async def merchant(session_factory) -> Merchant:
    async with session_factory() as session:
        record = Merchant(
            shop_domain=SHOP_DOMAIN,
            access_token="shpat_installed",
            scope="read_orders,write_discounts",
            admin_token=ADMIN_TOKEN,
            reward_type=RewardTypeEnum.DISCOUNT,
            reward_value=Decimal("10"),
            reward_currency="PERCENTAGE",
            is_active=True,
        )
        session.add(record)
        await session.commit()
        await session.refresh(record)
        return record


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Shopify-Shop-Domain": SHOP_DOMAIN, "X-Access-Token": ADMIN_TOKEN}


def sign_webhook(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")
