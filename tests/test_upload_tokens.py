from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ugc_rewards_api.services.customers import CustomerLedger, ExternalCustomer
from ugc_rewards_api.services.tokens import (
    UploadTokenInvalidError,
    UploadTokenService,
    looks_like_upload_token,
)


async def _customer(session, merchant):
    external = ExternalCustomer(external_id="form:resp-1", email="lee@example.com", first_name="Lee")
    return await CustomerLedger(session).find_or_create(external, merchant)


@pytest.mark.asyncio
async def test_issued_token_resolves_to_customer(session_factory, merchant):
    async with session_factory() as session:
        service = UploadTokenService(session, ttl=timedelta(days=7))
        customer = await _customer(session, merchant)

        issued = await service.issue(customer, form_response_token="resp-1")
        resolved = await service.resolve(issued.token)

        assert looks_like_upload_token(issued.token)
        assert resolved.customer.id == customer.id
        assert resolved.customer.merchant.shop_domain == merchant.shop_domain
        assert resolved.form_response_token == "resp-1"


@pytest.mark.asyncio
async def test_token_can_be_consumed_once(session_factory, merchant):
    async with session_factory() as session:
        service = UploadTokenService(session)
        customer = await _customer(session, merchant)
        issued = await service.issue(customer)
        token = issued.token

        await service.consume(token)
        await session.commit()

        with pytest.raises(UploadTokenInvalidError, match="already been used"):
            await service.consume(token)
        with pytest.raises(UploadTokenInvalidError, match="already been used"):
            await service.resolve(token)


@pytest.mark.asyncio
async def test_expired_token_is_rejected(session_factory, merchant):
    async with session_factory() as session:
        service = UploadTokenService(session, ttl=timedelta(days=7))
        customer = await _customer(session, merchant)
        issued = await service.issue(customer)

        with pytest.raises(UploadTokenInvalidError, match="expired"):
            await service.resolve(issued.token, now=datetime.now(timezone.utc) + timedelta(days=8))


@pytest.mark.asyncio
async def test_unknown_and_blank_tokens_are_rejected(session_factory):
    async with session_factory() as session:
        service = UploadTokenService(session)

        with pytest.raises(UploadTokenInvalidError, match="required"):
            await service.resolve("   ")
        with pytest.raises(UploadTokenInvalidError, match="Invalid"):
            await service.resolve("ugc_doesnotexist")


def test_looks_like_upload_token():
    assert looks_like_upload_token("ugc_abc")
    assert not looks_like_upload_token("1700000000000.1700600000000.deadbeef")
    assert not looks_like_upload_token(None)
    assert not looks_like_upload_token("")
