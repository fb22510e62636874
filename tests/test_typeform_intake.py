from __future__ import annotations

import pytest
from sqlalchemy import func, select

from conftest import TOKEN_SECRET, extract_token
from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.upload_token import UploadToken
from ugc_rewards_api.services.customers import CustomerLedger, ExternalCustomer
from ugc_rewards_api.services.forms import FormIntakeService, FormPayloadError, extract_answers
from ugc_rewards_api.services.notifications import InMemoryEmailBackend, NotificationService
from ugc_rewards_api.services.tokens import InvitationTokenCodec, UploadTokenService, looks_like_upload_token


def _payload(email="maria@example.com", shop="demo-store.myshopify.com", event_id="evt-1", token="resp-token-1", extra=()):
    answers = [
        {"type": "email", "email": email, "field": {"type": "email", "ref": "email"}},
        {"type": "text", "text": "Maria", "field": {"type": "short_text", "ref": "name"}},
        {"type": "text", "text": shop, "field": {"type": "short_text", "ref": "shop_domain"}},
        *extra,
    ]
    return {
        "event_id": event_id,
        "event_type": "form_response",
        "form_response": {"token": token, "answers": answers},
    }


def _service(session, backend=None) -> tuple[FormIntakeService, NotificationService]:
    notifications = NotificationService(backend or InMemoryEmailBackend(), app_url="https://app.test")
    service = FormIntakeService(
        session,
        codec=InvitationTokenCodec(TOKEN_SECRET),
        notifications=notifications,
        upload_tokens=UploadTokenService(session),
    )
    return service, notifications


def test_extract_answers_reads_refs():
    answers = extract_answers(_payload(shop="Demo-Store.myshopify.com")["form_response"]["answers"])

    assert answers.email == "maria@example.com"
    assert answers.name == "Maria"
    assert answers.shop_domain == "demo-store.myshopify.com"
    assert answers.customer_token is None


@pytest.mark.asyncio
async def test_form_response_issues_upload_link(session_factory, merchant):
    async with session_factory() as session:
        service, notifications = _service(session)

        outcome = await service.handle_form_response(_payload())

        assert outcome.status == "processed"
        assert outcome.email_sent
        [event] = notifications.sent_events
        assert event.event_type == "ugc_upload_link"
        assert event.recipient == "maria@example.com"
        token = extract_token(event.body_text)
        assert looks_like_upload_token(token)

        stored = (await session.execute(select(UploadToken).where(UploadToken.token == token))).scalar_one()
        assert stored.customer_id == outcome.customer_id
        assert stored.form_response_token == "resp-token-1"
        customer = await CustomerLedger(session).get(outcome.customer_id)
        assert customer.external_id == "form:resp-token-1"
        assert customer.orders_count == 0


@pytest.mark.asyncio
async def test_form_response_reuses_customer_by_email(session_factory, merchant):
    async with session_factory() as session:
        existing = await CustomerLedger(session).find_or_create(
            ExternalCustomer(external_id="9090", email="Maria@Example.com", first_name="Maria"),
            merchant,
        )
        service, _ = _service(session)

        outcome = await service.handle_form_response(_payload())

        assert outcome.customer_id == existing.id
        count = (await session.execute(select(func.count(Customer.id)))).scalar_one()
        assert count == 1


@pytest.mark.asyncio
async def test_redelivered_form_response_is_ignored(session_factory, merchant):
    async with session_factory() as session:
        service, notifications = _service(session)

        await service.handle_form_response(_payload())
        outcome = await service.handle_form_response(_payload())

        assert outcome.status == "duplicate"
        assert len(notifications.sent_events) == 1


@pytest.mark.asyncio
async def test_email_failure_is_reported_not_raised(session_factory, merchant):
    async with session_factory() as session:
        service, notifications = _service(session, InMemoryEmailBackend(fail_with=ConnectionError("smtp down")))

        outcome = await service.handle_form_response(_payload())

        assert outcome.status == "processed"
        assert not outcome.email_sent
        assert notifications.sent_events == []


@pytest.mark.asyncio
async def test_non_form_events_are_ignored(session_factory):
    async with session_factory() as session:
        service, _ = _service(session)

        outcome = await service.handle_form_response({"event_type": "form_started"})

        assert outcome.status == "ignored"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, message",
    [
        ({"event_type": "form_response"}, "form_response is required"),
        (_payload(email=""), "Email required"),
        (_payload(shop=""), "Shop domain required"),
        (_payload(shop="unknown-store.myshopify.com"), "Unknown shop domain"),
        (_payload(token=None, event_id=None), "form_response.token required"),
        (_payload(token="  "), "form_response.token required"),
    ],
)
async def test_invalid_form_responses_raise(session_factory, merchant, payload, message):
    async with session_factory() as session:
        service, _ = _service(session)

        with pytest.raises(FormPayloadError, match=message):
            await service.handle_form_response(payload)


@pytest.mark.asyncio
async def test_respondents_without_event_id_stay_separate(session_factory, merchant):
    async with session_factory() as session:
        service, notifications = _service(session)

        first = await service.handle_form_response(_payload(email="maria@example.com", event_id=None, token="resp-a"))
        second = await service.handle_form_response(_payload(email="bob@example.com", event_id=None, token="resp-b"))

        assert first.customer_id != second.customer_id
        assert [event.recipient for event in notifications.sent_events] == ["maria@example.com", "bob@example.com"]
        bob = await CustomerLedger(session).get(second.customer_id)
        assert bob.email == "bob@example.com"
        assert bob.external_id == "form:resp-b"


@pytest.mark.asyncio
async def test_tokenless_response_issues_nothing(session_factory, merchant):
    async with session_factory() as session:
        service, notifications = _service(session)

        with pytest.raises(FormPayloadError):
            await service.handle_form_response(_payload(email="bob@example.com", event_id=None, token=None))

        assert notifications.sent_events == []
        assert (await session.execute(select(func.count(UploadToken.token)))).scalar_one() == 0
        assert (await session.execute(select(func.count(Customer.id)))).scalar_one() == 0
