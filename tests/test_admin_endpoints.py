from __future__ import annotations

from uuid import uuid4

import pytest
import pytest_asyncio

from conftest import ADMIN_TOKEN, SHOP_DOMAIN
from ugc_rewards_api.services.customers import CustomerLedger, ExternalCustomer
from ugc_rewards_api.services.submissions import SubmissionLifecycle

ADMIN = "/api/v1/admin"


async def _create_submission(session_factory, merchant, external_id: str, email: str) -> str:
    async with session_factory() as session:
        customer = await CustomerLedger(session).find_or_create(
            ExternalCustomer(external_id=external_id, email=email, first_name="Jane", last_name="Doe"),
            merchant,
        )
        key = f"ugc/{SHOP_DOMAIN}/{customer.id}/1700000000000_clip.mp4"
        submission = await SubmissionLifecycle(session).create(
            customer, merchant, video_key=key, video_url=f"https://cdn.test/{key}"
        )
        return str(submission.id)


@pytest_asyncio.fixture
async def submission_id(app_with_db, merchant) -> str:
    _, session_factory = app_with_db
    return await _create_submission(session_factory, merchant, "7001", "jane@example.com")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers, error",
    [
        ({}, "Missing authentication headers"),
        ({"X-Shopify-Shop-Domain": SHOP_DOMAIN, "X-Access-Token": "wrong"}, "Invalid credentials"),
        ({"X-Shopify-Shop-Domain": "other.myshopify.com", "X-Access-Token": ADMIN_TOKEN}, "Invalid credentials"),
    ],
)
async def test_admin_routes_require_credentials(client, merchant, headers, error):
    response = await client.get(f"{ADMIN}/ugc", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": error}


@pytest.mark.asyncio
async def test_list_pending_submissions(client, admin_headers, submission_id):
    response = await client.get(f"{ADMIN}/ugc", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}
    [item] = body["submissions"]
    assert item["id"] == submission_id
    assert item["status"] == "pending"
    assert item["videoUrl"].startswith("https://cdn.test/ugc/")
    assert item["customer"]["email"] == "jane@example.com"
    assert item["customer"]["ordersCount"] == 0
    assert item["reward"] is None


@pytest.mark.asyncio
async def test_list_filters_and_pages(app_with_db, client, admin_headers, merchant, submission_id):
    _, session_factory = app_with_db
    await _create_submission(session_factory, merchant, "7002", "sam@example.com")
    await _create_submission(session_factory, merchant, "7003", "kim@example.com")

    paged = await client.get(f"{ADMIN}/ugc", params={"status": "all", "limit": 2, "page": 2}, headers=admin_headers)
    by_email = await client.get(f"{ADMIN}/ugc", params={"customer_email": "sam@"}, headers=admin_headers)
    approved = await client.get(f"{ADMIN}/ugc", params={"status": "approved"}, headers=admin_headers)
    invalid = await client.get(f"{ADMIN}/ugc", params={"status": "archived"}, headers=admin_headers)

    assert paged.json()["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}
    assert len(paged.json()["submissions"]) == 1
    assert [item["customer"]["email"] for item in by_email.json()["submissions"]] == ["sam@example.com"]
    assert approved.json()["submissions"] == []
    assert approved.json()["pagination"]["totalPages"] == 0
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid status: archived"


@pytest.mark.asyncio
async def test_approve_issues_discount(app_with_db, client, admin_headers, submission_id, shopify_stub):
    app, _ = app_with_db

    response = await client.post(
        f"{ADMIN}/ugc/{submission_id}/approve",
        json={"notes": "looks great"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Submission approved and reward sent"
    assert body["warning"] is None
    assert body["submission"]["status"] == "approved"
    assert body["submission"]["reviewNotes"] == "looks great"
    assert body["reward"]["status"] == "sent"
    assert body["reward"]["rewardType"] == "discount"
    assert body["reward"]["value"] == 10.0
    assert body["reward"]["code"].startswith("UGC-10PCT-")
    assert body["reward"]["attempts"] == 1
    assert shopify_stub.paths()[-1].endswith("/discount_codes.json")
    assert app.state.notifications.sent_events[-1].event_type == "ugc_reward_issued"


@pytest.mark.asyncio
async def test_approve_twice_conflicts(client, admin_headers, submission_id, shopify_stub):
    await client.post(f"{ADMIN}/ugc/{submission_id}/approve", headers=admin_headers)
    calls = len(shopify_stub.requests)

    again = await client.post(f"{ADMIN}/ugc/{submission_id}/approve", headers=admin_headers)

    assert again.status_code == 409
    assert again.json()["error"] == "Submission is already approved"
    assert len(shopify_stub.requests) == calls


@pytest.mark.asyncio
async def test_approve_unknown_submission(client, admin_headers, merchant):
    response = await client.post(f"{ADMIN}/ugc/{uuid4()}/approve", headers=admin_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_failed_reward_can_be_retried(client, admin_headers, submission_id, shopify_stub):
    shopify_stub.fail_status = 422
    approved = await client.post(f"{ADMIN}/ugc/{submission_id}/approve", headers=admin_headers)

    assert approved.status_code == 200
    assert approved.json()["submission"]["status"] == "approved"
    assert approved.json()["reward"]["status"] == "failed"
    assert approved.json()["message"] == "Submission approved, but the reward could not be issued; it can be retried"
    assert approved.json()["warning"].startswith("Reward issuance failed: Shopify API error (422)")

    shopify_stub.fail_status = None
    retried = await client.post(f"{ADMIN}/ugc/{submission_id}/reward/retry", headers=admin_headers)
    repeated = await client.post(f"{ADMIN}/ugc/{submission_id}/reward/retry", headers=admin_headers)

    assert retried.status_code == 200
    assert retried.json()["message"] == "Reward sent"
    assert retried.json()["reward"]["status"] == "sent"
    assert retried.json()["reward"]["attempts"] == 2
    assert retried.json()["reward"]["errorMessage"] is None
    assert repeated.status_code == 409


@pytest.mark.asyncio
async def test_reject_requires_notes(client, admin_headers, submission_id):
    missing = await client.post(f"{ADMIN}/ugc/{submission_id}/reject", headers=admin_headers)
    blank = await client.post(f"{ADMIN}/ugc/{submission_id}/reject", json={"notes": "   "}, headers=admin_headers)

    assert missing.status_code == 400
    assert missing.json()["error"] == "Rejection notes are required"
    assert blank.status_code == 400


@pytest.mark.asyncio
async def test_reject_submission(client, admin_headers, submission_id):
    response = await client.post(
        f"{ADMIN}/ugc/{submission_id}/reject",
        json={"notes": "Video is too dark"},
        headers=admin_headers,
    )
    approve_after = await client.post(f"{ADMIN}/ugc/{submission_id}/approve", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Submission rejected"
    assert body["submission"]["status"] == "rejected"
    assert body["submission"]["reviewNotes"] == "Video is too dark"
    assert "reward" not in body
    assert approve_after.status_code == 409


@pytest.mark.asyncio
async def test_reward_settings_round_trip(client, admin_headers, merchant):
    current = await client.get(f"{ADMIN}/settings", headers=admin_headers)
    updated = await client.patch(
        f"{ADMIN}/settings",
        json={"rewardType": "gift_card", "rewardValue": "20", "rewardCurrency": "usd", "emailTemplate": "<p>{{customer_name}}</p>"},
        headers=admin_headers,
    )
    partial = await client.patch(f"{ADMIN}/settings", json={"rewardValue": 30}, headers=admin_headers)

    assert current.json() == {
        "shopDomain": SHOP_DOMAIN,
        "rewardType": "discount",
        "rewardValue": 10.0,
        "rewardCurrency": "PERCENTAGE",
        "rewardText": "a 10% discount",
        "emailTemplate": None,
    }
    assert updated.status_code == 200
    assert updated.json()["rewardType"] == "gift_card"
    assert updated.json()["rewardCurrency"] == "USD"
    assert updated.json()["rewardText"] == "a 20 USD gift card"
    assert partial.json()["rewardValue"] == 30.0
    assert partial.json()["emailTemplate"] == "<p>{{customer_name}}</p>"


@pytest.mark.asyncio
async def test_invalid_reward_settings(client, admin_headers, merchant):
    response = await client.patch(f"{ADMIN}/settings", json={"rewardValue": 150}, headers=admin_headers)
    bad_type = await client.patch(f"{ADMIN}/settings", json={"rewardType": "points"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Percentage discounts cannot exceed 100"
    assert bad_type.status_code == 400
