"""Order webhooks through invitation, upload, review and reward."""

from __future__ import annotations

import json

import pytest
from sqlalchemy import func, select

from conftest import SHOP_DOMAIN, extract_token, sign_webhook
from ugc_rewards_api.models.invitation import Invitation
from ugc_rewards_api.models.submission import Reward


async def _paid_order(client, order_id: int):
    payload = {
        "id": order_id,
        "order_number": 2000 + order_id,
        "financial_status": "paid",
        "customer": {"id": 8801, "email": "alex@example.com", "first_name": "Alex", "last_name": "Kim"},
    }
    body = json.dumps(payload).encode("utf-8")
    response = await client.post(
        "/api/v1/webhooks/orders/create",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Shopify-Hmac-Sha256": sign_webhook(body),
            "X-Shopify-Shop-Domain": SHOP_DOMAIN,
        },
    )
    assert response.status_code == 200
    return response.json()


async def _invite_and_submit(app, client) -> str:
    statuses = [(await _paid_order(client, order_id))["invitationStatus"] for order_id in (1, 2, 3)]
    assert statuses == ["not_eligible", "not_eligible", "sent"]

    [invitation_email] = app.state.notifications.sent_events
    token = extract_token(invitation_email.body_text)

    validation = await client.post("/api/v1/ugc/validate-token", json={"token": token})
    assert validation.json()["valid"] is True
    assert validation.json()["customerName"] == "Alex"

    upload = await client.post(
        "/api/v1/ugc/upload-url",
        json={"token": token, "filename": "review.mp4", "contentType": "video/mp4", "fileSize": 5_000_000},
    )
    assert upload.status_code == 200

    submitted = await client.post(
        "/api/v1/ugc/submit",
        json={"token": token, "videoKey": upload.json()["videoKey"]},
    )
    assert submitted.status_code == 201
    return submitted.json()["submissionId"]


@pytest.mark.asyncio
async def test_loyal_customer_earns_reward(app_with_db, client, merchant, admin_headers, shopify_stub):
    app, session_factory = app_with_db
    submission_id = await _invite_and_submit(app, client)

    pending = await client.get("/api/v1/admin/ugc", headers=admin_headers)
    assert [item["id"] for item in pending.json()["submissions"]] == [submission_id]
    assert pending.json()["submissions"][0]["customer"]["ordersCount"] == 3

    approved = await client.post(
        f"/api/v1/admin/ugc/{submission_id}/approve",
        json={"notes": "looks great"},
        headers=admin_headers,
    )
    assert approved.status_code == 200
    assert approved.json()["reward"]["status"] == "sent"
    assert approved.json()["submission"]["reviewNotes"] == "looks great"

    reward_email = app.state.notifications.sent_events[-1]
    assert reward_email.event_type == "ugc_reward_issued"
    assert reward_email.recipient == "alex@example.com"
    assert approved.json()["reward"]["code"] in reward_email.body_text

    fourth = await _paid_order(client, 4)
    assert fourth["ordersCount"] == 4
    assert fourth["invitationStatus"] == "already_sent"

    async with session_factory() as session:
        assert (await session.execute(select(func.count(Invitation.id)))).scalar_one() == 1
        assert (await session.execute(select(func.count(Reward.id)))).scalar_one() == 1
    assert len([event for event in app.state.notifications.sent_events if event.event_type == "ugc_invitation"]) == 1


@pytest.mark.asyncio
async def test_reward_failure_keeps_approval(app_with_db, client, merchant, admin_headers, shopify_stub):
    app, _ = app_with_db
    submission_id = await _invite_and_submit(app, client)

    shopify_stub.fail_status = 422
    approved = await client.post(f"/api/v1/admin/ugc/{submission_id}/approve", headers=admin_headers)

    assert approved.status_code == 200
    assert approved.json()["submission"]["status"] == "approved"
    assert approved.json()["reward"]["status"] == "failed"
    assert approved.json()["warning"]

    listed = await client.get("/api/v1/admin/ugc", params={"status": "approved"}, headers=admin_headers)
    [item] = listed.json()["submissions"]
    assert item["reward"]["status"] == "failed"
    assert item["reward"]["errorMessage"].startswith("Shopify API error (422)")
