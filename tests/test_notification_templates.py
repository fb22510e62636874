from __future__ import annotations

from decimal import Decimal

import pytest

from ugc_rewards_api.domain.rewards import format_amount, reward_text
from ugc_rewards_api.models.merchant import RewardTypeEnum
from ugc_rewards_api.services.notifications.templates import (
    render_invitation,
    render_reward_issued,
    render_upload_link,
)

FORM_URL = "https://app.test/ugc-form?token=1.2.abc"


@pytest.mark.parametrize(
    "reward_type, value, currency, expected",
    [
        (RewardTypeEnum.DISCOUNT, Decimal("10.00"), "PERCENTAGE", "a 10% discount"),
        ("discount", "15", "USD", "a 15 USD discount"),
        (RewardTypeEnum.GIFT_CARD, Decimal("25.50"), "EUR", "a 25.5 EUR gift card"),
        ("points", 5, "USD", "a special reward"),
        (RewardTypeEnum.DISCOUNT, None, "PERCENTAGE", "a special reward"),
        (RewardTypeEnum.DISCOUNT, "lots", "PERCENTAGE", "a special reward"),
    ],
)
def test_reward_text(reward_type, value, currency, expected):
    assert reward_text(reward_type, value, currency) == expected


def test_format_amount_keeps_values_unscaled():
    assert format_amount(Decimal("10.00")) == "10"
    assert format_amount("12.50") == "12.5"
    assert format_amount(1000) == "1000"


def test_default_invitation_template():
    rendered = render_invitation(
        customer_name="Jane",
        shop_domain="demo-store.myshopify.com",
        form_url=FORM_URL,
        reward_text="a 10% discount",
    )

    assert rendered.subject == "Share your experience and get a reward!"
    assert "Hi Jane!" in rendered.text_body
    assert "a 10% discount" in rendered.text_body
    assert f'href="{FORM_URL}"' in rendered.html_body
    assert FORM_URL in rendered.text_body
    assert "{{" not in rendered.html_body


def test_merchant_template_placeholders_are_escaped():
    rendered = render_invitation(
        customer_name="<script>",
        shop_domain="demo-store.myshopify.com",
        form_url=FORM_URL,
        reward_text="a 10% discount",
        merchant_template="<p>Hello {{customer_name}}, claim {{reward_text}} at {{shop_domain}}</p>",
    )

    assert rendered.html_body == "<p>Hello &lt;script&gt;, claim a 10% discount at demo-store.myshopify.com</p>"
    assert rendered.text_body.endswith(FORM_URL)


def test_upload_link_and_reward_emails():
    upload = render_upload_link(
        customer_name="Lee",
        shop_domain="demo-store.myshopify.com",
        upload_url="https://app.test/ugc-upload?token=ugc_abc",
        expires_days=7,
    )
    reward = render_reward_issued(
        customer_name="Lee",
        shop_domain="demo-store.myshopify.com",
        reward_text="a 10% discount",
        code="UGC-10PCT-ABC123",
    )
    no_code = render_reward_issued(
        customer_name="Lee",
        shop_domain="demo-store.myshopify.com",
        reward_text="a 20 USD gift card",
        code=None,
    )

    assert upload.subject == "Upload your video for demo-store.myshopify.com"
    assert "https://app.test/ugc-upload?token=ugc_abc" in upload.text_body
    assert "expires in 7 days" in upload.text_body
    assert reward.subject == "Your reward from demo-store.myshopify.com is ready"
    assert "Your code: UGC-10PCT-ABC123" in reward.text_body
    assert "Your code" not in no_code.text_body
