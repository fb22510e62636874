"""Notification templates for customer-facing emails."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Mapping

_TAG_PATTERN = re.compile(r"<[^>]+>")
_BLANK_LINES = re.compile(r"\n\s*\n+")

DEFAULT_INVITATION_TEMPLATE = """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>Hi {{customer_name}}!</h2>
  <p>Thanks for being a loyal customer of {{shop_domain}}.</p>
  <p>We would love to hear about your experience in a short video testimonial.</p>
  <p><strong>As a thank you, you will receive {{reward_text}}.</strong></p>
  <p style="text-align: center; margin: 30px 0;">
    <a href="{{ugc_form_url}}" style="background-color: #007cba; color: white; padding: 15px 30px; text-decoration: none; border-radius: 5px;">Upload my video</a>
  </p>
  <ol>
    <li>Click the button above</li>
    <li>Record a short video (30 to 60 seconds) showing the product</li>
    <li>Upload it with our form</li>
    <li>Receive your reward once it is approved</li>
  </ol>
  <p>The {{shop_domain}} team</p>
</div>
"""


@dataclass
class RenderedTemplate:
    subject: str
    text_body: str
    html_body: str


def render_placeholders(template: str, context: Mapping[str, str]) -> str:
    rendered = template
    for key, value in context.items():
        rendered = rendered.replace(f"{{{{{key}}}}}", value)
    return rendered


def html_to_text(markup: str) -> str:
    text = _TAG_PATTERN.sub("", markup)
    text = html.unescape(text)
    lines = [line.strip() for line in text.splitlines()]
    return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def render_invitation(
    *,
    customer_name: str,
    shop_domain: str,
    form_url: str,
    reward_text: str,
    merchant_template: str | None = None,
) -> RenderedTemplate:
    """Render the merchant's template, or the default one, for an invitation."""

    template = merchant_template if merchant_template and merchant_template.strip() else DEFAULT_INVITATION_TEMPLATE
    context = {
        "customer_name": html.escape(customer_name),
        "shop_domain": html.escape(shop_domain),
        "ugc_form_url": html.escape(form_url, quote=True),
        "reward_text": html.escape(reward_text),
    }
    html_body = render_placeholders(template, context)
    text_body = html_to_text(html_body)
    if form_url not in text_body:
        text_body = f"{text_body}\n\n{form_url}"
    return RenderedTemplate(
        subject="Share your experience and get a reward!",
        text_body=text_body,
        html_body=html_body,
    )


def render_upload_link(*, customer_name: str, shop_domain: str, upload_url: str, expires_days: int) -> RenderedTemplate:
    subject = f"Upload your video for {shop_domain}"
    text_body = "\n".join(
        [
            f"Hi {customer_name},",
            "",
            "Thanks for filling in our form. Use the link below to upload your video:",
            upload_url,
            "",
            f"The link can be used once and expires in {expires_days} days.",
            "",
            f"The {shop_domain} team",
        ]
    )
    html_body = f"""<html>
  <body>
    <p>Hi {html.escape(customer_name)},</p>
    <p>Thanks for filling in our form. Use the link below to upload your video:</p>
    <p><a href="{html.escape(upload_url, quote=True)}">Upload my video</a></p>
    <p>The link can be used once and expires in {expires_days} days.</p>
    <p>The {html.escape(shop_domain)} team</p>
  </body>
</html>"""
    return RenderedTemplate(subject=subject, text_body=text_body, html_body=html_body)


def render_reward_issued(
    *,
    customer_name: str,
    shop_domain: str,
    reward_text: str,
    code: str | None,
) -> RenderedTemplate:
    subject = f"Your reward from {shop_domain} is ready"
    lines = [
        f"Hi {customer_name},",
        "",
        f"Your video was approved. As promised, here is {reward_text}.",
    ]
    code_html = ""
    if code:
        lines.append(f"Your code: {code}")
        code_html = f"\n    <p>Your code: <strong>{html.escape(code)}</strong></p>"
    lines.extend(["", "Thank you for sharing your experience!", f"The {shop_domain} team"])
    html_body = f"""<html>
  <body>
    <p>Hi {html.escape(customer_name)},</p>
    <p>Your video was approved. As promised, here is {html.escape(reward_text)}.</p>{code_html}
    <p>Thank you for sharing your experience!</p>
    <p>The {html.escape(shop_domain)} team</p>
  </body>
</html>"""
    return RenderedTemplate(subject=subject, text_body="\n".join(lines), html_body=html_body)
