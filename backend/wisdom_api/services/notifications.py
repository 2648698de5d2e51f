"""Transactional emails.

Every sender here is best-effort: failures are logged and reported as False,
never raised, so a mail outage cannot fail signup, verification or checkout.
"""
from __future__ import annotations

import html as _html
import logging

from wisdom_api.core.config import settings
from wisdom_api.services.mailer import mailer

log = logging.getLogger(__name__)

_SIGNATURE_TEXT = "\n\nBest regards,\nThe Wisdom Hub Team"
_SIGNATURE_HTML = "<p>Best regards,<br>The Wisdom Hub Team</p>"


def _base_url() -> str:
    return (settings.APP_BASE_URL or "").rstrip("/")


def _send(kind: str, to: str, subject: str, text: str, html: str | None = None) -> bool:
    try:
        sent = mailer.send(to, subject, text, html)
    except Exception as exc:
        log.warning("[notify] %s email failed: %s", kind, exc, exc_info=True)
        return False
    if not sent:
        log.warning("[notify] %s email was not accepted by the mail server", kind)
    return bool(sent)


def send_verification_email(email: str, name: str, token: str) -> bool:
    link = f"{_base_url()}/auth/verify?token={token}"
    text = (
        f"Hi {name},\n\n"
        f"Please verify your email address by visiting:\n{link}\n\n"
        "This link will expire in 24 hours." + _SIGNATURE_TEXT
    )
    html = (
        f"<p>Hi {_html.escape(name)},</p>"
        f'<p><a href="{link}">Verify Email</a></p>'
        f"<p>Or copy this link:</p><p><code>{link}</code></p>"
        "<p>This link will expire in 24 hours.</p>" + _SIGNATURE_HTML
    )
    return _send("verification", email, "Verify Your Email - Wisdom Hub", text, html)


def send_password_reset_email(email: str, name: str, token: str) -> bool:
    link = f"{_base_url()}/auth/reset-password?token={token}"
    text = (
        f"Hi {name},\n\n"
        "We received a request to reset your password. Visit the link below to choose a new one:\n"
        f"{link}\n\n"
        "This link expires in 1 hour. If you didn't request this, please ignore this email." + _SIGNATURE_TEXT
    )
    html = (
        f"<p>Hi {_html.escape(name)},</p>"
        "<p>We received a request to reset your password.</p>"
        f'<p><a href="{link}">Reset Password</a></p>'
        f"<p>Or copy this link:</p><p><code>{link}</code></p>"
        "<p><strong>This link will expire in 1 hour.</strong> If you didn't request this, please ignore this email.</p>"
        + _SIGNATURE_HTML
    )
    return _send("password_reset", email, "Reset Your Password - Wisdom Hub", text, html)


def send_welcome_email(email: str, name: str) -> bool:
    text = (
        f"Hi {name},\n\n"
        "Welcome to Wisdom Hub! Your email has been verified and your account is now active."
        + _SIGNATURE_TEXT
    )
    html = (
        f"<h1>Welcome to Wisdom Hub!</h1><p>Hi {_html.escape(name)},</p>"
        "<p>Your email has been verified and your account is now active.</p>"
        "<ul><li>Read daily inspirational quotes</li><li>Access premium articles and insights</li>"
        "<li>Purchase and read books</li><li>Track your reading progress</li></ul>"
        + _SIGNATURE_HTML
    )
    return _send("welcome", email, "Welcome to Wisdom Hub!", text, html)


def send_purchase_receipt_email(
    email: str,
    name: str,
    item_name: str,
    amount: int,
    transaction_id: str,
    currency: str = "usd",
) -> bool:
    amount_display = f"{amount / 100:.2f} {currency.upper()}"
    text = (
        f"Hi {name},\n\n"
        f"Thank you for your purchase!\n\n"
        f"Item: {item_name}\nAmount: {amount_display}\nTransaction ID: {transaction_id}"
        + _SIGNATURE_TEXT
    )
    html = (
        f"<p>Hi {_html.escape(name)},</p><p>Thank you for your purchase!</p>"
        f"<table><tr><td>Item</td><td>{_html.escape(item_name)}</td></tr>"
        f"<tr><td>Amount</td><td>{amount_display}</td></tr>"
        f"<tr><td>Transaction ID</td><td>{_html.escape(transaction_id)}</td></tr></table>"
        + _SIGNATURE_HTML
    )
    return _send("receipt", email, f"Purchase Receipt - {item_name}", text, html)
