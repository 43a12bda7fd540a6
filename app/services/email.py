"""
Email and SMS delivery.

Emails go out via SMTP. In development (no SMTP configured), emails are
logged instead so you can see what *would* be sent without configuring a
mail server. SMS has no provider wired in and is always logged.
"""

from __future__ import annotations

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from app.config import (
    ARENA_NAME,
    SMTP_FROM_EMAIL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
    smtp_enabled,
)

logger = logging.getLogger(__name__)


def _build_html_body(title: str, message: str) -> str:
    """Simple branded HTML wrapper around a notification message."""
    paragraphs = "".join(f"<p>{line}</p>" for line in message.splitlines() if line.strip())
    return f"""
    <html>
    <body style="font-family:sans-serif;color:#333">
      <h2>{title}</h2>
      {paragraphs}
      <p style="margin-top:1em;font-size:0.9em;color:#888">
        {ARENA_NAME}
      </p>
    </body>
    </html>
    """


async def send_email(
    to_email: str,
    subject: str,
    plain: str,
    *,
    html: str | None = None,
) -> None:
    """
    Send (or log) an email.

    If SMTP is not configured, falls back to console output.
    """
    # ── Console fallback (dev mode) ───────────────────────────────────
    if not smtp_enabled():
        logger.info(
            "📧 [DEV] Would send email to %s:\n  Subject: %s\n%s",
            to_email,
            subject,
            "\n".join(f"    {line}" for line in plain.splitlines()),
        )
        return

    # ── Real SMTP send ────────────────────────────────────────────────
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg.attach(MIMEText(plain, "plain"))
    msg.attach(MIMEText(html or _build_html_body(subject, plain), "html"))

    try:
        await aiosmtplib.send(
            msg,
            hostname=SMTP_HOST,
            port=SMTP_PORT,
            username=SMTP_USERNAME,
            password=SMTP_PASSWORD,
            start_tls=SMTP_USE_TLS,
        )
        logger.info("Email sent to %s (%s)", to_email, subject)
    except Exception:
        logger.exception("Failed to send email to %s", to_email)
        raise


async def send_sms(to_phone: str, message: str) -> None:
    """Log an SMS; no SMS provider is integrated."""
    logger.info("📱 [SMS] to %s:\n%s", to_phone, message)


async def send_receipt_email(
    to_email: str,
    customer_name: str,
    receipt_id: str,
    html: str,
) -> None:
    plain = (
        f"Dear {customer_name},\n\n"
        f"Thank you for your payment.\n\n"
        f"Receipt ID: {receipt_id}\n\n"
        f"Best regards,\n{ARENA_NAME} Team"
    )
    await send_email(
        to_email,
        f"Payment Receipt - {receipt_id} | {ARENA_NAME}",
        plain,
        html=html,
    )
