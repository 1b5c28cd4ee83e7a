"""
SMTP delivery for customer e-mails.

Templates build a subject and bodies and hand them to ``send_email``; the
blocking SMTP conversation runs in a worker thread so a slow relay never
stalls the event loop serving checkout requests.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

SMTP_TIMEOUT_SECONDS = 30


def format_money(amount_minor: int, currency: Optional[str] = None) -> str:
    """Render an integer minor-unit amount, e.g. 230000 -> 'NGN 2,300.00'."""
    currency = currency or get_settings().CURRENCY
    return f"{currency} {amount_minor / 100:,.2f}"


def build_message(
    to_email: str,
    subject: str,
    body: str,
    html_body: Optional[str] = None,
    from_email: Optional[str] = None,
    from_name: Optional[str] = None,
) -> EmailMessage:
    """Plain-text message, with an HTML alternative when one is given."""
    settings = get_settings()
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = (
        f"{from_name or settings.DEFAULT_FROM_NAME} "
        f"<{from_email or settings.DEFAULT_FROM_EMAIL}>"
    )
    msg["To"] = to_email
    msg.set_content(body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    return msg


def _deliver(msg: EmailMessage) -> None:
    settings = get_settings()
    with smtplib.SMTP(
        settings.SMTP_HOST, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS
    ) as server:
        server.starttls()
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)


async def send_email(
    to_email: str,
    subject: str,
    body: str,
    html_body: Optional[str] = None,
    from_email: Optional[str] = None,
    from_name: Optional[str] = None,
) -> bool:
    """
    Send an e-mail through the configured SMTP relay.

    Returns True when the relay accepted the message. Missing credentials or
    any SMTP/network failure is logged and returns False; callers treat
    e-mail as best-effort.
    """
    settings = get_settings()
    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        logger.warning("SMTP credentials not configured; skipping '%s'", subject)
        return False

    msg = build_message(to_email, subject, body, html_body, from_email, from_name)
    try:
        await asyncio.to_thread(_deliver, msg)
    except smtplib.SMTPAuthenticationError as e:
        logger.error("SMTP authentication failed: %s", e)
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send '%s' to %s: %s", subject, to_email, e)
        return False

    logger.info("Sent '%s' to %s", subject, to_email)
    return True
