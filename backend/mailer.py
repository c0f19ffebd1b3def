from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from config import MailSettings
from errors import NotificationError
from models import ProcurementRequest, Vendor

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None: ...


def _or_na(value) -> str:
    if value is None or value == "":
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def compose_request_email(request: ProcurementRequest, vendor: Vendor, app_link: str) -> tuple[str, str]:
    """Return (subject, body) inviting a vendor to respond to a request."""
    fields = request.structured
    subject = f"RFP: {fields.title or 'New RFP from our company'}"

    item_lines = [
        f"- {item.quantity if item.quantity is not None else ''} {item.name} ({item.specs or ''})"
        for item in fields.items
    ]
    items_text = "\n".join(item_lines) or "(not listed)"

    body = f"""Hi {vendor.name or 'Vendor'},

You have been invited to respond to the following Request for Proposal (RFP).

Title: {fields.title or '(no title)'}

Original description:
{request.source_text or '(not provided)'}

Key details:
- Budget: {_or_na(fields.budget)}
- Delivery timeline (days): {_or_na(fields.delivery_timeline_days)}
- Minimum warranty (months): {_or_na(fields.warranty_months)}
- Payment terms: {_or_na(fields.payment_terms)}

Items / Scope:
{items_text}

How to respond:
Please reply to this email with your commercial and technical proposal, including:
- Total price
- Delivery timeline
- Warranty terms
- Payment terms
- Any other conditions

Your response will be parsed automatically by our RFP tool.

If you have any questions, reply to this email.

Best regards,
RFP Team

(Internal link for requester: {app_link})"""
    return subject, body


class SmtpNotifier:
    """Deliver plain-text mail over SMTP. The blocking client runs in a worker thread."""

    def __init__(self, settings: MailSettings) -> None:
        self.settings = settings
        if not settings.configured:
            logger.warning("EMAIL_* settings are incomplete; sending mail will fail until configured.")

    def _deliver(self, message: EmailMessage) -> None:
        s = self.settings
        with smtplib.SMTP(s.host, s.port, timeout=s.timeout) as smtp:
            if s.use_tls:
                smtp.starttls()
            if s.user:
                smtp.login(s.user, s.password)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        if not self.settings.host:
            raise NotificationError("SMTP host is not configured")

        message = EmailMessage()
        message["From"] = self.settings.from_address
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Failed to send mail to {to}: {exc}") from exc
        logger.info("Sent %r to %s", subject, to)
