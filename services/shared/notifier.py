"""Email notifications sent once a submission has been recorded.

Delivery policy:

* the internal notification to the organization is required; a failure raises
  ``NotificationFailed`` and the request answers 500;
* the acknowledgment to the applicant is best-effort; a failure is logged and
  the request still succeeds.
"""

from __future__ import annotations

import html
import re
from typing import Protocol, Sequence

from services.shared.contracts import SubmissionRecord
from services.shared.errors import NotificationFailed
from services.shared.logging_utils import log_event
from services.shared.mailer import EmailMessage


DEFAULT_ROLE_LABEL = "Board/CAB"

_LINE_BREAK = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_BLANK_LINES = re.compile(r"\n\s*\n+")


class Mailer(Protocol):
    def send(self, message: EmailMessage) -> None: ...


def build_internal_notification(
    record: SubmissionRecord,
    links: Sequence[str],
    *,
    sender: str,
    recipient: str,
) -> EmailMessage:
    text = "\n".join(
        [
            "A new application was submitted.",
            "",
            f"Name: {record.name}",
            f"Email: {record.email}",
            f"Role: {record.role}",
            f"Location: {record.location}",
            f"Files: {' | '.join(links) if links else 'None'}",
        ]
    )
    return EmailMessage(
        to=recipient,
        sender=sender,
        subject=f"New {record.role or DEFAULT_ROLE_LABEL} application - {record.name}",
        text=text,
        html=f"<pre>{html.escape(text)}</pre>",
    )


def html_to_text(content: str) -> str:
    text = _TAG.sub("", _LINE_BREAK.sub("\n", content))
    text = "\n".join(line.strip() for line in text.splitlines())
    return html.unescape(_BLANK_LINES.sub("\n\n", text)).strip()


def build_acknowledgment(
    record: SubmissionRecord,
    *,
    sender: str,
    orientation_url: str,
    org_name: str,
    contact_email: str,
) -> EmailMessage:
    name = html.escape(record.name or "Applicant")
    role = html.escape(record.role or DEFAULT_ROLE_LABEL)
    url = html.escape(orientation_url, quote=True)
    contact = html.escape(contact_email, quote=True)
    org = html.escape(org_name)
    body = f"""
<div style="font-family:Arial,sans-serif;line-height:1.5">
  <p>Dear {name},</p>
  <p>Thank you for your interest in serving on our {role}. Your application has been received.</p>
  <p><strong>Next steps</strong></p>
  <ol>
    <li>Governance review and follow-up if anything is missing.</li>
    <li>Invitation to the next Board/CAB meeting (calendar hold sent separately).</li>
    <li>Self-paced orientation: <a href="{url}">{url}</a></li>
  </ol>
  <p>If you have questions, contact <a href="mailto:{contact}">{contact}</a>.</p>
  <p>Sincerely,<br/>{org}</p>
</div>"""
    return EmailMessage(
        to=record.email,
        sender=sender,
        subject=f"We received your application - {org_name}",
        text=html_to_text(body),
        html=body,
    )


class Notifier:
    def __init__(
        self,
        mailer: Mailer,
        *,
        sender: str,
        recipient: str,
        orientation_url: str,
        org_name: str,
        contact_email: str,
        send_acknowledgment: bool = True,
    ):
        self.mailer = mailer
        self.sender = sender
        self.recipient = recipient
        self.orientation_url = orientation_url
        self.org_name = org_name
        self.contact_email = contact_email
        self.send_acknowledgment = send_acknowledgment

    def notify(self, record: SubmissionRecord, links: Sequence[str], *, trace_id: str | None = None) -> bool:
        """Send both emails; returns whether the acknowledgment went out."""
        internal = build_internal_notification(record, links, sender=self.sender, recipient=self.recipient)
        try:
            self.mailer.send(internal)
        except Exception as exc:
            log_event(
                "error",
                "internal_notification_failed",
                trace_id=trace_id,
                recipient=self.recipient,
                error=str(exc),
            )
            raise NotificationFailed(str(exc)) from exc

        if not self.send_acknowledgment:
            return False

        acknowledgment = build_acknowledgment(
            record,
            sender=self.sender,
            orientation_url=self.orientation_url,
            org_name=self.org_name,
            contact_email=self.contact_email,
        )
        try:
            self.mailer.send(acknowledgment)
        except Exception as exc:
            log_event(
                "warning",
                "applicant_acknowledgment_failed",
                trace_id=trace_id,
                error=str(exc),
            )
            return False
        return True
