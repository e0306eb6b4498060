from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

import requests

from services.shared.google_clients import shorten


SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content_type: str
    content: bytes


@dataclass(frozen=True)
class EmailMessage:
    to: str
    sender: str
    subject: str
    text: str
    html: str | None = None
    attachments: tuple[EmailAttachment, ...] = field(default_factory=tuple)


def build_sendgrid_payload(message: EmailMessage) -> dict[str, Any]:
    content = [{"type": "text/plain", "value": message.text}]
    if message.html:
        content.append({"type": "text/html", "value": message.html})
    payload: dict[str, Any] = {
        "personalizations": [{"to": [{"email": message.to}]}],
        "from": {"email": message.sender},
        "subject": message.subject,
        "content": content,
    }
    if message.attachments:
        payload["attachments"] = [
            {
                "content": base64.b64encode(item.content).decode("ascii"),
                "filename": item.filename,
                "type": item.content_type,
                "disposition": "attachment",
            }
            for item in message.attachments
        ]
    return payload


class SendGridMailer:
    def __init__(self, api_key: str, timeout_seconds: int = 20, session: requests.Session | None = None):
        self._api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def send(self, message: EmailMessage) -> None:
        response = self._session.post(
            SENDGRID_SEND_URL,
            json=build_sendgrid_payload(message),
            headers={"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"},
            timeout=self.timeout_seconds,
        )
        if response.status_code >= 300:
            raise RuntimeError(f"SendGrid send failed ({response.status_code}): {shorten(response.text)}")
