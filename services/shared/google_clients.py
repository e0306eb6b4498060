from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account


GOOGLE_SCOPES = (
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/devstorage.read_write",
)


def decode_service_account(encoded: str) -> dict[str, Any]:
    try:
        info = json.loads(base64.b64decode(encoded, validate=False).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"GOOGLE_SERVICE_ACCOUNT_BASE64 is not base64-encoded JSON: {exc}") from exc
    if not isinstance(info, dict):
        raise ValueError("GOOGLE_SERVICE_ACCOUNT_BASE64 must encode a JSON object")
    return info


def build_credentials(encoded: str) -> service_account.Credentials:
    info = decode_service_account(encoded)
    return service_account.Credentials.from_service_account_info(info, scopes=list(GOOGLE_SCOPES))


def build_authorized_session(credentials: service_account.Credentials) -> AuthorizedSession:
    return AuthorizedSession(credentials)


def shorten(value: str, limit: int = 300) -> str:
    text = value.replace("\n", " ").strip()
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."
