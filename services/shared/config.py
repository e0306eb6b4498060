from __future__ import annotations

import os
from dataclasses import dataclass

from services.shared.errors import ConfigurationMissing


DEFAULT_ORIENT_URL = "https://www.healthmatters.clinic/orientation"
DEFAULT_MAX_FILE_BYTES = 25 * 1024 * 1024


def get_env(name: str, default: str | None = None, required: bool = False) -> str:
    value = os.getenv(name, default)
    if required and (value is None or value.strip() == ""):
        raise ConfigurationMissing(name)
    return value or ""


def get_env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def get_env_csv(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default) or ""
    parts = [item.strip() for item in raw.split(",")]
    return tuple(item for item in parts if item)


@dataclass(frozen=True)
class RuntimeConfig:
    service_account_b64: str
    storage_container_id: str
    spreadsheet_id: str
    sendgrid_api_key: str
    from_email: str
    to_email: str
    orient_url: str
    max_file_bytes: int
    max_files: int
    required_fields: tuple[str, ...]
    honeypot_field: str
    send_applicant_ack: bool
    upload_max_concurrency: int
    ledger_range: str
    storage_backend: str
    gcs_object_prefix: str
    org_name: str
    contact_email: str
    google_api_timeout_seconds: int
    sendgrid_timeout_seconds: int


def load_runtime_config() -> RuntimeConfig:
    to_email = get_env("TO_EMAIL", required=True)
    required_fields = get_env_csv("REQUIRED_FIELDS", "name,email")
    # name and email are always mandatory; extra fields only add to them
    required_fields = tuple(dict.fromkeys(("name", "email", *required_fields)))
    return RuntimeConfig(
        service_account_b64=get_env("GOOGLE_SERVICE_ACCOUNT_BASE64", required=True),
        storage_container_id=get_env("GOOGLE_DRIVE_FOLDER_ID", required=True),
        spreadsheet_id=get_env("GOOGLE_SHEETS_ID", required=True),
        sendgrid_api_key=get_env("SENDGRID_API_KEY", required=True),
        from_email=get_env("FROM_EMAIL", required=True),
        to_email=to_email,
        orient_url=get_env("ORIENT_URL", DEFAULT_ORIENT_URL) or DEFAULT_ORIENT_URL,
        max_file_bytes=max(1, get_env_int("MAX_FILE_BYTES", DEFAULT_MAX_FILE_BYTES)),
        max_files=max(1, get_env_int("MAX_FILES", 20)),
        required_fields=required_fields,
        honeypot_field=get_env("HONEYPOT_FIELD", "website") or "website",
        send_applicant_ack=get_env_bool("SEND_APPLICANT_ACK", True),
        upload_max_concurrency=max(1, get_env_int("UPLOAD_MAX_CONCURRENCY", 4)),
        ledger_range=get_env("LEDGER_RANGE", "Submissions!A1") or "Submissions!A1",
        storage_backend=get_env("STORAGE_BACKEND", "drive").strip().lower(),
        gcs_object_prefix=get_env("GCS_OBJECT_PREFIX", "applications").strip("/"),
        org_name=get_env("ORG_NAME", "Health Matters Clinic"),
        contact_email=get_env("CONTACT_EMAIL", to_email) or to_email,
        google_api_timeout_seconds=max(1, get_env_int("GOOGLE_API_TIMEOUT_SECONDS", 60)),
        sendgrid_timeout_seconds=max(1, get_env_int("SENDGRID_TIMEOUT_SECONDS", 20)),
    )
