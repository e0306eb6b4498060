from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator

from services.shared.contracts import StoredFile
from services.shared.ledger import LedgerRecorder
from services.shared.mailer import EmailMessage
from services.shared.notifier import Notifier
from services.shared.pipeline import PipelineSettings, SubmissionPipeline


BOUNDARY = "----intake-test-boundary"
FIXED_NOW = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)


def build_multipart(
    fields: list[tuple[str, str]] | None = None,
    files: list[tuple[str, str | None, str | None, bytes]] | None = None,
    *,
    boundary: str = BOUNDARY,
    files_first: bool = False,
) -> tuple[str, bytes]:
    field_parts: list[bytes] = []
    for name, value in fields or []:
        field_parts.append(
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode("utf-8")
            + value.encode("utf-8")
            + b"\r\n"
        )
    file_parts: list[bytes] = []
    for name, filename, content_type, payload in files or []:
        disposition = f'form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        header = f"--{boundary}\r\nContent-Disposition: {disposition}\r\n"
        if content_type:
            header += f"Content-Type: {content_type}\r\n"
        file_parts.append(header.encode("utf-8") + b"\r\n" + payload + b"\r\n")
    parts = file_parts + field_parts if files_first else field_parts + file_parts
    body = b"".join(parts) + f"--{boundary}--\r\n".encode("ascii")
    return f"multipart/form-data; boundary={boundary}", body


async def stream_bytes(body: bytes, chunk_size: int = 64) -> AsyncIterator[bytes]:
    for index in range(0, len(body), chunk_size):
        yield body[index : index + chunk_size]


class FakeObjectStore:
    def __init__(self, fail_names: set[str] | None = None):
        self.fail_names = fail_names or set()
        self.calls: list[tuple[str, str, str, int]] = []
        self._lock = threading.Lock()

    def create_file(self, name: str, mime_type: str, container_id: str, payload: bytes) -> StoredFile:
        with self._lock:
            self.calls.append((name, mime_type, container_id, len(payload)))
        if name in self.fail_names:
            raise RuntimeError(f"quota exceeded for {name}")
        return StoredFile(file_id=f"id-{name}", link=f"https://files.example/{name}")


class FakeLedgerClient:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rows: list[tuple[str, str, list[str]]] = []

    def append_row(self, spreadsheet_id: str, range_name: str, values: list[str]) -> dict:
        if self.fail:
            raise RuntimeError("sheets unavailable")
        self.rows.append((spreadsheet_id, range_name, values))
        return {"updates": {"updatedRows": 1}}


class FakeMailer:
    def __init__(self, fail_recipients: set[str] | None = None):
        self.fail_recipients = fail_recipients or set()
        self.sent: list[EmailMessage] = []
        self.attempts = 0

    def send(self, message: EmailMessage) -> None:
        self.attempts += 1
        if message.to in self.fail_recipients:
            raise RuntimeError(f"sendgrid rejected {message.to}")
        self.sent.append(message)


@dataclass
class PipelineHarness:
    pipeline: SubmissionPipeline
    store: FakeObjectStore
    ledger: FakeLedgerClient
    mailer: FakeMailer
    settings: PipelineSettings

    @property
    def external_calls(self) -> int:
        return len(self.store.calls) + len(self.ledger.rows) + self.mailer.attempts


def make_pipeline(
    *,
    store: FakeObjectStore | None = None,
    ledger: FakeLedgerClient | None = None,
    mailer: FakeMailer | None = None,
    max_file_bytes: int = 25 * 1024 * 1024,
    send_acknowledgment: bool = True,
    required_fields: tuple[str, ...] = ("name", "email"),
) -> PipelineHarness:
    store = store or FakeObjectStore()
    ledger = ledger or FakeLedgerClient()
    mailer = mailer or FakeMailer()
    settings = PipelineSettings(
        container_id="folder-123",
        max_file_bytes=max_file_bytes,
        required_fields=required_fields,
        honeypot_field="website",
        upload_max_concurrency=2,
    )
    pipeline = SubmissionPipeline(
        settings=settings,
        object_store=store,
        ledger=LedgerRecorder(ledger, spreadsheet_id="sheet-1", range_name="Submissions!A1"),
        notifier=Notifier(
            mailer,
            sender="no-reply@clinic.example",
            recipient="executive@clinic.example",
            orientation_url="https://clinic.example/orientation",
            org_name="Health Matters Clinic",
            contact_email="executive@clinic.example",
            send_acknowledgment=send_acknowledgment,
        ),
        clock=lambda: FIXED_NOW,
    )
    return PipelineHarness(pipeline=pipeline, store=store, ledger=ledger, mailer=mailer, settings=settings)
