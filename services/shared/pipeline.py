from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Callable

from google.cloud import storage

from services.shared.config import RuntimeConfig
from services.shared.contracts import RawSubmission, SubmissionStatus, now_utc, successful_links
from services.shared.errors import AbuseDetected, ValidationFailed
from services.shared.google_clients import build_authorized_session, build_credentials
from services.shared.ledger import LedgerRecorder
from services.shared.logging_utils import log_event
from services.shared.mailer import SendGridMailer
from services.shared.multipart import decode_multipart
from services.shared.normalizer import normalize_submission
from services.shared.notifier import Notifier
from services.shared.object_store import DriveObjectStore, GcsObjectStore, ObjectStore
from services.shared.sheets import SheetsClient
from services.shared.uploader import upload_attachments
from services.shared.validation import validate_submission


@dataclass(frozen=True)
class PipelineSettings:
    container_id: str
    max_file_bytes: int
    max_files: int = 20
    required_fields: tuple[str, ...] = ("name", "email")
    honeypot_field: str = "website"
    upload_max_concurrency: int = 4


@dataclass(frozen=True)
class PipelineOutcome:
    status: SubmissionStatus
    trace_id: str | None
    attachments: int = 0
    uploaded: int = 0
    failed_uploads: int = 0
    acknowledgment_sent: bool = False


class SubmissionPipeline:
    def __init__(
        self,
        *,
        settings: PipelineSettings,
        object_store: ObjectStore,
        ledger: LedgerRecorder,
        notifier: Notifier,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.settings = settings
        self.object_store = object_store
        self.ledger = ledger
        self.notifier = notifier
        self.clock = clock

    async def ingest(
        self,
        content_type: str | None,
        stream: AsyncIterator[bytes],
        *,
        trace_id: str | None = None,
    ) -> PipelineOutcome:
        raw = await decode_multipart(
            content_type,
            stream,
            max_file_bytes=self.settings.max_file_bytes,
            max_files=self.settings.max_files,
        )
        return await self.process(raw, trace_id=trace_id)

    async def process(self, raw: RawSubmission, *, trace_id: str | None = None) -> PipelineOutcome:
        log_event(
            "info",
            "submission_received",
            trace_id=trace_id,
            fields=sorted(raw.fields),
            attachments=len(raw.attachments),
        )
        record = normalize_submission(raw)
        try:
            validate_submission(
                raw.fields,
                required_fields=self.settings.required_fields,
                honeypot_field=self.settings.honeypot_field,
            )
        except AbuseDetected as exc:
            raw.release_attachments()
            log_event("warning", "submission_suppressed", trace_id=trace_id, field=exc.field_name)
            return PipelineOutcome(status=SubmissionStatus.SUPPRESSED, trace_id=trace_id)
        except ValidationFailed as exc:
            raw.release_attachments()
            log_event("info", "submission_rejected", trace_id=trace_id, field=exc.field_name)
            raise

        submitted_at = self.clock()
        results = await upload_attachments(
            self.object_store,
            raw.attachments,
            container_id=self.settings.container_id,
            max_concurrency=self.settings.upload_max_concurrency,
            trace_id=trace_id,
        )
        raw.release_attachments()
        links = successful_links(results)
        log_event(
            "info",
            "attachments_uploaded",
            trace_id=trace_id,
            attempted=len(results),
            uploaded=len(links),
            failed=len(results) - len(links),
        )

        await asyncio.to_thread(self.ledger.record, record, results, submitted_at, trace_id=trace_id)
        acknowledgment_sent = await asyncio.to_thread(self.notifier.notify, record, links, trace_id=trace_id)

        outcome = PipelineOutcome(
            status=SubmissionStatus.ACCEPTED,
            trace_id=trace_id,
            attachments=len(results),
            uploaded=len(links),
            failed_uploads=len(results) - len(links),
            acknowledgment_sent=acknowledgment_sent,
        )
        log_event(
            "info",
            "submission_completed",
            trace_id=trace_id,
            attachments=outcome.attachments,
            uploaded=outcome.uploaded,
            failed_uploads=outcome.failed_uploads,
            acknowledgment_sent=outcome.acknowledgment_sent,
        )
        return outcome


def build_object_store(config: RuntimeConfig, credentials) -> ObjectStore:
    if config.storage_backend == "gcs":
        client = storage.Client(project=credentials.project_id, credentials=credentials)
        return GcsObjectStore(client, object_prefix=config.gcs_object_prefix)
    if config.storage_backend != "drive":
        raise ValueError(f"Unsupported STORAGE_BACKEND: {config.storage_backend}")
    return DriveObjectStore(
        build_authorized_session(credentials),
        timeout_seconds=config.google_api_timeout_seconds,
    )


def build_pipeline(config: RuntimeConfig) -> SubmissionPipeline:
    credentials = build_credentials(config.service_account_b64)
    sheets = SheetsClient(
        build_authorized_session(credentials),
        timeout_seconds=config.google_api_timeout_seconds,
    )
    mailer = SendGridMailer(config.sendgrid_api_key, timeout_seconds=config.sendgrid_timeout_seconds)
    return SubmissionPipeline(
        settings=PipelineSettings(
            container_id=config.storage_container_id,
            max_file_bytes=config.max_file_bytes,
            max_files=config.max_files,
            required_fields=config.required_fields,
            honeypot_field=config.honeypot_field,
            upload_max_concurrency=config.upload_max_concurrency,
        ),
        object_store=build_object_store(config, credentials),
        ledger=LedgerRecorder(sheets, spreadsheet_id=config.spreadsheet_id, range_name=config.ledger_range),
        notifier=Notifier(
            mailer,
            sender=config.from_email,
            recipient=config.to_email,
            orientation_url=config.orient_url,
            org_name=config.org_name,
            contact_email=config.contact_email,
            send_acknowledgment=config.send_applicant_ack,
        ),
    )
