from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, Sequence

from services.shared.contracts import LEDGER_COLUMNS, SubmissionRecord, UploadResult, successful_links
from services.shared.errors import LedgerWriteFailed
from services.shared.logging_utils import log_event


# leading characters Sheets evaluates as a formula under USER_ENTERED
_FORMULA_PREFIXES = ("=", "+", "-", "@")


class LedgerClient(Protocol):
    def append_row(self, spreadsheet_id: str, range_name: str, values: list[str]) -> dict: ...


def sheet_text(value: str) -> str:
    """Quote applicant text so the spreadsheet stores it as a literal string."""
    if value.startswith(_FORMULA_PREFIXES):
        return f"'{value}"
    return value


def build_ledger_row(
    record: SubmissionRecord,
    results: Sequence[UploadResult],
    submitted_at: datetime,
) -> list[str]:
    """Flatten one submission into the cells of ``LEDGER_COLUMNS``, in order."""
    if submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)
    cells = {
        "timestamp": submitted_at.astimezone(timezone.utc).isoformat(),
        "role": record.role,
        "name": record.name,
        "email": record.email,
        "phone": record.phone,
        "occupation": record.occupation,
        "employer": record.employer,
        "city": record.city,
        "state": record.state,
        "resume": record.resume,
        "board_experience": record.board_experience,
        "skills": record.skills,
        "fundraising": record.fundraising,
        "officer_interest": record.officer_interest,
        "committees": record.committees,
        "conflict": record.conflict,
        "ref1_name": record.ref1.name,
        "ref1_email": record.ref1.email,
        "ref2_name": record.ref2.name,
        "ref2_email": record.ref2.email,
        "bio": record.bio,
        "attachment_links": ", ".join(successful_links(list(results))),
    }
    return [sheet_text(cells[column]) for column in LEDGER_COLUMNS]


class LedgerRecorder:
    def __init__(self, client: LedgerClient, *, spreadsheet_id: str, range_name: str = "Submissions!A1"):
        self.client = client
        self.spreadsheet_id = spreadsheet_id
        self.range_name = range_name

    def record(
        self,
        record: SubmissionRecord,
        results: Sequence[UploadResult],
        submitted_at: datetime,
        *,
        trace_id: str | None = None,
    ) -> list[str]:
        row = build_ledger_row(record, results, submitted_at)
        try:
            self.client.append_row(self.spreadsheet_id, self.range_name, row)
        except Exception as exc:
            # uploads are not rolled back; the links below are the orphaned files
            log_event(
                "error",
                "ledger_write_failed",
                trace_id=trace_id,
                spreadsheet_id=self.spreadsheet_id,
                range=self.range_name,
                orphaned_links=successful_links(list(results)),
                error=str(exc),
            )
            raise LedgerWriteFailed(str(exc)) from exc
        return row
