from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Column order agreed with the ledger sheet header row. Reordering is a schema migration.
LEDGER_COLUMNS: tuple[str, ...] = (
    "timestamp",
    "role",
    "name",
    "email",
    "phone",
    "occupation",
    "employer",
    "city",
    "state",
    "resume",
    "board_experience",
    "skills",
    "fundraising",
    "officer_interest",
    "committees",
    "conflict",
    "ref1_name",
    "ref1_email",
    "ref2_name",
    "ref2_email",
    "bio",
    "attachment_links",
)

RawFields = dict[str, list[str]]


@dataclass(frozen=True)
class AttachmentRef:
    field_name: str
    filename: str | None
    content_type: str
    size: int


@dataclass
class Attachment:
    field_name: str
    filename: str | None
    content_type: str
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)

    def describe(self) -> AttachmentRef:
        return AttachmentRef(
            field_name=self.field_name,
            filename=self.filename,
            content_type=self.content_type,
            size=self.size,
        )


@dataclass
class RawSubmission:
    fields: RawFields = field(default_factory=dict)
    attachments: list[Attachment] = field(default_factory=list)

    def release_attachments(self) -> None:
        self.attachments.clear()


class Reference(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""


class SubmissionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Applicant full name")
    email: str = Field(..., description="Applicant email address")
    role: str = ""
    phone: str = ""
    occupation: str = ""
    employer: str = ""
    city: str = ""
    state: str = ""
    resume: str = ""
    board_experience: str = ""
    skills: str = ""
    fundraising: str = ""
    officer_interest: str = ""
    committees: str = ""
    conflict: str = ""
    bio: str = ""
    ref1: Reference = Field(default_factory=Reference)
    ref2: Reference = Field(default_factory=Reference)

    @property
    def location(self) -> str:
        return ", ".join(part for part in (self.city, self.state) if part)


@dataclass(frozen=True)
class StoredFile:
    file_id: str
    link: str


@dataclass(frozen=True)
class UploadSucceeded:
    link: str
    file_id: str


@dataclass(frozen=True)
class UploadFailed:
    error: str


@dataclass(frozen=True)
class UploadResult:
    attachment: AttachmentRef
    outcome: UploadSucceeded | UploadFailed

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, UploadSucceeded)

    @property
    def link(self) -> str | None:
        if isinstance(self.outcome, UploadSucceeded):
            return self.outcome.link
        return None


def successful_links(results: list[UploadResult]) -> list[str]:
    return [result.link for result in results if result.link]


class SubmissionStatus(str, Enum):
    ACCEPTED = "accepted"
    SUPPRESSED = "suppressed"


class ApplyResponse(BaseModel):
    ok: bool
    error: str | None = None


class HealthResponse(BaseModel):
    status: str


def now_utc() -> datetime:
    return datetime.now(timezone.utc)
