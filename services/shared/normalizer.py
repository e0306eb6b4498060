from __future__ import annotations

import re

from services.shared.contracts import RawFields, RawSubmission, Reference, SubmissionRecord


_SCALAR_FIELDS = (
    "role",
    "phone",
    "occupation",
    "employer",
    "city",
    "state",
    "board_experience",
    "fundraising",
    "officer_interest",
    "conflict",
    "bio",
)
_MULTI_FIELDS = ("skills", "committees")
_ANGLE_ADDRESS = re.compile(r"^(?P<name>.*?)\s*<(?P<email>[^<>\s]+@[^<>\s]+)>\s*$")
_BARE_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+$")


def scalar_value(fields: RawFields, key: str) -> str:
    """Last occurrence wins for single-valued controls."""
    values = fields.get(key) or []
    if not values:
        return ""
    return values[-1].strip()


def multi_value(fields: RawFields, key: str) -> str:
    values = [*(fields.get(key) or []), *(fields.get(f"{key}[]") or [])]
    return ", ".join(item.strip() for item in values if item.strip())


def parse_combined_reference(raw: str) -> Reference:
    text = raw.strip()
    if not text:
        return Reference()
    match = _ANGLE_ADDRESS.match(text)
    if match:
        return Reference(name=match.group("name").strip().strip('"'), email=match.group("email"))
    if _BARE_EMAIL.match(text):
        return Reference(email=text)
    return Reference(name=text)


def _reference(fields: RawFields, prefix: str) -> Reference:
    # each split field overrides only its own half of the combined value
    combined = parse_combined_reference(scalar_value(fields, prefix))
    return Reference(
        name=scalar_value(fields, f"{prefix}_name") or combined.name,
        email=scalar_value(fields, f"{prefix}_email") or combined.email,
    )


def normalize_submission(raw: RawSubmission) -> SubmissionRecord:
    fields = raw.fields
    values = {key: scalar_value(fields, key) for key in _SCALAR_FIELDS}
    values.update({key: multi_value(fields, key) for key in _MULTI_FIELDS})
    return SubmissionRecord(
        name=scalar_value(fields, "name"),
        email=scalar_value(fields, "email"),
        resume=scalar_value(fields, "resume") or scalar_value(fields, "link"),
        ref1=_reference(fields, "ref1"),
        ref2=_reference(fields, "ref2"),
        **values,
    )
