from __future__ import annotations

from typing import Iterable

from services.shared.contracts import RawFields
from services.shared.errors import AbuseDetected, ValidationFailed


def honeypot_triggered(fields: RawFields, honeypot_field: str) -> bool:
    return any(value.strip() for value in fields.get(honeypot_field) or [])


def first_missing_field(fields: RawFields, required_fields: Iterable[str]) -> str | None:
    for name in required_fields:
        values = fields.get(name) or []
        # same last-write-wins view the normalizer uses
        if not values or not values[-1].strip():
            return name
    return None


def validate_submission(
    fields: RawFields,
    *,
    required_fields: Iterable[str],
    honeypot_field: str,
) -> None:
    if honeypot_field and honeypot_triggered(fields, honeypot_field):
        raise AbuseDetected(honeypot_field)
    missing = first_missing_field(fields, required_fields)
    if missing is not None:
        raise ValidationFailed(missing)
