import asyncio

import pytest

from services.shared.errors import MalformedSubmission, PayloadTooLarge
from services.shared.multipart import decode_multipart
from tests.helpers import build_multipart, stream_bytes


def _decode(content_type: str, body: bytes, *, chunk_size: int = 64, **kwargs):
    kwargs.setdefault("max_file_bytes", 1024 * 1024)
    return asyncio.run(decode_multipart(content_type, stream_bytes(body, chunk_size), **kwargs))


def test_decode_interleaved_fields_and_files() -> None:
    content_type, body = build_multipart(
        fields=[("name", "Jane Doe"), ("email", "jane@x.org")],
        files=[("resume", "resume.pdf", "application/pdf", b"%PDF-1.4" + b"x" * 2048)],
        files_first=True,
    )
    raw = _decode(content_type, body, chunk_size=7)
    assert raw.fields == {"name": ["Jane Doe"], "email": ["jane@x.org"]}
    assert len(raw.attachments) == 1
    attachment = raw.attachments[0]
    assert attachment.field_name == "resume"
    assert attachment.filename == "resume.pdf"
    assert attachment.content_type == "application/pdf"
    assert attachment.size == 2056


def test_decode_keeps_repeated_fields_in_order() -> None:
    content_type, body = build_multipart(
        fields=[("skills", "Finance"), ("name", "Jane"), ("skills", "Legal"), ("skills", "Outreach")],
    )
    raw = _decode(content_type, body)
    assert raw.fields["skills"] == ["Finance", "Legal", "Outreach"]
    assert raw.attachments == []


def test_decode_field_names_are_case_sensitive() -> None:
    content_type, body = build_multipart(fields=[("Name", "Upper"), ("name", "lower")])
    raw = _decode(content_type, body)
    assert raw.fields == {"Name": ["Upper"], "name": ["lower"]}


def test_decode_discards_zero_byte_files() -> None:
    content_type, body = build_multipart(
        fields=[("name", "Jane")],
        files=[
            ("resume", "resume.pdf", "application/pdf", b"a" * 2048),
            ("photo", "photo.png", "image/png", b""),
        ],
    )
    raw = _decode(content_type, body)
    assert [item.filename for item in raw.attachments] == ["resume.pdf"]


def test_decode_defaults_missing_content_type_and_filename() -> None:
    content_type, body = build_multipart(files=[("doc", "", None, b"hello")])
    raw = _decode(content_type, body)
    attachment = raw.attachments[0]
    assert attachment.filename is None
    assert attachment.content_type == "application/octet-stream"


def test_decode_rejects_file_over_size_cap() -> None:
    content_type, body = build_multipart(
        fields=[("name", "Jane")],
        files=[
            ("small", "a.txt", "text/plain", b"ok"),
            ("big", "b.bin", "application/octet-stream", b"z" * 101),
        ],
    )
    with pytest.raises(PayloadTooLarge):
        _decode(content_type, body, max_file_bytes=100)


def test_decode_accepts_file_exactly_at_size_cap() -> None:
    content_type, body = build_multipart(files=[("big", "b.bin", None, b"z" * 100)])
    raw = _decode(content_type, body, max_file_bytes=100)
    assert raw.attachments[0].size == 100


def test_decode_rejects_too_many_files() -> None:
    content_type, body = build_multipart(
        files=[(f"f{idx}", f"{idx}.txt", "text/plain", b"x") for idx in range(3)],
    )
    with pytest.raises(PayloadTooLarge):
        _decode(content_type, body, max_files=2)


def test_decode_requires_multipart_content_type() -> None:
    with pytest.raises(MalformedSubmission):
        _decode("application/json", b"{}")


def test_decode_requires_boundary() -> None:
    with pytest.raises(MalformedSubmission):
        _decode("multipart/form-data", b"")


def test_decode_rejects_truncated_body() -> None:
    content_type, body = build_multipart(fields=[("name", "Jane")])
    truncated = body[: body.rindex(b"--")]
    with pytest.raises(MalformedSubmission):
        _decode(content_type, truncated)
