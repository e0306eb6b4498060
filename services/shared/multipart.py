"""Streaming multipart/form-data decoder for application submissions.

The request body is fed chunk by chunk into ``python-multipart``'s push parser.
Field parts are collected into a ``RawFields`` mapping that keeps every
occurrence of a name in arrival order; file parts are buffered in memory and
become ``Attachment`` objects. Nothing is returned until the stream has been
drained and the closing boundary has been seen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterator

import python_multipart
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header

from services.shared.contracts import DEFAULT_CONTENT_TYPE, Attachment, RawSubmission
from services.shared.errors import MalformedSubmission, PayloadTooLarge


DEFAULT_MAX_FIELD_BYTES = 1024 * 1024
DEFAULT_MAX_FILES = 20


@dataclass
class _Part:
    content_disposition: bytes = b""
    content_type: str = ""
    field_name: str = ""
    filename: str | None = None
    is_file: bool = False
    data: bytearray = field(default_factory=bytearray)


def _safe_decode(src: bytes | bytearray, charset: str) -> str:
    try:
        return src.decode(charset)
    except (UnicodeDecodeError, LookupError):
        return src.decode("latin-1")


class MultipartDecoder:
    def __init__(
        self,
        *,
        max_file_bytes: int,
        max_field_bytes: int = DEFAULT_MAX_FIELD_BYTES,
        max_files: int = DEFAULT_MAX_FILES,
    ):
        if max_file_bytes < 1:
            raise ValueError("max_file_bytes must be >= 1")
        self.max_file_bytes = max_file_bytes
        self.max_field_bytes = max_field_bytes
        self.max_files = max_files
        self._submission = RawSubmission()
        self._part = _Part()
        self._header_name = b""
        self._header_value = b""
        self._charset = "utf-8"
        self._ended = False

    def on_part_begin(self) -> None:
        self._part = _Part()

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        name = self._header_name.lower()
        if name == b"content-disposition":
            self._part.content_disposition = self._header_value
        elif name == b"content-type":
            self._part.content_type = _safe_decode(self._header_value, "latin-1").strip()
        self._header_name = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        _, options = parse_options_header(self._part.content_disposition)
        raw_name = options.get(b"name")
        if raw_name is None:
            raise MalformedSubmission('Content-Disposition is missing "name"')
        self._part.field_name = _safe_decode(raw_name, self._charset)
        if b"filename" in options:
            self._part.is_file = True
            self._part.filename = _safe_decode(options[b"filename"], self._charset) or None

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        chunk = data[start:end]
        limit = self.max_file_bytes if self._part.is_file else self.max_field_bytes
        if len(self._part.data) + len(chunk) > limit:
            raise PayloadTooLarge(f"Part {self._part.field_name!r} exceeds {limit} bytes")
        self._part.data.extend(chunk)

    def on_part_end(self) -> None:
        part = self._part
        if not part.is_file:
            value = _safe_decode(part.data, self._charset)
            self._submission.fields.setdefault(part.field_name, []).append(value)
            return
        if not part.data:
            # browsers post an empty part for an untouched file input
            return
        if len(self._submission.attachments) >= self.max_files:
            raise PayloadTooLarge(f"More than {self.max_files} attachments")
        self._submission.attachments.append(
            Attachment(
                field_name=part.field_name,
                filename=part.filename,
                content_type=part.content_type or DEFAULT_CONTENT_TYPE,
                payload=bytes(part.data),
            )
        )
        part.data = bytearray()

    def on_end(self) -> None:
        self._ended = True

    async def decode(self, content_type: str | None, stream: AsyncIterator[bytes]) -> RawSubmission:
        media_type, params = parse_options_header(content_type or "")
        if media_type.strip().lower() != b"multipart/form-data":
            raise MalformedSubmission("Expected multipart/form-data")
        boundary = params.get(b"boundary")
        if not boundary:
            raise MalformedSubmission("Missing boundary in multipart")
        charset = params.get(b"charset", b"utf-8")
        self._charset = charset.decode("latin-1") if isinstance(charset, bytes) else charset

        callbacks = {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_end": self.on_end,
        }
        parser = python_multipart.MultipartParser(boundary, callbacks)
        try:
            async for chunk in stream:
                if chunk:
                    parser.write(chunk)
            parser.finalize()
        except MultipartParseError as exc:
            raise MalformedSubmission(str(exc)) from exc
        if not self._ended:
            raise MalformedSubmission("Multipart body ended before the closing boundary")
        return self._submission


async def decode_multipart(
    content_type: str | None,
    stream: AsyncIterator[bytes],
    *,
    max_file_bytes: int,
    max_field_bytes: int = DEFAULT_MAX_FIELD_BYTES,
    max_files: int = DEFAULT_MAX_FILES,
) -> RawSubmission:
    decoder = MultipartDecoder(
        max_file_bytes=max_file_bytes,
        max_field_bytes=max_field_bytes,
        max_files=max_files,
    )
    return await decoder.decode(content_type, stream)
