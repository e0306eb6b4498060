from __future__ import annotations

import asyncio
from typing import Sequence

from services.shared.contracts import Attachment, UploadFailed, UploadResult, UploadSucceeded
from services.shared.logging_utils import log_event
from services.shared.object_store import ObjectStore


def attachment_name(attachment: Attachment, index: int) -> str:
    if attachment.filename:
        return attachment.filename
    return f"{attachment.field_name or 'attachment'}-{index + 1}"


async def upload_attachments(
    store: ObjectStore,
    attachments: Sequence[Attachment],
    *,
    container_id: str,
    max_concurrency: int = 4,
    trace_id: str | None = None,
) -> list[UploadResult]:
    """Upload every attachment and return one result per input, in input order.

    Per-file failures are recorded as ``UploadFailed`` outcomes; this function
    never raises because of a single transfer.
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be >= 1")
    if not attachments:
        return []

    semaphore = asyncio.Semaphore(max_concurrency)

    async def _upload_one(index: int, attachment: Attachment) -> UploadResult:
        name = attachment_name(attachment, index)
        async with semaphore:
            try:
                stored = await asyncio.to_thread(
                    store.create_file,
                    name,
                    attachment.content_type,
                    container_id,
                    attachment.payload,
                )
            except Exception as exc:
                log_event(
                    "error",
                    "attachment_upload_failed",
                    trace_id=trace_id,
                    index=index,
                    filename=name,
                    content_type=attachment.content_type,
                    size=attachment.size,
                    error=str(exc),
                )
                return UploadResult(attachment=attachment.describe(), outcome=UploadFailed(error=str(exc)))
        return UploadResult(
            attachment=attachment.describe(),
            outcome=UploadSucceeded(link=stored.link, file_id=stored.file_id),
        )

    # gather keeps argument order regardless of completion order
    return list(await asyncio.gather(*(_upload_one(i, item) for i, item in enumerate(attachments))))
