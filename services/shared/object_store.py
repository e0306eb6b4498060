from __future__ import annotations

import json
from typing import Protocol
from urllib.parse import quote
from uuid import uuid4

from google.auth.transport.requests import AuthorizedSession
from google.cloud import storage

from services.shared.contracts import StoredFile
from services.shared.google_clients import shorten


DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"


class ObjectStore(Protocol):
    def create_file(self, name: str, mime_type: str, container_id: str, payload: bytes) -> StoredFile: ...


def drive_view_link(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view"


class DriveObjectStore:
    def __init__(self, session: AuthorizedSession, timeout_seconds: int = 60):
        self._session = session
        self.timeout_seconds = timeout_seconds

    def create_file(self, name: str, mime_type: str, container_id: str, payload: bytes) -> StoredFile:
        boundary = f"intake-{uuid4().hex}"
        metadata = json.dumps({"name": name, "parents": [container_id], "mimeType": mime_type})
        head = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{metadata}\r\n"
            f"--{boundary}\r\n"
            f"Content-Type: {mime_type}\r\n\r\n"
        ).encode("utf-8")
        tail = f"\r\n--{boundary}--\r\n".encode("ascii")
        response = self._session.post(
            DRIVE_UPLOAD_URL,
            params={"uploadType": "multipart", "fields": "id,name,webViewLink", "supportsAllDrives": "true"},
            data=head + payload + tail,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
            timeout=self.timeout_seconds,
        )
        if response.status_code >= 400:
            raise RuntimeError(f"Drive upload failed ({response.status_code}): {shorten(response.text)}")

        try:
            body = response.json()
        except Exception as exc:
            raise RuntimeError(f"Drive upload invalid JSON: {exc}") from exc

        file_id = str(body.get("id") or "")
        if not file_id:
            raise RuntimeError("Drive upload response is missing id")
        return StoredFile(file_id=file_id, link=str(body.get("webViewLink") or drive_view_link(file_id)))


class GcsObjectStore:
    def __init__(self, client: storage.Client, object_prefix: str = "applications"):
        self.client = client
        self.object_prefix = object_prefix.strip("/")

    def create_file(self, name: str, mime_type: str, container_id: str, payload: bytes) -> StoredFile:
        object_name = f"{uuid4().hex}/{safe_object_name(name)}"
        if self.object_prefix:
            object_name = f"{self.object_prefix}/{object_name}"
        bucket = self.client.bucket(container_id)
        blob = bucket.blob(object_name)
        blob.upload_from_string(payload, content_type=mime_type, if_generation_match=0)
        return StoredFile(
            file_id=f"gs://{container_id}/{object_name}",
            link=f"https://storage.cloud.google.com/{container_id}/{quote(object_name)}",
        )


def safe_object_name(name: str) -> str:
    return quote(name, safe="-_.~")
