"""Google Drive v3 client for folder creation, uploads and downloads."""

from __future__ import annotations

import json
import mimetypes
import uuid
from typing import Any, Dict, Optional
from urllib.parse import quote

from ..errors import DriveError
from ..http import HttpRequest, HttpResponse, Transport, json_body, urllib_transport, with_query
from ..logging import get_logger
from ..models import DriveFile

DEFAULT_API_URL = "https://www.googleapis.com/drive/v3"
DEFAULT_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
BINARY_MIME_TYPE = "application/octet-stream"
DRIVE_SCOPES = (
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/drive.readonly",
)


class DriveClient:
    """Thin wrapper over the Drive files endpoints."""

    def __init__(
        self,
        access_token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        upload_url: str = DEFAULT_UPLOAD_URL,
        request_timeout: Optional[float] = 60.0,
        transport: Transport | None = None,
    ) -> None:
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.upload_url = upload_url.rstrip("/")
        self.request_timeout = request_timeout
        self._transport = transport or urllib_transport
        self.logger = get_logger("drive")

    def create_folder(self, name: str, parent_id: str | None = None) -> str:
        """Create a folder and return its id."""
        metadata: Dict[str, Any] = {
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parents": [parent_id] if parent_id else [],
        }
        response = self._send(
            "POST",
            f"{self.api_url}/files",
            body=json_body(metadata),
            content_type="application/json",
        )
        payload = self._payload_or_raise(response, "Failed to create Drive folder")
        folder_id = payload.get("id")
        if not isinstance(folder_id, str):
            raise DriveError("Drive did not return a folder id", status=response.status)
        self.logger.debug("Created Drive folder %s (%s)", name, folder_id)
        return folder_id

    def upload_file(
        self,
        name: str,
        content: str | bytes,
        parent_id: str,
        *,
        mime_type: str | None = None,
    ) -> str:
        """Upload ``content`` as a new file inside ``parent_id`` and return its id.

        Text defaults to ``text/plain``. Bytes are sent untouched, typed from
        the file name or as ``application/octet-stream``.
        """
        if isinstance(content, bytes):
            data = content
            mime_type = mime_type or mimetypes.guess_type(name)[0] or BINARY_MIME_TYPE
        else:
            data = content.encode("utf-8")
            mime_type = mime_type or "text/plain"
        metadata = {"name": name, "parents": [parent_id]}
        body, boundary = _multipart_related(metadata, data, mime_type)
        url = with_query(f"{self.upload_url}/files", {"uploadType": "multipart"})
        response = self._send(
            "POST",
            url,
            body=body,
            content_type=f"multipart/related; boundary={boundary}",
        )
        payload = self._payload_or_raise(response, "Failed to upload file to Drive")
        self.logger.debug("Uploaded %s to Drive folder %s", name, parent_id)
        return str(payload.get("id") or "")

    def get_file(self, file_id: str) -> DriveFile:
        url = with_query(
            f"{self.api_url}/files/{quote(file_id, safe='')}",
            {"fields": "id,name,mimeType"},
        )
        payload = self._payload_or_raise(self._send("GET", url), "Failed to read Drive file")
        return DriveFile(
            id=str(payload.get("id") or file_id),
            name=str(payload.get("name") or file_id),
            mime_type=payload.get("mimeType"),
        )

    def download_file(self, file_id: str) -> str:
        """Return the text content of a Drive file."""
        url = with_query(f"{self.api_url}/files/{quote(file_id, safe='')}", {"alt": "media"})
        response = self._send("GET", url)
        if not response.ok:
            raise DriveError(
                _provider_message(response) or "Failed to download Drive file",
                status=response.status,
            )
        return response.text()

    # ------------------------------------------------------------------
    # Helpers

    def _send(
        self,
        method: str,
        url: str,
        *,
        body: bytes | None = None,
        content_type: str | None = None,
    ) -> HttpResponse:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if content_type:
            headers["Content-Type"] = content_type
        return self._transport(
            HttpRequest(
                method=method,
                url=url,
                headers=headers,
                body=body,
                timeout=self.request_timeout,
            )
        )

    @staticmethod
    def _payload_or_raise(response: HttpResponse, fallback: str) -> Dict[str, Any]:
        if not response.ok:
            raise DriveError(_provider_message(response) or fallback, status=response.status)
        try:
            payload = response.json()
        except ValueError as exc:
            raise DriveError(f"{fallback}: invalid JSON response", status=response.status) from exc
        return payload if isinstance(payload, dict) else {}


def _multipart_related(
    metadata: Dict[str, Any], content: bytes, mime_type: str
) -> tuple[bytes, str]:
    boundary = f"gitmind-{uuid.uuid4().hex}"
    head = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {mime_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + content + tail, boundary


def _provider_message(response: HttpResponse) -> str:
    try:
        payload = response.json()
    except ValueError:
        return ""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return ""


__all__ = ["BINARY_MIME_TYPE", "DRIVE_SCOPES", "DriveClient", "FOLDER_MIME_TYPE"]
