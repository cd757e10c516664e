"""Thin client for the FileLu rclone API."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

import httpx

from filelu_fs.exceptions import (
    ApiError,
    OperationCancelledError,
    TransportError,
    UploadRejectedError,
)
from filelu_fs.models import (
    AccountInfo,
    DirectLink,
    FolderListing,
    RemoteFile,
    RemoteFolder,
    UploadSession,
)

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://filelu.com/rclone"
DEFAULT_TIMEOUT = 30.0
STATUS_OK = 200
FILE_STATUS_OK = "OK"
CHUNK_SIZE = 64 * 1024

# Fixed multipart fields expected by the upload server.
UPLOAD_FIELDS = {"upload_type": "rclone", "utype": "prem"}

_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
    "PB": 1024**5,
}
_SIZE_RE = re.compile(r"\s*([0-9]+(?:\.[0-9]+)?)\s*([A-Za-z]*)\s*")


def parse_storage_size(value: str) -> int:
    """Convert a size such as ``"10 GB"`` or ``"512.5 MB"`` to bytes."""
    match = _SIZE_RE.fullmatch(value or "")
    if match is None:
        raise ValueError(f"Invalid storage size: {value!r}")
    number, unit = match.groups()
    unit = unit.upper()
    if unit.endswith("IB"):
        unit = unit[:-2] + "B"
    if unit not in _SIZE_UNITS:
        raise ValueError(f"Unknown storage unit in {value!r}")
    return int(float(number) * _SIZE_UNITS[unit])


def check_cancelled(cancel: threading.Event | None) -> None:
    """Raise if the caller asked for the operation to stop."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError("Operation cancelled")


class _CancellableReader:
    """File wrapper that aborts a streamed upload once cancel is set."""

    def __init__(self, raw: IO[bytes], cancel: threading.Event | None) -> None:
        self._raw = raw
        self._cancel = cancel

    def read(self, size: int = -1) -> bytes:
        check_cancelled(self._cancel)
        return self._raw.read(size)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._raw, name)


class FileLuAPI:
    """Request/response wrapper around the FileLu endpoints.

    Holds no state besides the ``httpx.Client``, which is safe to share
    between threads, so one instance can serve concurrent operations.
    Every call accepts an optional ``cancel`` event.
    """

    def __init__(
        self,
        key: str,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._key = key
        self._endpoint = endpoint.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def _send(
        self,
        request: httpx.Request,
        cancel: threading.Event | None,
        *,
        stream: bool = False,
    ) -> httpx.Response:
        check_cancelled(cancel)
        try:
            response = self._client.send(request, stream=stream)
        except httpx.TransportError as e:
            raise TransportError(f"{request.method} {request.url.path} failed: {e}") from e
        if response.is_error:
            if stream:
                response.close()
            raise ApiError(
                f"HTTP {response.status_code} from {request.url.path}",
                status=response.status_code,
            )
        return response

    def _api_call(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        cancel: threading.Event | None = None,
    ) -> dict[str, Any]:
        """Make a GET call and return the decoded body if its status is OK."""
        query = dict(params or {})
        query["key"] = self._key
        request = self._client.build_request("GET", f"{self._endpoint}{endpoint}", params=query)
        logger.debug(f"GET {endpoint} {params or {}}")
        response = self._send(request, cancel)
        try:
            data = response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {endpoint}: {e}") from e
        if not isinstance(data, dict):
            raise ApiError(f"Unexpected response from {endpoint}")
        status = data.get("status")
        if status != STATUS_OK:
            raise ApiError(data.get("msg") or f"{endpoint} failed", status=status)
        return data

    def list_folder(self, fld_id: int, *, cancel: threading.Event | None = None) -> FolderListing:
        """List folders and files directly inside ``fld_id``."""
        data = self._api_call("/folder/list", {"fld_id": fld_id}, cancel)
        result = data.get("result") or {}
        folders = [
            RemoteFolder(
                name=item.get("name", ""),
                fld_id=int(item.get("fld_id", 0)),
                parent_id=int(item.get("parent_fld_id") or fld_id),
            )
            for item in result.get("folders") or []
        ]
        files = [
            RemoteFile(
                name=item.get("name", ""),
                file_code=item.get("file_code", ""),
                size=int(item.get("size") or 0),
                hash=item.get("hash") or "",
            )
            for item in result.get("files") or []
        ]
        return FolderListing(folders=folders, files=files)

    def create_folder(
        self,
        parent_id: int,
        name: str,
        *,
        cancel: threading.Event | None = None,
    ) -> int:
        """Create ``name`` under ``parent_id`` and return the new folder id."""
        data = self._api_call("/folder/create", {"parent_id": parent_id, "name": name}, cancel)
        fld_id = (data.get("result") or {}).get("fld_id")
        if fld_id is None:
            raise ApiError("folder/create returned no folder id")
        return int(fld_id)

    def delete_folder(self, fld_id: int, *, cancel: threading.Event | None = None) -> None:
        self._api_call("/folder/delete", {"fld_id": fld_id}, cancel)

    def get_upload_session(self, *, cancel: threading.Event | None = None) -> UploadSession:
        """Ask for an upload server and a fresh session id."""
        data = self._api_call("/upload/server", cancel=cancel)
        upload_url = data.get("result")
        sess_id = data.get("sess_id")
        if not upload_url or not sess_id:
            raise ApiError("upload/server returned no session")
        logger.debug(f"Got upload server {upload_url}")
        return UploadSession(upload_url=str(upload_url), sess_id=str(sess_id))

    def upload_file(
        self,
        session: UploadSession,
        file_name: str,
        content: IO[bytes],
        *,
        cancel: threading.Event | None = None,
    ) -> str:
        """Send ``content`` as a multipart body and return the new file code.

        Raises:
            UploadRejectedError: If the server took the bytes but refused the file
        """
        data = {"sess_id": session.sess_id, **UPLOAD_FIELDS}
        files = {"file_0": (file_name, _CancellableReader(content, cancel))}
        request = self._client.build_request("POST", session.upload_url, data=data, files=files)
        response = self._send(request, cancel)
        try:
            payload = response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from upload server: {e}") from e
        if not isinstance(payload, list) or not payload:
            raise UploadRejectedError("Upload server returned no file status")
        entry = payload[0]
        file_status = entry.get("file_status")
        if file_status != FILE_STATUS_OK:
            raise UploadRejectedError(
                f"Upload of {file_name} rejected with status: {file_status}",
                file_status=file_status,
            )
        file_code = entry.get("file_code")
        if not file_code:
            raise UploadRejectedError(
                "Upload server returned no file code", file_status=file_status
            )
        return str(file_code)

    def set_file_folder(
        self,
        file_code: str,
        fld_id: int,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Move a stored file into ``fld_id``."""
        self._api_call("/file/set_folder", {"file_code": file_code, "fld_id": fld_id}, cancel)

    def get_direct_link(
        self,
        file_code: str,
        *,
        cancel: threading.Event | None = None,
    ) -> DirectLink:
        data = self._api_call("/file/direct_link", {"file_code": file_code}, cancel)
        result = data.get("result") or {}
        return DirectLink(url=result.get("url", ""), size=int(result.get("size") or 0))

    def delete_file(self, file_code: str, *, cancel: threading.Event | None = None) -> None:
        self._api_call("/file/remove", {"file_code": file_code, "remove": 1}, cancel)

    def account_info(self, *, cancel: threading.Event | None = None) -> AccountInfo:
        data = self._api_call("/account/info", cancel=cancel)
        result = data.get("result") or {}
        return AccountInfo(
            email=result.get("email", ""),
            storage=result.get("storage", ""),
            storage_used=result.get("storage_used", ""),
            premium_expire=result.get("premium_expire", ""),
            utype=result.get("utype", ""),
        )

    @contextmanager
    def download(
        self,
        url: str,
        *,
        cancel: threading.Event | None = None,
    ) -> Iterator[Iterator[bytes]]:
        """Stream the bytes behind a direct link.

        Usage:
            with api.download(link.url) as chunks:
                for chunk in chunks:
                    ...
        """
        request = self._client.build_request("GET", url)
        response = self._send(request, cancel, stream=True)
        try:
            yield self._iter_chunks(response, cancel)
        finally:
            response.close()

    def _iter_chunks(
        self, response: httpx.Response, cancel: threading.Event | None
    ) -> Iterator[bytes]:
        try:
            for chunk in response.iter_bytes(CHUNK_SIZE):
                check_cancelled(cancel)
                yield chunk
        except httpx.TransportError as e:
            raise TransportError(f"Download interrupted: {e}") from e
