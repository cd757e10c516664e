"""Shared test helpers for filelu_fs tests."""

from __future__ import annotations

import dataclasses
import io
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO
from urllib.parse import quote, unquote

from filelu_fs._internal.api import check_cancelled
from filelu_fs.dedup import dedup_key, partial_fingerprint
from filelu_fs.exceptions import ApiError
from filelu_fs.models import (
    AccountInfo,
    DirectLink,
    FolderListing,
    RemoteFile,
    RemoteFolder,
    UploadSession,
)

UPLOAD_URL = "https://upload.example/cgi-bin/upload.cgi"
DOWNLOAD_BASE = "https://download.example/d"


def make_listing(
    folders: list[tuple[str, int]] | None = None,
    files: list[tuple[str, str]] | None = None,
) -> FolderListing:
    """Build a FolderListing from ``(name, id)`` pairs."""
    return FolderListing(
        folders=[RemoteFolder(name=name, fld_id=fld_id) for name, fld_id in folders or []],
        files=[RemoteFile(name=name, file_code=code) for name, code in files or []],
    )


def _remote_hash(data: bytes, folder_id: int) -> str:
    return dedup_key(partial_fingerprint(io.BytesIO(data)), folder_id)


class NonSeekable(io.RawIOBase):
    """Readable stream that cannot seek, like a pipe."""

    def __init__(self, data: bytes) -> None:
        self._buf = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def readinto(self, b: bytearray) -> int:  # type: ignore[override]
        data = self._buf.read(len(b))
        b[: len(data)] = data
        return len(data)


class FakeRemote:
    """In-memory stand-in for FileLuAPI.

    Keeps folders and files in dicts and mimics the service: new uploads
    land in folder 0 and must be moved with ``set_file_folder``. Uploaded
    files carry the hash the service reports, which follows them when they
    move to another folder. Wrap an instance in ``MagicMock(wraps=...)`` to
    record and override calls.
    """

    def __init__(self) -> None:
        self.folders: dict[int, RemoteFolder] = {}
        self.files: dict[str, RemoteFile] = {}
        self.file_folder: dict[str, int] = {}
        self.data: dict[str, bytes] = {}
        self._next_folder = 100
        self._next_file = 1

    def add_folder(self, name: str, parent_id: int = 0, fld_id: int | None = None) -> int:
        if fld_id is None:
            fld_id = self._next_folder
            self._next_folder += 1
        self.folders[fld_id] = RemoteFolder(name=name, fld_id=fld_id, parent_id=parent_id)
        return fld_id

    def add_file(self, name: str, data: bytes, folder_id: int = 0, hash: str = "") -> str:
        code = f"fake{self._next_file:08d}"
        self._next_file += 1
        self.files[code] = RemoteFile(name=name, file_code=code, size=len(data), hash=hash)
        self.file_folder[code] = folder_id
        self.data[code] = data
        return code

    def files_in(self, folder_id: int) -> list[RemoteFile]:
        return [f for code, f in self.files.items() if self.file_folder[code] == folder_id]

    def list_folder(self, fld_id: int, *, cancel: threading.Event | None = None) -> FolderListing:
        check_cancelled(cancel)
        return FolderListing(
            folders=[f for f in self.folders.values() if f.parent_id == fld_id],
            files=self.files_in(fld_id),
        )

    def create_folder(
        self, parent_id: int, name: str, *, cancel: threading.Event | None = None
    ) -> int:
        check_cancelled(cancel)
        return self.add_folder(name, parent_id)

    def delete_folder(self, fld_id: int, *, cancel: threading.Event | None = None) -> None:
        check_cancelled(cancel)
        if fld_id not in self.folders:
            raise ApiError("Folder not found", status=404)
        del self.folders[fld_id]

    def get_upload_session(self, *, cancel: threading.Event | None = None) -> UploadSession:
        check_cancelled(cancel)
        return UploadSession(upload_url=UPLOAD_URL, sess_id="sess-1")

    def upload_file(
        self,
        session: UploadSession,
        file_name: str,
        content: IO[bytes],
        *,
        cancel: threading.Event | None = None,
    ) -> str:
        check_cancelled(cancel)
        data = content.read()
        return self.add_file(file_name, data, hash=_remote_hash(data, 0))

    def set_file_folder(
        self, file_code: str, fld_id: int, *, cancel: threading.Event | None = None
    ) -> None:
        check_cancelled(cancel)
        file = self.files[file_code]
        if file.hash:
            self.files[file_code] = dataclasses.replace(
                file, hash=_remote_hash(self.data[file_code], fld_id)
            )
        self.file_folder[file_code] = fld_id

    def get_direct_link(
        self, file_code: str, *, cancel: threading.Event | None = None
    ) -> DirectLink:
        check_cancelled(cancel)
        if file_code not in self.files:
            raise ApiError("File not found", status=404)
        name = quote(self.files[file_code].name)
        return DirectLink(
            url=f"{DOWNLOAD_BASE}/{file_code}/{name}", size=len(self.data[file_code])
        )

    def delete_file(self, file_code: str, *, cancel: threading.Event | None = None) -> None:
        check_cancelled(cancel)
        if file_code not in self.files:
            raise ApiError("File not found", status=404)
        del self.files[file_code]
        del self.file_folder[file_code]
        del self.data[file_code]

    def account_info(self, *, cancel: threading.Event | None = None) -> AccountInfo:
        check_cancelled(cancel)
        return AccountInfo(email="user@example.com", storage="10 GB", storage_used="1 GB")

    @contextmanager
    def download(
        self, url: str, *, cancel: threading.Event | None = None
    ) -> Iterator[Iterator[bytes]]:
        check_cancelled(cancel)
        code = unquote(url.split("/")[-2])
        data = self.data[code]
        yield iter([data[:3], data[3:]])

    def close(self) -> None:
        pass
