"""Cheap duplicate detection for uploads.

The fingerprint only looks at the first and last ``WINDOW_SIZE`` bytes of a
file, so its cost does not grow with the file. Two files that share head,
tail and padding but differ in the middle get the same fingerprint. That is
an accepted trade-off: the fingerprint is not a content hash and must not be
used as one.
"""

from __future__ import annotations

import base64
import hashlib
import io
import logging
import os
import threading
from collections.abc import Callable
from typing import IO

from filelu_fs._internal.api import FileLuAPI

logger = logging.getLogger(__name__)

WINDOW_SIZE = 1024

Fingerprinter = Callable[[IO[bytes]], str]


def _read_window(stream: IO[bytes]) -> bytes:
    data = b""
    while len(data) < WINDOW_SIZE:
        chunk = stream.read(WINDOW_SIZE - len(data))
        if not chunk:
            break
        data += chunk
    return data.ljust(WINDOW_SIZE, b"\0")


def partial_fingerprint(stream: IO[bytes]) -> str:
    """Digest the head and tail windows of a seekable binary stream.

    Windows shorter than ``WINDOW_SIZE`` are zero-padded, and files no
    longer than one window reuse the head as the tail. The result is the
    MD5 of head+tail in unpadded base64, always 22 characters. The stream
    position is left where it was.
    """
    position = stream.tell()
    try:
        stream.seek(0)
        head = _read_window(stream)
        size = stream.seek(0, io.SEEK_END)
        if size > WINDOW_SIZE:
            stream.seek(-WINDOW_SIZE, io.SEEK_END)
            tail = _read_window(stream)
        else:
            tail = head
    finally:
        stream.seek(position)
    digest = hashlib.md5(head + tail).digest()
    return base64.b64encode(digest).decode("ascii").rstrip("=")


def fingerprint_file(
    path: str | os.PathLike[str], fingerprinter: Fingerprinter = partial_fingerprint
) -> str:
    """Fingerprint a local file by path."""
    with open(path, "rb") as f:
        return fingerprinter(f)


def dedup_key(fingerprint: str, folder_id: int) -> str:
    """Combine a fingerprint with its destination folder."""
    return f"{fingerprint}{folder_id}"


class DuplicateDetector:
    """Check fingerprints against the hashes FileLu reports for a folder."""

    def __init__(self, api: FileLuAPI, fingerprinter: Fingerprinter = partial_fingerprint) -> None:
        self._api = api
        self._fingerprinter = fingerprinter

    def fingerprint(self, stream: IO[bytes]) -> str:
        return self._fingerprinter(stream)

    def remote_keys(
        self,
        folder_id: int,
        *,
        ignore: str | None = None,
        cancel: threading.Event | None = None,
    ) -> set[str]:
        """Fetch the dedup keys of the files in ``folder_id``, except ``ignore``."""
        listing = self._api.list_folder(folder_id, cancel=cancel)
        keys = {
            file.hash for file in listing.files if file.hash and file.file_code != ignore
        }
        logger.debug(f"Fetched {len(keys)} remote hashes for folder {folder_id}")
        return keys

    def is_duplicate(
        self,
        fingerprint: str,
        folder_id: int,
        *,
        existing: set[str] | None = None,
        ignore: str | None = None,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Check whether ``fingerprint`` is already stored in ``folder_id``.

        ``existing`` may carry keys fetched earlier; otherwise the folder is
        listed once, leaving out the file ``ignore``.
        """
        if existing is None:
            existing = self.remote_keys(folder_id, ignore=ignore, cancel=cancel)
        return dedup_key(fingerprint, folder_id) in existing
