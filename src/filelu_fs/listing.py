"""Turning remote folder listings into virtual directory entries."""

from __future__ import annotations

import logging
import posixpath
import threading
from urllib.parse import unquote, urlparse

from filelu_fs._internal.api import FileLuAPI
from filelu_fs.models import EntryKind, FileInfo, FolderInfo
from filelu_fs.naming import encode, join_path

logger = logging.getLogger(__name__)


def file_name_from_url(url: str) -> str:
    """Return the last path component of a download URL."""
    return unquote(posixpath.basename(urlparse(url).path))


def list_directory(
    api: FileLuAPI,
    folder_id: int,
    dir_path: str = "",
    *,
    cancel: threading.Event | None = None,
) -> list[FolderInfo | FileInfo]:
    """List ``folder_id`` as entries whose paths live under ``dir_path``.

    Folders come first, then files, each in the order FileLu returned them.
    Every entry name is rendered with its identifier, e.g. ``"(3) Pics"``.
    """
    listing = api.list_folder(folder_id, cancel=cancel)
    entries: list[FolderInfo | FileInfo] = []
    for folder in listing.folders:
        segment = encode(folder.name, folder.fld_id, EntryKind.FOLDER)
        entries.append(
            FolderInfo(
                id=folder.fld_id,
                name=folder.name,
                path=join_path(dir_path, segment),
            )
        )
    for file in listing.files:
        segment = encode(file.name, file.file_code, EntryKind.FILE)
        entries.append(
            FileInfo(
                code=file.file_code,
                name=file.name,
                path=join_path(dir_path, segment),
                size=file.size,
                hash=file.hash,
            )
        )
    logger.debug(f"Listed {len(entries)} entries in folder {folder_id} ({dir_path!r})")
    return entries


def single_file_listing(
    api: FileLuAPI, file_code: str, *, cancel: threading.Event | None = None
) -> list[FolderInfo | FileInfo]:
    """Describe a file-code root as a one-entry listing."""
    link = api.get_direct_link(file_code, cancel=cancel)
    name = file_name_from_url(link.url)
    return [FileInfo(code=file_code, name=name, path=name, size=link.size)]
