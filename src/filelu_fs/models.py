"""Data models for the filelu_fs library."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from filelu_fs.exceptions import FileLuError

ROOT_FOLDER_ID = 0


class EntryKind(str, enum.Enum):
    """Kind of a remote object."""

    FOLDER = "folder"
    FILE = "file"


class UploadState(str, enum.Enum):
    """Progress of a single upload through the pipeline."""

    IDLE = "idle"
    SESSION_ACQUIRED = "session_acquired"
    UPLOADED = "uploaded"
    RELOCATED = "relocated"
    DONE = "done"
    DUPLICATE = "duplicate"
    FAILED = "failed"


class DuplicatePolicy(str, enum.Enum):
    """What an upload does when its dedup key already exists remotely."""

    SKIP = "skip"
    ERROR = "error"
    PROCEED = "proceed"


class AmbiguityPolicy(str, enum.Enum):
    """What path resolution does when several folders share a name."""

    FIRST = "first"
    ERROR = "error"


@dataclass(frozen=True)
class RemoteFolder:
    """A folder as returned by ``folder/list``."""

    name: str
    fld_id: int
    parent_id: int = ROOT_FOLDER_ID


@dataclass(frozen=True)
class RemoteFile:
    """A file as returned by ``folder/list``."""

    name: str
    file_code: str
    size: int = 0
    hash: str = ""


@dataclass(frozen=True)
class FolderListing:
    """Raw contents of one remote folder, in remote order."""

    folders: list[RemoteFolder] = field(default_factory=list)
    files: list[RemoteFile] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.folders and not self.files


@dataclass(frozen=True)
class UploadSession:
    """Upload server URL and session id, valid for one upload."""

    upload_url: str
    sess_id: str


@dataclass(frozen=True)
class DirectLink:
    """Direct download URL of a file and its size."""

    url: str
    size: int


@dataclass(frozen=True)
class AccountInfo:
    """Account details from ``account/info``; sizes are human-readable."""

    email: str
    storage: str
    storage_used: str
    premium_expire: str = ""
    utype: str = ""


@dataclass(frozen=True)
class Usage:
    """Storage usage in bytes."""

    total: int
    used: int

    @property
    def free(self) -> int:
        return self.total - self.used


@dataclass(frozen=True)
class FileInfo:
    """Information about a file in FileLu."""

    code: str
    name: str
    path: str
    size: int
    hash: str = ""


@dataclass(frozen=True)
class FolderInfo:
    """Information about a folder in FileLu."""

    id: int
    name: str
    path: str


@dataclass(frozen=True)
class UploadResult:
    """Result of an upload operation."""

    state: UploadState
    file_name: str
    folder_id: int
    cloud_path: str
    fingerprint: str
    file_code: str | None = None
    size: int = 0
    error: FileLuError | None = None

    @property
    def success(self) -> bool:
        return self.state is UploadState.DONE

    @property
    def duplicate(self) -> bool:
        return self.state is UploadState.DUPLICATE
