"""FileLu FS - A path-based filesystem view of FileLu cloud storage.

Example usage:
    from filelu_fs import FileLuClient

    # Using context manager (recommended)
    with FileLuClient("my-rclone-key") as client:
        result = client.upload("article.pdf", "Inbox/Articles")
        print(f"Upload {'skipped (duplicate)' if result.duplicate else 'done'}")

    # Manual session management
    client = FileLuClient("my-rclone-key", root="Backups")
    for entry in client.list_folder("2024"):
        print(entry.path)
    client.close()
"""

from filelu_fs._internal.api import FileLuAPI, parse_storage_size
from filelu_fs.client import FileLuClient
from filelu_fs.config import Settings, get_settings
from filelu_fs.dedup import DuplicateDetector, dedup_key, partial_fingerprint
from filelu_fs.exceptions import (
    AmbiguousPathError,
    ApiError,
    ConfigError,
    DirectoryNotEmptyError,
    DuplicateFileError,
    FileLuError,
    InvalidFileCodeError,
    MoveDepthError,
    NotFoundError,
    OperationCancelledError,
    PartialFailureError,
    RelocationError,
    SourceNotDeletedError,
    TransportError,
    UploadRejectedError,
    ValidationError,
)
from filelu_fs.models import (
    AmbiguityPolicy,
    DuplicatePolicy,
    FileInfo,
    FolderInfo,
    UploadResult,
    UploadState,
    Usage,
)
from filelu_fs.naming import Plain, Tagged, decode, encode, is_file_code
from filelu_fs.resolver import PathResolver
from filelu_fs.upload import Mover, UploadPipeline

__version__ = "0.1.0"

__all__ = [
    # Main client
    "FileLuClient",
    "FileLuAPI",
    "Settings",
    "get_settings",
    # Building blocks
    "PathResolver",
    "DuplicateDetector",
    "UploadPipeline",
    "Mover",
    "Plain",
    "Tagged",
    "decode",
    "encode",
    "is_file_code",
    "partial_fingerprint",
    "dedup_key",
    "parse_storage_size",
    # Models
    "FileInfo",
    "FolderInfo",
    "UploadResult",
    "UploadState",
    "Usage",
    "DuplicatePolicy",
    "AmbiguityPolicy",
    # Exceptions
    "FileLuError",
    "ConfigError",
    "TransportError",
    "ApiError",
    "NotFoundError",
    "AmbiguousPathError",
    "ValidationError",
    "InvalidFileCodeError",
    "DirectoryNotEmptyError",
    "UploadRejectedError",
    "DuplicateFileError",
    "PartialFailureError",
    "RelocationError",
    "SourceNotDeletedError",
    "MoveDepthError",
    "OperationCancelledError",
]
