"""Exception hierarchy for the filelu_fs library."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from filelu_fs.models import UploadResult


class FileLuError(Exception):
    """Base exception for all filelu_fs errors."""

    pass


class ConfigError(FileLuError, ValueError):
    """Raised when required configuration is missing or invalid."""

    pass


class TransportError(FileLuError):
    """Raised when the request never got a response (connection, timeout)."""

    pass


class ApiError(FileLuError):
    """Raised when FileLu answers with a non-OK status.

    The remote message is kept in ``message`` and the status in ``status``.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class NotFoundError(FileLuError):
    """Raised when a folder, path segment or file does not exist."""

    pass


class AmbiguousPathError(NotFoundError):
    """Raised when a path segment matches more than one folder."""

    def __init__(self, message: str, matches: list[int]) -> None:
        super().__init__(message)
        self.matches = matches


class ValidationError(FileLuError, ValueError):
    """Raised for malformed input, before any remote call is made."""

    pass


class InvalidFileCodeError(ValidationError):
    """Raised when a value does not have the shape of a file code."""

    pass


class DirectoryNotEmptyError(FileLuError):
    """Raised when removing a folder that still has children."""

    pass


class UploadRejectedError(FileLuError):
    """Raised when the content was transmitted but FileLu refused it."""

    def __init__(self, message: str, file_status: str | None = None) -> None:
        super().__init__(message)
        self.file_status = file_status


class DuplicateFileError(FileLuError):
    """Raised for a duplicate upload when the duplicate policy is ``error``."""

    def __init__(self, key: str) -> None:
        super().__init__(f"file hash {key} already exists")
        self.key = key


class PartialFailureError(FileLuError):
    """Raised when an operation failed after remote state already changed."""

    pass


class RelocationError(PartialFailureError):
    """Raised when an uploaded file could not be moved into its folder.

    The file stays in the root folder under ``file_code``.
    """

    def __init__(self, message: str, file_code: str, folder_id: int) -> None:
        super().__init__(message)
        self.file_code = file_code
        self.folder_id = folder_id


class SourceNotDeletedError(PartialFailureError):
    """Raised when a move uploaded the copy but could not delete the source.

    Both copies exist; ``result`` describes the new one.
    """

    def __init__(self, message: str, source: str, result: UploadResult) -> None:
        super().__init__(message)
        self.source = source
        self.result = result


class MoveDepthError(FileLuError):
    """Raised when a directory move descends past the configured depth."""

    pass


class OperationCancelledError(FileLuError):
    """Raised when the caller's cancel event is set during an operation."""

    pass
