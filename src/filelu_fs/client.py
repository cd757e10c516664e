"""Main FileLuClient class exposing FileLu as a path-based filesystem."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any

from filelu_fs._internal.api import FileLuAPI, parse_storage_size
from filelu_fs.config import Settings
from filelu_fs.dedup import DuplicateDetector, Fingerprinter, partial_fingerprint
from filelu_fs.exceptions import (
    DirectoryNotEmptyError,
    FileLuError,
    InvalidFileCodeError,
    NotFoundError,
    ValidationError,
)
from filelu_fs.listing import list_directory, single_file_listing
from filelu_fs.models import (
    ROOT_FOLDER_ID,
    AmbiguityPolicy,
    DuplicatePolicy,
    EntryKind,
    FileInfo,
    FolderInfo,
    UploadResult,
    UploadState,
    Usage,
)
from filelu_fs.naming import (
    Tagged,
    decode,
    encode,
    is_file_code,
    is_folder_id,
    join_path,
    plain_name,
    split_path,
)
from filelu_fs.resolver import PathResolver
from filelu_fs.upload import DEFAULT_MAX_DEPTH, Mover, UploadPipeline, spool

logger = logging.getLogger(__name__)


def parse_root(root: str) -> tuple[int, str, str | None]:
    """Split a configured root into ``(folder_id, path_prefix, file_code)``.

    ``"123"`` and ``"name:123"`` select folder 123, a file-code-shaped root
    selects a single file, anything else is a path below folder 0.
    """
    root = root.strip("/")
    if not root:
        return ROOT_FOLDER_ID, "", None
    if is_folder_id(root):
        return int(root), "", None
    name, sep, ident = root.rpartition(":")
    if sep and name and is_folder_id(ident.strip()):
        return int(ident.strip()), "", None
    if is_file_code(root):
        return ROOT_FOLDER_ID, "", root
    return ROOT_FOLDER_ID, root, None


class FileLuClient:
    """Client for FileLu cloud storage with a path-based view.

    Paths are slash-separated and relative to the configured root. Listings
    render entries as ``"(id) name"``; such segments can be passed back and
    are resolved without extra remote calls.

    Example (context manager - recommended):
        with FileLuClient("my-rclone-key") as client:
            client.upload("report.pdf", "Documents/2024")
            for entry in client.list_folder("Documents"):
                print(entry.path)

    Example (manual session):
        client = FileLuClient("my-rclone-key", root="Backups")
        client.move("(abc123def456) old.txt", "Archive/old.txt")
        client.close()
    """

    def __init__(
        self,
        key: str | None = None,
        *,
        root: str = "",
        api: FileLuAPI | None = None,
        endpoint: str | None = None,
        timeout: float | None = None,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.SKIP,
        ambiguity_policy: AmbiguityPolicy = AmbiguityPolicy.FIRST,
        fingerprinter: Fingerprinter = partial_fingerprint,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """Initialize the client.

        Args:
            key: FileLu rclone key (not needed when ``api`` is given)
            root: Folder id, ``name:id``, file code or path to treat as root
            api: Pre-built API client, e.g. one shared between clients
            endpoint: Override of the API endpoint
            timeout: Request timeout in seconds
            duplicate_policy: What uploads do with duplicate content
            ambiguity_policy: What resolution does with duplicate folder names
            fingerprinter: Function computing upload fingerprints
            max_depth: Deepest folder level a directory move descends to
        """
        if api is None:
            if not key:
                raise ValidationError("A FileLu key is required")
            kwargs: dict[str, Any] = {}
            if endpoint:
                kwargs["endpoint"] = endpoint
            if timeout is not None:
                kwargs["timeout"] = timeout
            api = FileLuAPI(key, **kwargs)

        self._api = api
        self._root = root
        self._root_id, self._root_path, self._root_file = parse_root(root)
        self._resolver = PathResolver(api, ambiguity=ambiguity_policy)
        self._detector = DuplicateDetector(api, fingerprinter)
        self._pipeline = UploadPipeline(api, self._detector, duplicate_policy=duplicate_policy)
        self._mover = Mover(api, self._resolver, self._pipeline, max_depth=max_depth)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> FileLuClient:
        """Build a client from loaded settings."""
        return cls(
            settings.key,
            root=settings.root,
            endpoint=settings.endpoint,
            timeout=settings.timeout,
            duplicate_policy=settings.duplicate_policy,
            ambiguity_policy=settings.ambiguity_policy,
            **kwargs,
        )

    def __enter__(self) -> FileLuClient:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context manager."""
        self.close()

    def __str__(self) -> str:
        return f"FileLu root '{self._root}'"

    @property
    def api(self) -> FileLuAPI:
        return self._api

    @property
    def is_single_file(self) -> bool:
        """True when the root is a file code rather than a folder."""
        return self._root_file is not None

    def resolve(self, path: str = "", *, cancel: threading.Event | None = None) -> int:
        """Resolve a path below the root to a folder id.

        A path made only of digits is taken as an absolute folder id, even
        when the root is itself a folder id. Below a path root it is joined
        to that path like any other name.

        Raises:
            NotFoundError: If a segment does not exist
        """
        self._require_folder_root()
        return self._resolver.resolve(
            join_path(self._root_path, path), start=self._root_id, cancel=cancel
        )

    def _require_folder_root(self) -> None:
        if self._root_file is not None:
            raise ValidationError(f"Root {self._root_file} is a single file, not a folder")

    def _file_code(self, path: str) -> str:
        """Extract the file code from the last segment of ``path``."""
        if self._root_file is not None:
            return self._root_file
        parts = split_path(path)
        if not parts:
            raise ValidationError("Empty file path")
        segment = decode(parts[-1])
        if not isinstance(segment, Tagged) or segment.file_code is None:
            raise InvalidFileCodeError(f"No file code in {parts[-1]!r}")
        return segment.file_code

    def list_folder(
        self, path: str = "", *, cancel: threading.Event | None = None
    ) -> list[FolderInfo | FileInfo]:
        """List contents of a folder.

        Args:
            path: Folder path to list, relative to the root

        Returns:
            FolderInfo and FileInfo objects, folders first, in remote order

        Raises:
            NotFoundError: If the folder does not exist
        """
        if self._root_file is not None:
            logger.debug(f"Root is file code {self._root_file}; listing single file")
            return single_file_listing(self._api, self._root_file, cancel=cancel)
        folder_id = self.resolve(path, cancel=cancel)
        return list_directory(self._api, folder_id, path.strip("/"), cancel=cancel)

    def folder_exists(self, path: str, *, cancel: threading.Event | None = None) -> bool:
        """Check if a folder exists.

        Only a missing path yields False; other errors propagate.
        """
        try:
            self.resolve(path, cancel=cancel)
        except NotFoundError:
            return False
        return True

    def mkdir(
        self,
        path: str,
        *,
        parents: bool = False,
        cancel: threading.Event | None = None,
    ) -> FolderInfo:
        """Create a folder.

        Args:
            path: Path of the folder to create
            parents: If True, create missing parent folders as needed

        Returns:
            FolderInfo for the created folder

        Raises:
            ValidationError: If the path is empty
            NotFoundError: If the parent is missing and ``parents`` is False
        """
        parts = split_path(path)
        if not parts:
            raise ValidationError("Cannot create root folder")

        name = parts[-1]
        parent_path = "/".join(parts[:-1])
        if parents:
            parent_id = self._ensure_path(parent_path, cancel=cancel)
        else:
            parent_id = self.resolve(parent_path, cancel=cancel)

        fld_id = self._api.create_folder(parent_id, name, cancel=cancel)
        logger.info(f"Created folder {path!r} with id {fld_id}")
        return FolderInfo(
            id=fld_id,
            name=name,
            path=join_path(parent_path, encode(name, fld_id, EntryKind.FOLDER)),
        )

    def _ensure_path(self, path: str, *, cancel: threading.Event | None = None) -> int:
        """Resolve ``path``, creating any missing folders on the way."""
        self._require_folder_root()
        current = self._root_id
        for part in split_path(join_path(self._root_path, path)):
            segment = decode(part)
            if isinstance(segment, Tagged) and segment.folder_id is not None:
                current = segment.folder_id
                continue
            current = self._mover.ensure_folder(current, part, cancel=cancel)
        return current

    def rmdir(self, path: str, *, cancel: threading.Event | None = None) -> None:
        """Remove an empty folder.

        Raises:
            ValidationError: If the path is empty
            DirectoryNotEmptyError: If the folder still has children
        """
        if not join_path(self._root_path, path):
            raise ValidationError("Directory name cannot be empty")

        fld_id = self.resolve(path, cancel=cancel)
        if fld_id == ROOT_FOLDER_ID:
            raise ValidationError("Cannot remove the root folder")
        if not self._api.list_folder(fld_id, cancel=cancel).is_empty:
            raise DirectoryNotEmptyError(f"Directory not empty: {path!r}")
        self._api.delete_folder(fld_id, cancel=cancel)
        logger.info(f"Removed directory {path!r}")

    def remove(self, path: str, *, cancel: threading.Event | None = None) -> None:
        """Delete a file given a path ending in ``"(file_code) name"``.

        Raises:
            InvalidFileCodeError: If the last segment carries no file code
        """
        file_code = self._file_code(path)
        self._api.delete_file(file_code, cancel=cancel)
        logger.info(f"Deleted file with code: {file_code}")

    def put(
        self,
        content: IO[bytes],
        remote_path: str,
        *,
        cancel: threading.Event | None = None,
    ) -> UploadResult:
        """Upload a binary stream as ``remote_path``.

        The folder part of ``remote_path`` must exist; its last segment is
        the file name.
        """
        parts = split_path(remote_path)
        if not parts:
            raise ValidationError("Empty remote path")
        file_name = plain_name(parts[-1])
        dir_path = "/".join(parts[:-1])
        folder_id = self.resolve(dir_path, cancel=cancel)
        with spool(content) as stream:
            return self._pipeline.upload(
                stream,
                file_name,
                folder_id,
                cloud_path=join_path(dir_path, file_name),
                cancel=cancel,
            )

    def upload(
        self,
        file_path: str | Path,
        target_folder: str = "",
        *,
        create_folder: bool = False,
        cancel: threading.Event | None = None,
    ) -> UploadResult:
        """Upload a local file to FileLu.

        Args:
            file_path: Path to the local file
            target_folder: Folder path to upload to
            create_folder: Create the target folder if it doesn't exist

        Returns:
            UploadResult; check ``duplicate`` for a skipped upload

        Raises:
            ValidationError: If the local file does not exist
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise ValidationError(f"File not found: {file_path}")

        target_folder = target_folder.strip("/")
        if create_folder:
            folder_id = self._ensure_path(target_folder, cancel=cancel)
        else:
            folder_id = self.resolve(target_folder, cancel=cancel)

        with file_path.open("rb") as f:
            return self._pipeline.upload(
                f,
                file_path.name,
                folder_id,
                cloud_path=join_path(target_folder, file_path.name),
                cancel=cancel,
            )

    def upload_many(
        self,
        file_paths: list[str | Path],
        target_folder: str = "",
        *,
        create_folder: bool = False,
        stop_on_error: bool = False,
        cancel: threading.Event | None = None,
    ) -> list[UploadResult]:
        """Upload multiple files.

        A failing file does not abort the batch (unless ``stop_on_error``);
        it yields a result in state ``FAILED`` carrying the raised error.

        Returns:
            List of UploadResult for each file
        """
        results: list[UploadResult] = []

        for file_path in file_paths:
            try:
                result = self.upload(
                    file_path,
                    target_folder,
                    create_folder=create_folder,
                    cancel=cancel,
                )
            except FileLuError as e:
                logger.error(f"Upload of {file_path} failed: {e}")
                result = UploadResult(
                    state=UploadState.FAILED,
                    file_name=Path(file_path).name,
                    folder_id=ROOT_FOLDER_ID,
                    cloud_path=join_path(target_folder, Path(file_path).name),
                    fingerprint="",
                    error=e,
                )
            results.append(result)

            if stop_on_error and result.state is UploadState.FAILED:
                break

        return results

    @contextmanager
    def open(
        self, path: str, *, cancel: threading.Event | None = None
    ) -> Iterator[Iterator[bytes]]:
        """Stream the bytes of a file.

        Usage:
            with client.open("(abc123def456) a.txt") as chunks:
                data = b"".join(chunks)
        """
        file_code = self._file_code(path)
        link = self._api.get_direct_link(file_code, cancel=cancel)
        with self._api.download(link.url, cancel=cancel) as chunks:
            yield chunks

    def download(
        self,
        path: str,
        local_path: str | Path,
        *,
        cancel: threading.Event | None = None,
    ) -> int:
        """Download a file to ``local_path`` and return the bytes written."""
        written = 0
        with self.open(path, cancel=cancel) as chunks, Path(local_path).open("wb") as out:
            for chunk in chunks:
                out.write(chunk)
                written += len(chunk)
        logger.debug(f"Downloaded {path!r} to {local_path} ({written} bytes)")
        return written

    def move_to_local(
        self,
        path: str,
        local_path: str | Path,
        *,
        cancel: threading.Event | None = None,
    ) -> int:
        """Download a file, then delete it from FileLu."""
        written = self.download(path, local_path, cancel=cancel)
        self.remove(path, cancel=cancel)
        logger.info(f"Moved {path!r} to local {local_path}")
        return written

    def move(
        self,
        source: str,
        dest: str,
        *,
        cancel: threading.Event | None = None,
    ) -> list[UploadResult]:
        """Move a file or folder.

        A source whose last segment carries a file code is moved as a file
        to the full path ``dest``. Any other source is a folder whose
        contents are moved into ``dest``, which is created if missing.

        Returns:
            One UploadResult per moved file

        Raises:
            SourceNotDeletedError: If a copy was made but its source remains
            RelocationError: If a copy was stored but left in the root folder
            ValidationError: If a folder would be moved into itself or below it
        """
        source_parts = split_path(source)
        dest_parts = split_path(dest)
        if not source_parts or not dest_parts:
            raise ValidationError("Move needs a source and a destination path")

        dest_dir = "/".join(dest_parts[:-1])
        dest_name = plain_name(dest_parts[-1])
        segment = decode(source_parts[-1])

        if isinstance(segment, Tagged) and segment.file_code is not None:
            folder_id = self.resolve(dest_dir, cancel=cancel)
            result = self._mover.move_file(
                segment.file_code,
                folder_id,
                dest_name,
                cloud_path=join_path(dest_dir, dest_name),
                cancel=cancel,
            )
            return [result]

        source_id = self.resolve(source, cancel=cancel)
        if source_id == ROOT_FOLDER_ID:
            raise ValidationError("Cannot move the root folder")
        parent_id = self.resolve(dest_dir, cancel=cancel)
        self._mover.check_destination(source_id, parent_id, cancel=cancel)
        dest_id = self._mover.ensure_folder(parent_id, dest_name, cancel=cancel)
        if dest_id == source_id:
            raise ValidationError(f"Source and destination are the same folder: {source!r}")
        logger.debug(f"Moving folder {source_id} into folder {dest_id}")
        return self._mover.move_directory(
            source_id,
            dest_id,
            dest_path=join_path(dest_dir, dest_name),
            cancel=cancel,
        )

    def about(self, *, cancel: threading.Event | None = None) -> Usage:
        """Return total and used storage of the account."""
        info = self._api.account_info(cancel=cancel)
        return Usage(
            total=parse_storage_size(info.storage),
            used=parse_storage_size(info.storage_used),
        )

    def close(self) -> None:
        """Close the client and clean up resources."""
        self._api.close()
