"""Upload and move pipeline.

An upload goes through ``IDLE -> SESSION_ACQUIRED -> UPLOADED ->
[RELOCATED] -> DONE``. FileLu always stores new files in the root folder, so
any other destination needs a second call that moves the file; if that call
fails the file is left in the root and ``RelocationError`` says where it is.

A move is an upload of the source bytes to the destination followed by the
deletion of the source. The source is only deleted once the upload is
confirmed.
"""

from __future__ import annotations

import io
import logging
import shutil
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO

from filelu_fs._internal.api import FileLuAPI
from filelu_fs.dedup import DuplicateDetector, dedup_key
from filelu_fs.exceptions import (
    DuplicateFileError,
    FileLuError,
    MoveDepthError,
    NotFoundError,
    RelocationError,
    SourceNotDeletedError,
    ValidationError,
)
from filelu_fs.models import ROOT_FOLDER_ID, DuplicatePolicy, UploadResult, UploadState
from filelu_fs.resolver import PathResolver

logger = logging.getLogger(__name__)

SPOOL_MAX_SIZE = 8 * 1024 * 1024
DEFAULT_MAX_DEPTH = 32


@contextmanager
def spool(content: IO[bytes]) -> Iterator[IO[bytes]]:
    """Yield a seekable stream with the same bytes as ``content``.

    Seekable streams are yielded as they are. Anything else is copied into a
    temporary file that is closed on exit.
    """
    if content.seekable():
        yield content
        return
    with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE) as spooled:
        shutil.copyfileobj(content, spooled)
        spooled.seek(0)
        yield spooled


class UploadPipeline:
    """Run one upload from local bytes to a stored, relocated file."""

    def __init__(
        self,
        api: FileLuAPI,
        detector: DuplicateDetector,
        *,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.SKIP,
    ) -> None:
        self._api = api
        self._detector = detector
        self._duplicate_policy = duplicate_policy

    @property
    def duplicate_policy(self) -> DuplicatePolicy:
        return self._duplicate_policy

    def upload(
        self,
        content: IO[bytes],
        file_name: str,
        folder_id: int,
        *,
        cloud_path: str = "",
        ignore: str | None = None,
        cancel: threading.Event | None = None,
    ) -> UploadResult:
        """Upload a seekable stream into ``folder_id``.

        ``ignore`` names a file code whose entry in ``folder_id`` is left out
        of the duplicate check, such as the source of a rename.

        Returns:
            UploadResult in state ``DONE``, or ``DUPLICATE`` when the
            duplicate policy is ``skip`` and the content is already there

        Raises:
            DuplicateFileError: If a duplicate is found and the policy is ``error``
            UploadRejectedError: If FileLu refused the transmitted file
            RelocationError: If the file was stored but could not be moved
                out of the root folder
        """
        state = UploadState.IDLE
        fingerprint = self._detector.fingerprint(content)
        size = content.seek(0, io.SEEK_END)
        content.seek(0)
        logger.debug(f"Fingerprint of {file_name}: {fingerprint} ({size} bytes)")

        if self._detector.is_duplicate(fingerprint, folder_id, ignore=ignore, cancel=cancel):
            key = dedup_key(fingerprint, folder_id)
            if self._duplicate_policy is DuplicatePolicy.ERROR:
                raise DuplicateFileError(key)
            if self._duplicate_policy is DuplicatePolicy.SKIP:
                logger.warning(f"Duplicate of {file_name} in folder {folder_id}, upload skipped")
                return UploadResult(
                    state=UploadState.DUPLICATE,
                    file_name=file_name,
                    folder_id=folder_id,
                    cloud_path=cloud_path,
                    fingerprint=fingerprint,
                    size=size,
                )
            logger.warning(f"Duplicate of {file_name} in folder {folder_id}, uploading anyway")

        session = self._api.get_upload_session(cancel=cancel)
        state = self._advance(file_name, state, UploadState.SESSION_ACQUIRED)

        file_code = self._api.upload_file(session, file_name, content, cancel=cancel)
        state = self._advance(file_name, state, UploadState.UPLOADED)

        if folder_id != ROOT_FOLDER_ID:
            try:
                self._api.set_file_folder(file_code, folder_id, cancel=cancel)
            except FileLuError as e:
                logger.warning(
                    f"{file_name} uploaded as {file_code} but left in the root folder: {e}"
                )
                raise RelocationError(
                    f"Uploaded {file_name} as {file_code} but failed to move it "
                    f"to folder {folder_id}: {e}",
                    file_code=file_code,
                    folder_id=folder_id,
                ) from e
            state = self._advance(file_name, state, UploadState.RELOCATED)

        self._advance(file_name, state, UploadState.DONE)
        logger.info(f"Uploaded {file_name} to folder {folder_id} as {file_code}")
        return UploadResult(
            state=UploadState.DONE,
            file_name=file_name,
            folder_id=folder_id,
            cloud_path=cloud_path,
            fingerprint=fingerprint,
            file_code=file_code,
            size=size,
        )

    def _advance(self, file_name: str, old: UploadState, new: UploadState) -> UploadState:
        logger.debug(f"{file_name}: {old.value} -> {new.value}")
        return new


class Mover:
    """Move files and folder trees by re-uploading and deleting the source."""

    def __init__(
        self,
        api: FileLuAPI,
        resolver: PathResolver,
        pipeline: UploadPipeline,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._api = api
        self._resolver = resolver
        self._pipeline = pipeline
        self._max_depth = max_depth

    def move_file(
        self,
        file_code: str,
        folder_id: int,
        file_name: str,
        *,
        cloud_path: str = "",
        cancel: threading.Event | None = None,
    ) -> UploadResult:
        """Move the file ``file_code`` into ``folder_id`` as ``file_name``.

        Raises:
            SourceNotDeletedError: If the copy was uploaded but the source
                could not be deleted; both copies then exist
        """
        logger.debug(f"Moving {file_code} to folder {folder_id} as {file_name}")
        link = self._api.get_direct_link(file_code, cancel=cancel)
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE) as buffer:
            with self._api.download(link.url, cancel=cancel) as chunks:
                for chunk in chunks:
                    buffer.write(chunk)
            buffer.seek(0)
            result = self._pipeline.upload(
                buffer,
                file_name,
                folder_id,
                cloud_path=cloud_path,
                ignore=file_code,
                cancel=cancel,
            )

        if not result.success:
            logger.warning(
                f"{file_name} not uploaded ({result.state.value}); kept source {file_code}"
            )
            return result

        try:
            self._api.delete_file(file_code, cancel=cancel)
        except FileLuError as e:
            raise SourceNotDeletedError(
                f"Moved {file_name} but failed to delete source {file_code}: {e}",
                source=file_code,
                result=result,
            ) from e
        logger.info(f"Moved {file_code} to folder {folder_id} as {result.file_code}")
        return result

    def ensure_folder(
        self, parent_id: int, name: str, *, cancel: threading.Event | None = None
    ) -> int:
        """Return the id of folder ``name`` under ``parent_id``, creating it if needed."""
        try:
            return self._resolver.lookup(parent_id, name, cancel=cancel)
        except NotFoundError:
            fld_id = self._api.create_folder(parent_id, name, cancel=cancel)
            logger.info(f"Created folder {name!r} with id {fld_id} in folder {parent_id}")
            return fld_id

    def check_destination(
        self, source_id: int, dest_parent_id: int, *, cancel: threading.Event | None = None
    ) -> None:
        """Refuse to move ``source_id`` into a folder below ``dest_parent_id``
        when that parent is the source itself or one of its subfolders.

        Raises:
            ValidationError: If ``dest_parent_id`` lies inside the source tree
            MoveDepthError: If the tree is deeper than ``max_depth``
        """
        work: list[tuple[int, int]] = [(source_id, 0)]
        while work:
            fld_id, depth = work.pop()
            if fld_id == dest_parent_id:
                raise ValidationError(
                    f"Cannot move folder {source_id} into its own subtree ({dest_parent_id})"
                )
            if depth > self._max_depth:
                raise MoveDepthError(f"Folder tree below {source_id} deeper than {self._max_depth}")
            for folder in self._api.list_folder(fld_id, cancel=cancel).folders:
                work.append((folder.fld_id, depth + 1))

    def move_directory(
        self,
        source_id: int,
        dest_id: int,
        *,
        dest_path: str = "",
        cancel: threading.Event | None = None,
    ) -> list[UploadResult]:
        """Move everything below ``source_id`` into ``dest_id``.

        The tree is walked with an explicit work list, recreating each
        subfolder under the destination. Source folders left empty are
        deleted afterwards, deepest first.

        Raises:
            MoveDepthError: If the tree is deeper than ``max_depth``
        """
        results: list[UploadResult] = []
        visited: list[int] = []
        work: list[tuple[int, int, str, int]] = [(source_id, dest_id, dest_path, 0)]

        while work:
            src, dst, path, depth = work.pop()
            if depth > self._max_depth:
                raise MoveDepthError(f"Folder tree below {source_id} deeper than {self._max_depth}")
            visited.append(src)
            listing = self._api.list_folder(src, cancel=cancel)
            for folder in listing.folders:
                child = self.ensure_folder(dst, folder.name, cancel=cancel)
                work.append((folder.fld_id, child, f"{path}/{folder.name}".lstrip("/"), depth + 1))
            for file in listing.files:
                results.append(
                    self.move_file(
                        file.file_code,
                        dst,
                        file.name,
                        cloud_path=f"{path}/{file.name}".lstrip("/"),
                        cancel=cancel,
                    )
                )

        for fld_id in reversed(visited):
            if self._api.list_folder(fld_id, cancel=cancel).is_empty:
                self._api.delete_folder(fld_id, cancel=cancel)
                logger.debug(f"Removed emptied source folder {fld_id}")
            else:
                logger.warning(f"Source folder {fld_id} not empty after move; kept")
        return results
