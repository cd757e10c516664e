"""Tests for the upload pipeline."""

from __future__ import annotations

import io
import threading
from unittest.mock import MagicMock

import pytest
from helpers import FakeRemote, NonSeekable

from filelu_fs import (
    ApiError,
    DuplicateDetector,
    DuplicateFileError,
    OperationCancelledError,
    RelocationError,
    UploadPipeline,
    UploadRejectedError,
    UploadState,
    dedup_key,
    partial_fingerprint,
)
from filelu_fs.models import DuplicatePolicy
from filelu_fs.upload import spool

CONTENT = b"%PDF-1.4 test content"


def _pipeline(
    api: MagicMock, policy: DuplicatePolicy = DuplicatePolicy.SKIP
) -> UploadPipeline:
    return UploadPipeline(api, DuplicateDetector(api), duplicate_policy=policy)


@pytest.fixture
def folder(remote: FakeRemote) -> int:
    """Create a destination folder."""
    return remote.add_folder("Inbox")


@pytest.fixture
def existing(remote: FakeRemote, folder: int) -> str:
    """Store a file whose hash matches CONTENT uploaded to ``folder``."""
    key = dedup_key(partial_fingerprint(io.BytesIO(CONTENT)), folder)
    return remote.add_file("old.pdf", CONTENT, folder, hash=key)


class TestUpload:
    """Tests for a single upload."""

    def test_upload_to_root(self, remote: FakeRemote, mock_api: MagicMock) -> None:
        """Test files bound for the root need no relocation."""
        result = _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", 0)

        assert result.success
        assert result.state is UploadState.DONE
        assert result.file_name == "test.pdf"
        assert result.size == len(CONTENT)
        assert result.error is None
        assert remote.file_folder[result.file_code] == 0
        mock_api.set_file_folder.assert_not_called()

    def test_upload_to_folder(
        self, remote: FakeRemote, mock_api: MagicMock, folder: int
    ) -> None:
        """Test files are moved out of the root after upload."""
        result = _pipeline(mock_api).upload(
            io.BytesIO(CONTENT), "test.pdf", folder, cloud_path="Inbox/test.pdf"
        )

        assert result.success
        assert result.folder_id == folder
        assert result.cloud_path == "Inbox/test.pdf"
        assert remote.file_folder[result.file_code] == folder
        assert remote.data[result.file_code] == CONTENT
        mock_api.set_file_folder.assert_called_once_with(result.file_code, folder, cancel=None)

    def test_fingerprint_recorded(self, mock_api: MagicMock) -> None:
        """Test the result carries the content fingerprint."""
        result = _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", 0)

        assert result.fingerprint == partial_fingerprint(io.BytesIO(CONTENT))

    def test_call_order(self, mock_api: MagicMock, folder: int) -> None:
        """Test the duplicate check, session, transfer and relocation run in order."""
        _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", folder)

        names = [c[0] for c in mock_api.mock_calls]
        assert names == ["list_folder", "get_upload_session", "upload_file", "set_file_folder"]

    def test_relocation_failure_keeps_orphan(
        self, remote: FakeRemote, mock_api: MagicMock, folder: int
    ) -> None:
        """Test a failed relocation reports where the stored file is."""
        mock_api.set_file_folder.side_effect = ApiError("folder locked")

        with pytest.raises(RelocationError) as exc_info:
            _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", folder)

        error = exc_info.value
        assert error.folder_id == folder
        assert remote.file_folder[error.file_code] == 0
        assert "folder locked" in str(error)
        mock_api.delete_file.assert_not_called()

    def test_rejected_upload(self, mock_api: MagicMock, folder: int) -> None:
        """Test a refused file is not relocated."""
        mock_api.upload_file.side_effect = UploadRejectedError(
            "rejected", file_status="file too big"
        )

        with pytest.raises(UploadRejectedError) as exc_info:
            _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", folder)

        assert exc_info.value.file_status == "file too big"
        mock_api.set_file_folder.assert_not_called()

    def test_non_seekable_stream(self, remote: FakeRemote, mock_api: MagicMock) -> None:
        """Test pipes are spooled before fingerprinting."""
        with spool(NonSeekable(CONTENT)) as stream:
            result = _pipeline(mock_api).upload(stream, "pipe.bin", 0)

        assert result.success
        assert remote.data[result.file_code] == CONTENT
        assert result.size == len(CONTENT)

    def test_spool_keeps_seekable_stream(self) -> None:
        """Test seekable streams are used as they are."""
        stream = io.BytesIO(CONTENT)

        with spool(stream) as spooled:
            assert spooled is stream

        assert not stream.closed

    def test_spool_closes_temporary_file(self) -> None:
        """Test the copy of a non-seekable stream is closed on exit."""
        with spool(NonSeekable(CONTENT)) as spooled:
            assert spooled.seekable()
            assert spooled.read() == CONTENT

        assert spooled.closed


class TestDuplicatePolicy:
    """Tests for uploads of content already in the destination."""

    def test_skip(self, mock_api: MagicMock, folder: int, existing: str) -> None:
        """Test the default policy skips the upload."""
        result = _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", folder)

        assert result.state is UploadState.DUPLICATE
        assert result.duplicate
        assert not result.success
        assert result.file_code is None
        mock_api.get_upload_session.assert_not_called()

    def test_error(self, mock_api: MagicMock, folder: int, existing: str) -> None:
        """Test the error policy raises with the dedup key."""
        with pytest.raises(DuplicateFileError, match="already exists"):
            _pipeline(mock_api, DuplicatePolicy.ERROR).upload(
                io.BytesIO(CONTENT), "test.pdf", folder
            )

        mock_api.get_upload_session.assert_not_called()

    def test_proceed(
        self, remote: FakeRemote, mock_api: MagicMock, folder: int, existing: str
    ) -> None:
        """Test the proceed policy uploads a second copy."""
        result = _pipeline(mock_api, DuplicatePolicy.PROCEED).upload(
            io.BytesIO(CONTENT), "test.pdf", folder
        )

        assert result.success
        assert len(remote.files_in(folder)) == 2

    def test_name_does_not_matter(
        self, mock_api: MagicMock, folder: int, existing: str
    ) -> None:
        """Test a renamed copy of the same bytes is still a duplicate."""
        result = _pipeline(mock_api).upload(io.BytesIO(CONTENT), "renamed.pdf", folder)

        assert result.duplicate

    def test_other_folder_uploads(
        self, remote: FakeRemote, mock_api: MagicMock, existing: str
    ) -> None:
        """Test the same bytes bound for another folder are uploaded."""
        other = remote.add_folder("Other")

        result = _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", other)

        assert result.success


class TestCancellation:
    """Tests for cancelling uploads."""

    def test_cancelled_before_start(self, mock_api: MagicMock, folder: int) -> None:
        """Test a set event stops the upload before any transfer."""
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(OperationCancelledError):
            _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", folder, cancel=cancel)

        mock_api.upload_file.assert_not_called()

    def test_cancel_is_forwarded(self, mock_api: MagicMock, folder: int) -> None:
        """Test every remote call receives the cancel event."""
        cancel = threading.Event()

        _pipeline(mock_api).upload(io.BytesIO(CONTENT), "test.pdf", folder, cancel=cancel)

        for name, _args, kwargs in mock_api.mock_calls:
            assert kwargs.get("cancel") is cancel, name
