"""Pytest fixtures for filelu_fs tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from helpers import FakeRemote

from filelu_fs import FileLuClient


@pytest.fixture
def remote() -> FakeRemote:
    """Create an empty in-memory FileLu account."""
    return FakeRemote()


@pytest.fixture
def mock_api(remote: FakeRemote) -> MagicMock:
    """Create a mock FileLuAPI backed by the in-memory account."""
    return MagicMock(wraps=remote)


@pytest.fixture
def client(mock_api: MagicMock) -> FileLuClient:
    """Create a FileLuClient on top of the mock API."""
    return FileLuClient(api=mock_api)


@pytest.fixture
def temp_pdf(tmp_path: Path) -> Path:
    """Create a temporary PDF file for testing."""
    pdf_path = tmp_path / "test.pdf"
    pdf_path.write_bytes(b"%PDF-1.4 test content")
    return pdf_path


@pytest.fixture
def temp_txt(tmp_path: Path) -> Path:
    """Create a temporary text file for testing."""
    txt_path = tmp_path / "notes.txt"
    txt_path.write_bytes(b"some notes\n" * 300)
    return txt_path


@pytest.fixture
def photo_tree(remote: FakeRemote) -> dict[str, int]:
    """Create ``Pics/2019`` below the root and return the folder ids."""
    pics = remote.add_folder("Pics", 0, fld_id=3)
    year = remote.add_folder("2019", pics, fld_id=9)
    return {"Pics": pics, "2019": year}
