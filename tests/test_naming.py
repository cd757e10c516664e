"""Tests for path segment encoding and decoding."""

from __future__ import annotations

import pytest

from filelu_fs.models import EntryKind
from filelu_fs.naming import (
    Plain,
    Tagged,
    decode,
    encode,
    is_file_code,
    is_folder_id,
    join_path,
    plain_name,
    split_path,
)


class TestEncode:
    """Tests for rendering names with identifiers."""

    def test_encode_folder(self) -> None:
        """Test a folder segment carries its numeric id."""
        assert encode("Pics", 3, EntryKind.FOLDER) == "(3) Pics"

    def test_encode_folder_from_string_id(self) -> None:
        """Test folder ids are normalized to plain integers."""
        assert encode("Pics", "003", EntryKind.FOLDER) == "(3) Pics"

    def test_encode_file(self) -> None:
        """Test a file segment carries its file code."""
        assert encode("a.txt", "abc123def456", EntryKind.FILE) == "(abc123def456) a.txt"


class TestDecode:
    """Tests for parsing segments."""

    def test_decode_folder(self) -> None:
        """Test a numeric identifier decodes to a folder id."""
        segment = decode("(3) Pics")
        assert segment == Tagged(name="Pics", ident="3")
        assert segment.folder_id == 3
        assert segment.file_code is None

    def test_decode_file(self) -> None:
        """Test a file-code identifier decodes to a file code."""
        segment = decode("(abc123def456) a.txt")
        assert isinstance(segment, Tagged)
        assert segment.name == "a.txt"
        assert segment.file_code == "abc123def456"
        assert segment.folder_id is None

    def test_decode_plain_name(self) -> None:
        """Test a name without identifier stays plain."""
        assert decode("Documents") == Plain("Documents")

    def test_decode_trailing_parentheses(self) -> None:
        """Test parentheses that do not start the segment are part of the name."""
        assert decode("holiday (2019)") == Plain("holiday (2019)")

    @pytest.mark.parametrize(
        "segment",
        ["(hello) x", "(ABC123DEF456) x", "(abc) x", "(abc123def4567) x", "() x"],
    )
    def test_decode_unrecognized_identifier(self, segment: str) -> None:
        """Test anything that is neither a folder id nor a file code is plain."""
        assert decode(segment) == Plain(segment)

    def test_decode_name_with_parentheses(self) -> None:
        """Test names containing parentheses survive encoding."""
        segment = decode(encode("report (final) v2", 5))
        assert segment == Tagged(name="report (final) v2", ident="5")

    def test_decode_without_space(self) -> None:
        """Test the space after the identifier is optional."""
        assert decode("(3)Pics") == Tagged(name="Pics", ident="3")

    def test_twelve_digit_ident_is_both(self) -> None:
        """Test a 12-digit identifier fits both identifier shapes."""
        segment = decode("(123456789012) x")
        assert isinstance(segment, Tagged)
        assert segment.folder_id == 123456789012
        assert segment.file_code == "123456789012"

    def test_plain_name(self) -> None:
        """Test the human-readable part is extracted from either variant."""
        assert plain_name("(3) Pics") == "Pics"
        assert plain_name("Pics") == "Pics"


class TestIdentifiers:
    """Tests for identifier shape checks."""

    def test_is_file_code(self) -> None:
        assert is_file_code("abc123def456")
        assert not is_file_code("abc123def45")
        assert not is_file_code("abc123-ef456")
        assert not is_file_code("ABC123DEF456")

    def test_is_folder_id(self) -> None:
        assert is_folder_id("0")
        assert is_folder_id("42")
        assert not is_folder_id("-1")
        assert not is_folder_id("4a")
        assert not is_folder_id("")


class TestPaths:
    """Tests for splitting and joining virtual paths."""

    def test_split_path_drops_empty_segments(self) -> None:
        assert split_path("/a//b/") == ["a", "b"]
        assert split_path("") == []

    def test_join_path(self) -> None:
        assert join_path("a/", "/b", "", "c") == "a/b/c"
        assert join_path("", "") == ""
