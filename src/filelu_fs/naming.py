"""Encoding of remote identifiers into path segments.

FileLu has no paths, only folder ids and file codes. Listings render each
entry as ``"(<id>) <name>"`` so that the segment can be handed back later and
resolved without another lookup::

    >>> encode("Pics", 3, EntryKind.FOLDER)
    '(3) Pics'
    >>> decode("(abc123def456) a.txt")
    Tagged(name='a.txt', ident='abc123def456')
    >>> decode("holiday (2019)")
    Plain(name='holiday (2019)')
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from filelu_fs.models import EntryKind

FILE_CODE_LENGTH = 12

_FILE_CODE_RE = re.compile(r"[a-z0-9]{%d}" % FILE_CODE_LENGTH)
_FOLDER_ID_RE = re.compile(r"[0-9]+")
# Anchored on the first balanced pair at the start of the segment, so names
# that contain parentheses themselves survive a round trip.
_TAGGED_RE = re.compile(r"\(([^()]*)\)\s*(.*)", re.DOTALL)


def is_file_code(value: str) -> bool:
    """Check whether ``value`` has the shape of a file code."""
    return _FILE_CODE_RE.fullmatch(value) is not None


def is_folder_id(value: str) -> bool:
    """Check whether ``value`` is a plain decimal folder id."""
    return _FOLDER_ID_RE.fullmatch(value) is not None


@dataclass(frozen=True)
class Plain:
    """A segment carrying only a human-readable name."""

    name: str


@dataclass(frozen=True)
class Tagged:
    """A segment carrying a name and the remote identifier of the entry."""

    name: str
    ident: str

    @property
    def folder_id(self) -> int | None:
        if is_folder_id(self.ident):
            return int(self.ident)
        return None

    @property
    def file_code(self) -> str | None:
        if is_file_code(self.ident):
            return self.ident
        return None


Segment = Plain | Tagged


def encode(name: str, ident: int | str, kind: EntryKind = EntryKind.FOLDER) -> str:
    """Render a name and its remote identifier as one path segment."""
    if kind is EntryKind.FOLDER:
        ident = int(ident)
    return f"({ident}) {name}"


def decode(segment: str) -> Segment:
    """Split a path segment into its name and embedded identifier, if any."""
    match = _TAGGED_RE.fullmatch(segment)
    if match is None:
        return Plain(segment)
    ident, name = match.groups()
    if not (is_folder_id(ident) or is_file_code(ident)):
        return Plain(segment)
    return Tagged(name=name, ident=ident)


def split_path(path: str) -> list[str]:
    """Split a virtual path into its non-empty segments."""
    return [part for part in path.split("/") if part]


def join_path(*parts: str) -> str:
    """Join virtual path fragments with single slashes, without a leading one."""
    segments: list[str] = []
    for part in parts:
        segments.extend(split_path(part))
    return "/".join(segments)


def plain_name(segment: str) -> str:
    """Return the human-readable name of a segment."""
    return decode(segment).name
