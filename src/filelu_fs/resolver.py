"""Resolution of virtual paths to FileLu folder ids."""

from __future__ import annotations

import logging
import threading

from filelu_fs._internal.api import FileLuAPI
from filelu_fs.exceptions import AmbiguousPathError, NotFoundError
from filelu_fs.models import ROOT_FOLDER_ID, AmbiguityPolicy
from filelu_fs.naming import Tagged, decode, is_folder_id, split_path

logger = logging.getLogger(__name__)


class PathResolver:
    """Walk a virtual path segment by segment down to a folder id.

    Segments carrying an embedded folder id (``"(17) reports"``) are adopted
    as-is. Any other segment costs one ``folder/list`` call on the current
    folder and must match a folder name exactly. Nothing is cached; every
    call sees the remote as it is now.
    """

    def __init__(
        self,
        api: FileLuAPI,
        *,
        ambiguity: AmbiguityPolicy = AmbiguityPolicy.FIRST,
    ) -> None:
        self._api = api
        self._ambiguity = ambiguity

    def resolve(
        self,
        path: str,
        *,
        start: int = ROOT_FOLDER_ID,
        cancel: threading.Event | None = None,
    ) -> int:
        """Return the folder id behind ``path``.

        Args:
            path: Slash-separated virtual path, relative to ``start``
            start: Folder id the walk begins at
            cancel: Optional event that aborts the walk

        Returns:
            The folder id of the last segment, or ``start`` for an empty path

        Raises:
            NotFoundError: If a segment has no matching folder
            AmbiguousPathError: If a segment matches several folders and the
                ambiguity policy is ``error``
        """
        stripped = path.strip("/")
        if is_folder_id(stripped):
            return int(stripped)

        current = start
        for part in split_path(path):
            segment = decode(part)
            if isinstance(segment, Tagged) and segment.folder_id is not None:
                current = segment.folder_id
                continue
            current = self.lookup(current, part, cancel=cancel)

        logger.debug(f"Resolved {path!r} to folder {current}")
        return current

    def lookup(
        self, parent_id: int, name: str, *, cancel: threading.Event | None = None
    ) -> int:
        """Find the folder literally named ``name`` directly inside ``parent_id``."""
        listing = self._api.list_folder(parent_id, cancel=cancel)
        matches = [folder.fld_id for folder in listing.folders if folder.name == name]
        if not matches:
            raise NotFoundError(f"Folder not found: {name!r} in folder {parent_id}")
        if len(matches) > 1:
            if self._ambiguity is AmbiguityPolicy.ERROR:
                raise AmbiguousPathError(
                    f"{len(matches)} folders named {name!r} in folder {parent_id}",
                    matches=matches,
                )
            logger.debug(f"{len(matches)} folders named {name!r}; using {matches[0]}")
        return matches[0]
