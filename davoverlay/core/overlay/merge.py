"""Combines the remote listing with the in-memory overlay.

Point lookups prefer the overlay, listings prefer the remote copy. The overlay
holds content the server does not know about yet, but a listing must not show
the same name twice.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from enum import Enum

from core.overlay.virtual_store import (
    VirtualEntry,
    VirtualOverlayStore,
    name_of,
    normalize_dir,
    normalize_path,
    parent_of,
)
from core.remote.client_base import RemoteClient, RemoteEntry
from core.remote.errors import NotFound

_SIZE_RE = re.compile(r"^\s*([0-9]+(?:[.,][0-9]+)?)\s*([KMGT]?i?B|bytes?)?\s*$", re.IGNORECASE)
_SIZE_FACTORS = {"k": 1024, "m": 1024**2, "g": 1024**3, "t": 1024**4}
_MODIFIED_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%d-%b-%Y %H:%M", "%d.%m.%Y %H:%M:%S")


class EntrySource(str, Enum):
    REMOTE = "remote"
    VIRTUAL = "virtual"


@dataclass(slots=True, frozen=True)
class OverlayEntry:
    name: str
    path: str
    is_directory: bool
    size: int
    mtime: float | None
    source: EntrySource


def parse_size(raw: str) -> int:
    match = _SIZE_RE.match(raw)
    if match is None:
        return 0

    number = float(match.group(1).replace(",", "."))
    unit = (match.group(2) or "").lower()
    return int(number * _SIZE_FACTORS.get(unit[:1], 1))


def parse_modified(raw: str) -> float | None:
    cleaned = raw.strip()
    if not cleaned:
        return None

    for fmt in _MODIFIED_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).timestamp()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(cleaned.replace("Z", "+00:00")).timestamp()
    except ValueError:
        pass

    try:
        return parsedate_to_datetime(cleaned).timestamp()
    except (TypeError, ValueError, IndexError):
        return None


def from_remote(entry: RemoteEntry, dir_path: str) -> OverlayEntry:
    return OverlayEntry(
        name=entry.name,
        path=normalize_path(f"{dir_path}/{entry.name}"),
        is_directory=entry.is_directory,
        size=0 if entry.is_directory else parse_size(entry.size),
        mtime=parse_modified(entry.modified),
        source=EntrySource.REMOTE,
    )


def from_virtual(entry: VirtualEntry) -> OverlayEntry:
    return OverlayEntry(
        name=entry.name,
        path=entry.path,
        is_directory=entry.is_directory,
        size=entry.size,
        mtime=entry.mtime,
        source=EntrySource.VIRTUAL,
    )


class MergeEngine:
    def __init__(
        self,
        client: RemoteClient,
        overlay: VirtualOverlayStore,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._overlay = overlay
        self._logger = logger or logging.getLogger("davoverlay.overlay")

    async def list(self, dir_path: str) -> list[OverlayEntry]:
        target = normalize_dir(dir_path)
        virtual_children = self._overlay.children(target)

        try:
            remote_entries = await self._client.list_dir(target)
        except NotFound:
            if not virtual_children and not self._overlay.has(target):
                raise
            self._logger.debug("Directory %s exists only in the overlay", target or "/")
            remote_entries = []

        merged = [from_remote(entry, target) for entry in remote_entries]
        remote_names = {entry.name for entry in merged}
        for child in virtual_children:
            if child.name in remote_names:
                continue
            merged.append(from_virtual(child))
        return merged

    async def resolve(self, path: str) -> OverlayEntry | None:
        virtual = self._overlay.get(path)
        if virtual is not None:
            return from_virtual(virtual)

        name = name_of(normalize_path(path))
        for entry in await self.list(parent_of(normalize_path(path))):
            if entry.name == name:
                return entry
        return None
