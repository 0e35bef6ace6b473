from __future__ import annotations

import fnmatch
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from core.overlay.virtual_store import name_of, normalize_path, parent_of
from core.profiles.models import Credentials
from core.remote.errors import RemoteFsError

if TYPE_CHECKING:
    from core.overlay.filesystem import OverlayFileSystem


class IndexHook(Protocol):
    async def on_created(self, path: str) -> None: ...

    async def on_deleted(self, path: str) -> None: ...

    async def on_renamed(self, old_path: str, new_path: str) -> None: ...


@dataclass(slots=True)
class IndexedFile:
    path: str
    name: str
    is_directory: bool
    modified: float


class FileIndex:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("davoverlay.index")
        self._entries: dict[str, IndexedFile] = {}
        self._credentials: Credentials | None = None
        self._filesystem: OverlayFileSystem | None = None

    def set_credentials(self, credentials: Credentials | None) -> None:
        if credentials != self._credentials:
            self.clear()
        self._credentials = credentials

    def bind(self, filesystem: OverlayFileSystem | None) -> None:
        self._filesystem = filesystem

    def clear(self) -> None:
        self._entries.clear()

    def add(self, path: str, is_directory: bool, modified: float | None = None) -> None:
        key = normalize_path(path)
        self._entries[key] = IndexedFile(
            path=key,
            name=name_of(key),
            is_directory=is_directory,
            modified=modified if modified is not None else time.time(),
        )

        parent = parent_of(key)
        while parent:
            parent_key = normalize_path(parent)
            if parent_key in self._entries:
                break
            self._entries[parent_key] = IndexedFile(
                path=parent_key,
                name=name_of(parent_key),
                is_directory=True,
                modified=time.time(),
            )
            parent = parent_of(parent_key)

    async def on_created(self, path: str) -> None:
        if self._filesystem is None:
            self.add(path, is_directory=False)
            return

        try:
            stat = await self._filesystem.stat(path)
        except RemoteFsError as error:
            self._logger.debug("Skipping index update for %s: %s", path, error)
            return
        self.add(path, is_directory=stat.is_directory, modified=stat.mtime)

    async def on_deleted(self, path: str) -> None:
        key = normalize_path(path)
        removed = self._entries.pop(key, None)
        if removed is None:
            return

        prefix = f"{key}/"
        for child in [candidate for candidate in self._entries if candidate.startswith(prefix)]:
            del self._entries[child]

    async def on_renamed(self, old_path: str, new_path: str) -> None:
        old_key = normalize_path(old_path)
        new_key = normalize_path(new_path)
        if old_key not in self._entries:
            return

        old_prefix = f"{old_key}/"
        moved = {
            key: entry
            for key, entry in self._entries.items()
            if key == old_key or key.startswith(old_prefix)
        }
        for key in moved:
            del self._entries[key]

        for key, entry in moved.items():
            target = new_key + key[len(old_key):]
            self.add(target, is_directory=entry.is_directory, modified=entry.modified)

    async def rebuild(self) -> int:
        self.clear()
        if self._filesystem is None:
            return 0

        async for path, file_type in self._filesystem.walk("/"):
            self.add(path, is_directory=file_type.is_directory)
        counts = self.stats()
        self._logger.info(
            "Index rebuilt with %d files and %d directories",
            counts["files"],
            counts["directories"],
        )
        return len(self._entries)

    def search(self, pattern: str, include_directories: bool = False) -> list[str]:
        needle = pattern.strip().lower()
        has_wildcard = any(char in needle for char in "*?[")

        results: list[str] = []
        for path, entry in self._entries.items():
            if entry.is_directory and not include_directories:
                continue
            name = entry.name.lower()
            matched = fnmatch.fnmatchcase(name, needle) if has_wildcard else needle in name
            if matched:
                results.append(path)
        return sorted(results)

    def get(self, path: str) -> IndexedFile | None:
        return self._entries.get(normalize_path(path))

    def stats(self) -> dict[str, int]:
        directories = sum(1 for entry in self._entries.values() if entry.is_directory)
        return {
            "files": len(self._entries) - directories,
            "directories": directories,
            "total": len(self._entries),
        }

    def __len__(self) -> int:
        return len(self._entries)
