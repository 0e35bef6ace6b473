from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Iterable

from PySide6.QtCore import QObject, Signal

from core.overlay.file_index import IndexHook
from core.overlay.merge import MergeEngine, OverlayEntry
from core.overlay.virtual_store import (
    VirtualOverlayStore,
    is_root,
    name_of,
    normalize_path,
    parent_of,
)
from core.remote.client_base import RemoteClient
from core.remote.errors import NotFound, RemoteFsError, UnsupportedOperation

DEFAULT_VIRTUAL_PREFIXES = ("/.stubs", "/.vscode")


class FileType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"

    @property
    def is_directory(self) -> bool:
        return self is FileType.DIRECTORY


class FileChangeType(str, Enum):
    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


@dataclass(slots=True, frozen=True)
class FileChangeEvent:
    type: FileChangeType
    path: str


@dataclass(slots=True, frozen=True)
class FileStat:
    type: FileType
    size: int
    mtime: float
    ctime: float

    @property
    def is_directory(self) -> bool:
        return self.type.is_directory


class OverlayFileSystem(QObject):
    files_changed = Signal(object)

    def __init__(
        self,
        client: RemoteClient,
        overlay: VirtualOverlayStore | None = None,
        *,
        index_hook: IndexHook | None = None,
        virtual_prefixes: Iterable[str] = DEFAULT_VIRTUAL_PREFIXES,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__()
        self._client = client
        self._overlay = overlay if overlay is not None else VirtualOverlayStore()
        self._index_hook = index_hook
        self._virtual_prefixes = tuple(normalize_path(prefix) for prefix in virtual_prefixes)
        self._logger = logger or logging.getLogger("davoverlay.fs")
        self._merge = MergeEngine(client, self._overlay, logger=self._logger)

    @property
    def overlay(self) -> VirtualOverlayStore:
        return self._overlay

    def is_virtual_path(self, path: str) -> bool:
        normalized = normalize_path(path)
        return any(
            normalized == prefix or normalized.startswith(f"{prefix}/")
            for prefix in self._virtual_prefixes
        )

    async def stat(self, path: str) -> FileStat:
        if is_root(path):
            now = time.time()
            return FileStat(type=FileType.DIRECTORY, size=0, mtime=now, ctime=now)

        entry = await self._merge.resolve(path)
        if entry is None:
            self._logger.debug("stat: %s not found", path)
            raise NotFound(path=normalize_path(path))
        return self._to_stat(entry)

    async def read_directory(self, path: str) -> list[tuple[str, FileType]]:
        entries = await self._merge.list(path)
        return [(entry.name, self._file_type(entry.is_directory)) for entry in entries]

    async def read_file(self, path: str) -> bytes:
        virtual = self._overlay.get(path)
        if virtual is not None:
            self._logger.debug("Reading virtual file %s (%d bytes)", virtual.path, virtual.size)
            return virtual.content
        return await self._client.read_bytes(normalize_path(path))

    async def write_file(self, path: str, data: bytes) -> None:
        normalized = normalize_path(path)
        if self.is_virtual_path(normalized):
            self._overlay.put(normalized, data)
            self._logger.debug("Virtual file written %s (%d bytes)", normalized, len(data))
        else:
            await self._client.put(name_of(normalized), data, parent_of(normalized))
            self._logger.info("File written %s (%d bytes)", normalized, len(data))

        await self._notify_index("created", normalized, lambda hook: hook.on_created(normalized))
        self._emit(FileChangeEvent(FileChangeType.CHANGED, normalized))

    async def create_directory(self, path: str) -> None:
        normalized = normalize_path(path)
        if self.is_virtual_path(normalized):
            self._overlay.put(normalized, is_directory=True)
            self._logger.debug("Virtual directory created %s", normalized)
        else:
            await self._client.mkdir(name_of(normalized), parent_of(normalized))
            self._logger.info("Directory created %s", normalized)

        await self._notify_index("created", normalized, lambda hook: hook.on_created(normalized))
        self._emit(FileChangeEvent(FileChangeType.CREATED, normalized))

    async def delete(self, path: str) -> None:
        normalized = normalize_path(path)
        self._reject_virtual("delete", normalized)

        await self._client.remove(name_of(normalized), parent_of(normalized))
        self._logger.info("Deleted %s", normalized)

        await self._notify_index("deleted", normalized, lambda hook: hook.on_deleted(normalized))
        self._emit(FileChangeEvent(FileChangeType.DELETED, normalized))

    async def rename(self, old_path: str, new_path: str) -> None:
        old_normalized = normalize_path(old_path)
        new_normalized = normalize_path(new_path)
        self._reject_virtual("rename", old_normalized)
        self._reject_virtual("rename", new_normalized)
        if parent_of(old_normalized) != parent_of(new_normalized):
            raise UnsupportedOperation(
                "The remote service can only rename within one directory.",
                path=old_normalized,
            )

        await self._client.rename(name_of(old_normalized), name_of(new_normalized), parent_of(old_normalized))
        self._logger.info("Renamed %s -> %s", old_normalized, new_normalized)

        await self._notify_index(
            "renamed",
            old_normalized,
            lambda hook: hook.on_renamed(old_normalized, new_normalized),
        )
        self._emit(
            FileChangeEvent(FileChangeType.DELETED, old_normalized),
            FileChangeEvent(FileChangeType.CREATED, new_normalized),
        )

    async def create_virtual_file(self, path: str, data: bytes) -> None:
        entry = self._overlay.put(path, data)
        self._logger.debug("Created virtual file %s (%d bytes)", entry.path, entry.size)
        await self._notify_index("created", entry.path, lambda hook: hook.on_created(entry.path))
        self._emit(FileChangeEvent(FileChangeType.CREATED, entry.path))

    async def create_virtual_directory(self, path: str) -> None:
        entry = self._overlay.put(path, is_directory=True)
        self._logger.debug("Created virtual directory %s", entry.path)
        await self._notify_index("created", entry.path, lambda hook: hook.on_created(entry.path))
        self._emit(FileChangeEvent(FileChangeType.CREATED, entry.path))

    async def walk(self, path: str = "/") -> AsyncIterator[tuple[str, FileType]]:
        try:
            entries = await self._merge.list(path)
        except RemoteFsError as error:
            self._logger.warning("Skipping %s while walking: %s", normalize_path(path), error)
            return

        for entry in entries:
            yield entry.path, self._file_type(entry.is_directory)
            if entry.is_directory:
                async for item in self.walk(entry.path):
                    yield item

    async def index_all(self) -> int:
        count = 0
        async for item_path, _file_type in self.walk("/"):
            self._emit(FileChangeEvent(FileChangeType.CREATED, item_path))
            count += 1
        self._logger.info("Announced %d entries", count)
        return count

    def _reject_virtual(self, operation: str, path: str) -> None:
        if self._overlay.has(path) or self.is_virtual_path(path):
            raise UnsupportedOperation(f"Cannot {operation} virtual entry {path}.", path=path)

    async def _notify_index(
        self,
        action: str,
        path: str,
        call: Callable[[IndexHook], Awaitable[None]],
    ) -> None:
        if self._index_hook is None:
            return
        try:
            await call(self._index_hook)
        except Exception as error:
            self._logger.warning("Index hook failed on %s %s: %s", action, path, error)

    def _emit(self, *events: FileChangeEvent) -> None:
        self.files_changed.emit(list(events))

    def _to_stat(self, entry: OverlayEntry) -> FileStat:
        mtime = entry.mtime if entry.mtime is not None else time.time()
        return FileStat(
            type=self._file_type(entry.is_directory),
            size=0 if entry.is_directory else entry.size,
            mtime=mtime,
            ctime=mtime,
        )

    def _file_type(self, is_directory: bool) -> FileType:
        return FileType.DIRECTORY if is_directory else FileType.FILE
