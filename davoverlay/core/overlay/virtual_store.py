from __future__ import annotations

import time
from dataclasses import dataclass


def normalize_path(path: str) -> str:
    return "/" + "/".join(part for part in path.strip().split("/") if part)


def normalize_dir(path: str) -> str:
    return "/".join(part for part in path.strip().split("/") if part)


def parent_of(path: str) -> str:
    head, _separator, _tail = path.rpartition("/")
    return head.lstrip("/")


def name_of(path: str) -> str:
    return path.rpartition("/")[2]


def is_root(path: str) -> bool:
    return normalize_dir(path) == ""


@dataclass(slots=True, frozen=True)
class VirtualEntry:
    path: str
    content: bytes
    is_directory: bool
    mtime: float

    @property
    def name(self) -> str:
        return name_of(self.path)

    @property
    def size(self) -> int:
        return 0 if self.is_directory else len(self.content)


class VirtualOverlayStore:
    def __init__(self) -> None:
        self._entries: dict[str, VirtualEntry] = {}

    def put(self, path: str, content: bytes = b"", is_directory: bool = False) -> VirtualEntry:
        key = normalize_path(path)
        mtime = time.time()
        previous = self._entries.get(key)
        if previous is not None and previous.mtime > mtime:
            mtime = previous.mtime

        entry = VirtualEntry(
            path=key,
            content=b"" if is_directory else bytes(content),
            is_directory=is_directory,
            mtime=mtime,
        )
        self._entries[key] = entry
        return entry

    def get(self, path: str) -> VirtualEntry | None:
        return self._entries.get(normalize_path(path))

    def has(self, path: str) -> bool:
        return normalize_path(path) in self._entries

    def children(self, dir_path: str) -> list[VirtualEntry]:
        target = normalize_dir(dir_path)
        return [entry for entry in self._entries.values() if parent_of(entry.path) == target]

    def __len__(self) -> int:
        return len(self._entries)
