from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from core.profiles.models import Credentials


@dataclass(slots=True, frozen=True)
class RemoteEntry:
    name: str
    type_label: str
    size: str
    modified: str
    href: str
    is_directory: bool


class RemoteClient(Protocol):
    async def probe(self, credentials: Credentials | None = None) -> bool: ...

    async def list_dir(self, remote_path: str) -> list[RemoteEntry]: ...

    async def list_projects(self) -> list[RemoteEntry]: ...

    async def read_bytes(self, remote_path: str) -> bytes: ...

    async def mkdir(self, name: str, parent_path: str) -> None: ...

    async def put(self, name: str, data: bytes, parent_path: str) -> None: ...

    async def remove(self, name: str, parent_path: str) -> None: ...

    async def rename(self, old_name: str, new_name: str, parent_path: str) -> None: ...
