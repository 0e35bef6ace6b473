from __future__ import annotations

from pathlib import Path

import pytest

from core.config import AppConfig
from core.overlay.virtual_store import name_of, normalize_dir, parent_of
from core.profiles.credentials import CredentialService, CredentialStoreError
from core.profiles.models import Credentials
from core.remote.client_base import RemoteEntry
from core.remote.errors import NotFound


class FakeRemoteClient:
    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.directories: set[str] = {""}
        self.projects: list[str] = []
        self.probe_result: bool | Exception = True
        self.calls: list[str] = []

    async def probe(self, credentials: Credentials | None = None) -> bool:
        self.calls.append("probe")
        if isinstance(self.probe_result, Exception):
            raise self.probe_result
        return self.probe_result

    async def list_dir(self, remote_path: str) -> list[RemoteEntry]:
        self.calls.append(f"list_dir:{remote_path}")
        target = normalize_dir(remote_path)
        if target not in self.directories:
            raise NotFound(path=remote_path)

        entries = [
            RemoteEntry(name_of(path), "Collection", "", "", f"{name_of(path)}/", True)
            for path in sorted(self.directories)
            if path and parent_of(path) == target
        ]
        entries.extend(
            RemoteEntry(name_of(path), "File", str(len(data)), "2024-01-02 03:04:05", name_of(path), False)
            for path, data in self.files.items()
            if parent_of(path) == target
        )
        return entries

    async def list_projects(self) -> list[RemoteEntry]:
        return [RemoteEntry(name, "Collection", "", "", f"{name}/", True) for name in self.projects]

    async def read_bytes(self, remote_path: str) -> bytes:
        key = normalize_dir(remote_path)
        if key not in self.files:
            raise NotFound(path=remote_path)
        return self.files[key]

    async def mkdir(self, name: str, parent_path: str) -> None:
        self.directories.add(self._join(parent_path, name))

    async def put(self, name: str, data: bytes, parent_path: str) -> None:
        self.files[self._join(parent_path, name)] = bytes(data)

    async def remove(self, name: str, parent_path: str) -> None:
        key = self._join(parent_path, name)
        self.files.pop(key, None)
        self.directories.discard(key)

    async def rename(self, old_name: str, new_name: str, parent_path: str) -> None:
        old_key = self._join(parent_path, old_name)
        new_key = self._join(parent_path, new_name)
        if old_key in self.files:
            self.files[new_key] = self.files.pop(old_key)
        elif old_key in self.directories:
            self.directories.discard(old_key)
            self.directories.add(new_key)

    def _join(self, parent_path: str, name: str) -> str:
        parent = normalize_dir(parent_path)
        return f"{parent}/{name}" if parent else name


class MemoryCredentialStore:
    def __init__(self, name: str) -> None:
        self.name = name
        self.values: dict[str, str] = {}
        self.writes = 0
        self.broken = False

    def read(self, key: str) -> str | None:
        if self.broken:
            raise CredentialStoreError(f"{self.name} is locked")
        return self.values.get(key)

    def write(self, key: str, value: str) -> None:
        if self.broken:
            raise CredentialStoreError(f"{self.name} is locked")
        self.writes += 1
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("DAVOVERLAY_HOME", str(home))
    return home


@pytest.fixture
def remote_client() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture
def secure_store() -> MemoryCredentialStore:
    return MemoryCredentialStore("secure")


@pytest.fixture
def fallback_store() -> MemoryCredentialStore:
    return MemoryCredentialStore("fallback")


@pytest.fixture
def credential_service(
    secure_store: MemoryCredentialStore,
    fallback_store: MemoryCredentialStore,
) -> CredentialService:
    return CredentialService(secure_store, fallback_store)


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(tmp_path / "config.json")


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(base_url="https://dav.example.com", username="alice", password="s3cret", project="demo")
