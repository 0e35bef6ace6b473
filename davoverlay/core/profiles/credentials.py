from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

import keyring
import keyring.errors

from core.paths import get_credentials_path
from core.profiles.models import Credentials

CREDENTIALS_KEY = "connection-credentials"


class CredentialStoreError(RuntimeError):
    pass


class CredentialStore(Protocol):
    name: str

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class KeyringCredentialStore:
    name = "keyring"
    _SERVICE_NAME = "davoverlay"

    def read(self, key: str) -> str | None:
        try:
            return keyring.get_password(self._SERVICE_NAME, key)
        except keyring.errors.KeyringError as error:
            raise CredentialStoreError(str(error)) from error

    def write(self, key: str, value: str) -> None:
        try:
            keyring.set_password(self._SERVICE_NAME, key, value)
        except keyring.errors.KeyringError as error:
            raise CredentialStoreError(str(error)) from error

    def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self._SERVICE_NAME, key)
        except keyring.errors.PasswordDeleteError:
            pass
        except keyring.errors.KeyringError as error:
            raise CredentialStoreError(str(error)) from error


class FileCredentialStore:
    name = "file"

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or get_credentials_path()

    def read(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def write(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)

    def _load(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        try:
            loaded = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}
        except OSError as error:
            raise CredentialStoreError(str(error)) from error
        return loaded if isinstance(loaded, dict) else {}

    def _save(self, data: dict[str, object]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as error:
            raise CredentialStoreError(str(error)) from error


class CredentialService:
    """Keeps one credentials record mirrored across a secure and a fallback store.

    When the stores disagree the secure store wins; records are never merged.
    """

    def __init__(
        self,
        secure_store: CredentialStore,
        fallback_store: CredentialStore,
        logger: logging.Logger | None = None,
        key: str = CREDENTIALS_KEY,
    ) -> None:
        self._secure_store = secure_store
        self._fallback_store = fallback_store
        self._logger = logger or logging.getLogger("davoverlay.credentials")
        self._key = key

    def store(self, credentials: Credentials) -> None:
        payload = self._encode(credentials)
        for store in (self._secure_store, self._fallback_store):
            self._write(store, payload)

    def reconcile(self) -> Credentials | None:
        secure = self._read(self._secure_store)
        fallback = self._read(self._fallback_store)

        if secure is not None and fallback is None:
            self._write(self._fallback_store, self._encode(secure))
            self._logger.info("Synced credentials from %s to %s", self._secure_store.name, self._fallback_store.name)
            return secure
        if secure is None and fallback is not None:
            self._write(self._secure_store, self._encode(fallback))
            self._logger.info("Synced credentials from %s to %s", self._fallback_store.name, self._secure_store.name)
            return fallback
        if secure is not None:
            return secure

        self._logger.info("No stored credentials found")
        return None

    def clear(self) -> None:
        for store in (self._secure_store, self._fallback_store):
            try:
                store.delete(self._key)
            except CredentialStoreError as error:
                self._logger.warning("Failed to clear credentials from %s: %s", store.name, error)

    def _read(self, store: CredentialStore) -> Credentials | None:
        try:
            raw = store.read(self._key)
        except CredentialStoreError as error:
            self._logger.warning("Failed to read credentials from %s: %s", store.name, error)
            return None
        if not raw:
            return None

        try:
            loaded = json.loads(raw)
            if not isinstance(loaded, dict):
                raise ValueError("credentials record is not an object")
            return Credentials.from_dict(loaded)
        except ValueError as error:
            self._logger.warning("Ignoring unreadable credentials in %s: %s", store.name, error)
            return None

    def _write(self, store: CredentialStore, payload: str) -> None:
        try:
            store.write(self._key, payload)
        except CredentialStoreError as error:
            self._logger.warning("Failed to store credentials in %s: %s", store.name, error)

    def _encode(self, credentials: Credentials) -> str:
        return json.dumps(credentials.to_dict(), ensure_ascii=False)
