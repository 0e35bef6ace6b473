from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.profiles.credentials import CREDENTIALS_KEY, CredentialService, FileCredentialStore
from core.profiles.models import ConnectionProtocol, Credentials


def _encoded(credentials: Credentials) -> str:
    return json.dumps(credentials.to_dict())


def test_store_writes_both_stores(credential_service: CredentialService, secure_store, fallback_store, credentials: Credentials) -> None:
    credential_service.store(credentials)

    assert json.loads(secure_store.values[CREDENTIALS_KEY])["project"] == "demo"
    assert secure_store.values == fallback_store.values


def test_reconcile_copies_secure_to_fallback(credential_service: CredentialService, secure_store, fallback_store, credentials: Credentials) -> None:
    secure_store.values[CREDENTIALS_KEY] = _encoded(credentials)

    assert credential_service.reconcile() == credentials
    assert fallback_store.values[CREDENTIALS_KEY] == secure_store.values[CREDENTIALS_KEY]


def test_reconcile_copies_fallback_to_secure(credential_service: CredentialService, secure_store, fallback_store, credentials: Credentials) -> None:
    fallback_store.values[CREDENTIALS_KEY] = _encoded(credentials)

    assert credential_service.reconcile() == credentials
    assert secure_store.values[CREDENTIALS_KEY] == fallback_store.values[CREDENTIALS_KEY]


def test_reconcile_prefers_secure_without_writing(credential_service: CredentialService, secure_store, fallback_store, credentials: Credentials) -> None:
    secure_store.values[CREDENTIALS_KEY] = _encoded(credentials)
    fallback_store.values[CREDENTIALS_KEY] = _encoded(credentials.with_project("stale"))

    assert credential_service.reconcile() == credentials
    assert secure_store.writes == 0
    assert fallback_store.writes == 0


def test_reconcile_with_nothing_stored(credential_service: CredentialService) -> None:
    assert credential_service.reconcile() is None


def test_unreadable_record_is_treated_as_absent(credential_service: CredentialService, secure_store, fallback_store, credentials: Credentials) -> None:
    secure_store.values[CREDENTIALS_KEY] = "{not json"
    fallback_store.values[CREDENTIALS_KEY] = _encoded(credentials)

    assert credential_service.reconcile() == credentials
    assert json.loads(secure_store.values[CREDENTIALS_KEY])["username"] == "alice"


def test_broken_store_does_not_break_reconcile(credential_service: CredentialService, secure_store, fallback_store, credentials: Credentials) -> None:
    fallback_store.values[CREDENTIALS_KEY] = _encoded(credentials)
    secure_store.broken = True

    assert credential_service.reconcile() == credentials


def test_clear_removes_both(credential_service: CredentialService, secure_store, fallback_store, credentials: Credentials) -> None:
    credential_service.store(credentials)
    credential_service.clear()

    assert secure_store.values == {}
    assert fallback_store.values == {}


def test_file_store_persists_json(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "credentials.json"
    store = FileCredentialStore(path)

    store.write("k", "v")
    assert FileCredentialStore(path).read("k") == "v"

    store.delete("k")
    assert store.read("k") is None


def test_file_store_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text("][", encoding="utf-8")

    assert FileCredentialStore(path).read("k") is None


def test_credentials_dict_round_trip(credentials: Credentials) -> None:
    webdav = Credentials("https://h", "u", "p", protocol=ConnectionProtocol.WEBDAV)

    assert Credentials.from_dict(credentials.to_dict()) == credentials
    assert Credentials.from_dict(webdav.to_dict()).protocol is ConnectionProtocol.WEBDAV


def test_credentials_from_incomplete_dict_raises() -> None:
    with pytest.raises(ValueError):
        Credentials.from_dict({"username": "u", "password": "p"})


def test_protocol_parse_defaults_to_http() -> None:
    assert ConnectionProtocol.parse("WebDAV") is ConnectionProtocol.WEBDAV
    assert ConnectionProtocol.parse(None) is ConnectionProtocol.HTTP
