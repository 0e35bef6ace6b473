from __future__ import annotations

import asyncio

import pytest

from core.overlay.merge import EntrySource, MergeEngine, parse_modified, parse_size
from core.overlay.virtual_store import VirtualOverlayStore
from core.remote.errors import NotFound


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("12", 12), ("12 bytes", 12), ("1.5 KB", 1536), ("2 MiB", 2 * 1024**2), ("", 0), ("-", 0)],
)
def test_parse_size(raw: str, expected: int) -> None:
    assert parse_size(raw) == expected


def test_parse_modified() -> None:
    assert parse_modified("2024-01-02 03:04:05") is not None
    assert parse_modified("Tue, 02 Jan 2024 03:04:05 GMT") is not None
    assert parse_modified("") is None
    assert parse_modified("yesterday-ish") is None


def test_listing_prefers_remote_on_name_collision(remote_client) -> None:
    remote_client.directories.add("docs")
    remote_client.files["docs/a.txt"] = b"remote"
    overlay = VirtualOverlayStore()
    overlay.put("/docs/a.txt", b"virtual content")
    overlay.put("/docs/extra.txt", b"only here")

    entries = asyncio.run(MergeEngine(remote_client, overlay).list("/docs"))

    assert [(entry.name, entry.source) for entry in entries] == [
        ("a.txt", EntrySource.REMOTE),
        ("extra.txt", EntrySource.VIRTUAL),
    ]


def test_resolve_prefers_virtual_entry(remote_client) -> None:
    remote_client.files["a.txt"] = b"remote"
    overlay = VirtualOverlayStore()
    overlay.put("/a.txt", b"virtual content")

    entry = asyncio.run(MergeEngine(remote_client, overlay).resolve("/a.txt"))

    assert entry is not None
    assert entry.source is EntrySource.VIRTUAL
    assert entry.size == len(b"virtual content")


def test_resolve_missing_returns_none(remote_client) -> None:
    assert asyncio.run(MergeEngine(remote_client, VirtualOverlayStore()).resolve("/nope.txt")) is None


def test_virtual_only_directory_lists_without_remote(remote_client) -> None:
    overlay = VirtualOverlayStore()
    overlay.put("/.stubs/api.pyi", b"def f(): ...")

    entries = asyncio.run(MergeEngine(remote_client, overlay).list(".stubs"))

    assert [entry.path for entry in entries] == ["/.stubs/api.pyi"]


def test_missing_remote_directory_propagates(remote_client) -> None:
    with pytest.raises(NotFound):
        asyncio.run(MergeEngine(remote_client, VirtualOverlayStore()).list("/ghost"))
