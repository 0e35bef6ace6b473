from __future__ import annotations

import asyncio
import logging

import pytest

from core.overlay.file_index import FileIndex
from core.overlay.filesystem import OverlayFileSystem
from core.profiles.models import Credentials


def test_add_registers_missing_parents() -> None:
    index = FileIndex()
    index.add("/src/pkg/mod.py", is_directory=False)

    assert index.get("/src").is_directory  # type: ignore[union-attr]
    assert index.get("/src/pkg").is_directory  # type: ignore[union-attr]
    assert index.stats() == {"files": 1, "directories": 2, "total": 3}


def test_search_by_substring_and_wildcard() -> None:
    index = FileIndex()
    for path in ("/src/main.py", "/src/util.py", "/docs/readme.md"):
        index.add(path, is_directory=False)

    assert index.search("util") == ["/src/util.py"]
    assert index.search("*.py") == ["/src/main.py", "/src/util.py"]
    assert index.search("src", include_directories=True) == ["/src"]


def test_delete_removes_subtree() -> None:
    index = FileIndex()
    index.add("/src/pkg/mod.py", is_directory=False)
    index.add("/srcfile.txt", is_directory=False)

    asyncio.run(index.on_deleted("/src"))

    assert index.search("*", include_directories=True) == ["/srcfile.txt"]


def test_rename_moves_subtree() -> None:
    index = FileIndex()
    index.add("/old/a.txt", is_directory=False)

    asyncio.run(index.on_renamed("/old", "/new"))

    assert index.get("/old") is None
    assert index.get("/new/a.txt") is not None


def test_credentials_change_clears_entries(credentials: Credentials) -> None:
    index = FileIndex()
    index.set_credentials(credentials)
    index.add("/a.txt", is_directory=False)

    index.set_credentials(credentials)
    assert len(index) == 1

    index.set_credentials(credentials.with_project("other"))
    assert len(index) == 0


def test_created_entries_are_stat_ed_through_bound_filesystem(remote_client) -> None:
    remote_client.directories.add("assets")
    index = FileIndex()
    index.bind(OverlayFileSystem(remote_client))

    asyncio.run(index.on_created("/assets"))
    asyncio.run(index.on_created("/vanished.txt"))

    assert index.get("/assets").is_directory  # type: ignore[union-attr]
    assert index.get("/vanished.txt") is None


def test_rebuild_walks_filesystem(remote_client, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="davoverlay.index")
    remote_client.directories.add("src")
    remote_client.files["src/a.py"] = b""
    index = FileIndex()
    index.bind(OverlayFileSystem(remote_client))

    assert asyncio.run(index.rebuild()) == 2
    assert index.search("a.py") == ["/src/a.py"]
    assert "Index rebuilt with 1 files and 1 directories" in caplog.text
