from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from app import build_parser, run_command
from core.connection.manager import ConnectionManager
from core.profiles.credentials import CREDENTIALS_KEY


@pytest.fixture
def manager(credential_service, app_config, remote_client) -> ConnectionManager:
    return ConnectionManager(credential_service, app_config, client_factory=lambda credentials: remote_client)


def test_parser_accepts_connect_options() -> None:
    args = build_parser().parse_args(["connect", "https://h", "alice", "--password", "pw", "--project", "demo"])

    assert (args.command, args.url, args.username, args.password, args.project) == (
        "connect",
        "https://h",
        "alice",
        "pw",
        "demo",
    )
    assert args.protocol == "http"


def test_commands_need_a_session(manager: ConnectionManager, capsys: pytest.CaptureFixture[str]) -> None:
    code = asyncio.run(run_command(build_parser().parse_args(["ls"]), manager))

    assert code == 1
    assert "Not connected" in capsys.readouterr().err


def test_connect_then_ls(manager: ConnectionManager, remote_client, secure_store, capsys: pytest.CaptureFixture[str]) -> None:
    remote_client.directories.add("src")
    remote_client.files["README.md"] = b"# hi"
    parser = build_parser()

    assert asyncio.run(run_command(parser.parse_args(["connect", "https://h", "alice", "--password", "pw"]), manager)) == 0
    assert CREDENTIALS_KEY in secure_store.values

    assert asyncio.run(run_command(parser.parse_args(["ls", "/"]), manager)) == 0
    assert capsys.readouterr().out.splitlines() == ["src/", "README.md"]


def test_put_and_cat_use_stored_session(
    manager: ConnectionManager,
    remote_client,
    fallback_store,
    credentials,
    tmp_path: Path,
    capsysbinary: pytest.CaptureFixture[bytes],
) -> None:
    fallback_store.values[CREDENTIALS_KEY] = json.dumps(credentials.to_dict())
    local = tmp_path / "upload.txt"
    local.write_bytes(b"payload")
    parser = build_parser()

    assert asyncio.run(run_command(parser.parse_args(["put", str(local), "/docs/upload.txt"]), manager)) == 0
    assert remote_client.files["docs/upload.txt"] == b"payload"

    capsysbinary.readouterr()
    assert asyncio.run(run_command(parser.parse_args(["cat", "/docs/upload.txt"]), manager)) == 0
    assert capsysbinary.readouterr().out == b"payload"


def test_remote_errors_exit_non_zero(
    manager: ConnectionManager,
    fallback_store,
    credentials,
    capsys: pytest.CaptureFixture[str],
) -> None:
    fallback_store.values[CREDENTIALS_KEY] = json.dumps(credentials.to_dict())

    assert asyncio.run(run_command(build_parser().parse_args(["cat", "/missing.txt"]), manager)) == 1
    assert "Operation failed" in capsys.readouterr().err


def test_status_reports_session_details(manager: ConnectionManager, capsys: pytest.CaptureFixture[str]) -> None:
    parser = build_parser()
    asyncio.run(run_command(parser.parse_args(["connect", "https://h/apps/remote/demo", "alice", "--password", "pw"]), manager))
    capsys.readouterr()

    assert asyncio.run(run_command(parser.parse_args(["status"]), manager)) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Status: connected"
    assert lines[1].startswith("https://h as alice, project demo, connected since ")


def test_connect_with_malformed_url_exits_non_zero(
    manager: ConnectionManager, remote_client, secure_store, capsys: pytest.CaptureFixture[str]
) -> None:
    args = build_parser().parse_args(["connect", "h.example.com", "alice", "--password", "pw"])

    assert asyncio.run(run_command(args, manager)) == 1
    assert "Invalid server URL" in capsys.readouterr().err
    assert "probe" not in remote_client.calls
    assert secure_store.values == {}
