from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from datetime import datetime
from pathlib import Path

from core.config import AppConfig
from core.connection.commands import Connect, Disconnect, FetchProjects, ProbeConnection, SelectProject
from core.connection.manager import ConnectionManager
from core.connection.models import Session
from core.logging import setup_logging
from core.overlay.file_index import FileIndex
from core.overlay.filesystem import FileType
from core.paths import ensure_runtime_directories
from core.profiles.credentials import CredentialService, FileCredentialStore, KeyringCredentialStore
from core.profiles.models import ConnectionProtocol
from core.remote.errors import RemoteFsError
from i18n.i18n import initialize_i18n, tr, tr_error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="davoverlay", description="Browse a remote HTML-listing file service.")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output to stderr")
    commands = parser.add_subparsers(dest="command", required=True)

    for name in ("connect", "test"):
        sub = commands.add_parser(name, help=f"{name} using server credentials")
        sub.add_argument("url")
        sub.add_argument("username")
        sub.add_argument("--password", help="prompted when omitted")
        sub.add_argument("--protocol", choices=[item.value for item in ConnectionProtocol], default="http")
        if name == "connect":
            sub.add_argument("--project")

    commands.add_parser("disconnect", help="forget stored credentials")
    commands.add_parser("status", help="show the connection state")

    projects = commands.add_parser("projects", help="list projects on the server")
    projects.add_argument("url", nargs="?")
    projects.add_argument("username", nargs="?")
    projects.add_argument("--password")

    select = commands.add_parser("use", help="switch the connected session to another project")
    select.add_argument("project")

    ls = commands.add_parser("ls", help="list a directory")
    ls.add_argument("path", nargs="?", default="/")
    ls.add_argument("-R", "--recursive", action="store_true")

    cat = commands.add_parser("cat", help="print a file")
    cat.add_argument("path")

    put = commands.add_parser("put", help="upload a local file")
    put.add_argument("local", type=Path)
    put.add_argument("path")

    mkdir = commands.add_parser("mkdir", help="create a directory")
    mkdir.add_argument("path")

    rm = commands.add_parser("rm", help="delete a file or directory")
    rm.add_argument("path")

    mv = commands.add_parser("mv", help="rename within a directory")
    mv.add_argument("old")
    mv.add_argument("new")

    return parser


def build_manager(config: AppConfig, logger: logging.Logger) -> ConnectionManager:
    credential_service = CredentialService(
        secure_store=KeyringCredentialStore(),
        fallback_store=FileCredentialStore(),
        logger=logger.getChild("credentials"),
    )
    return ConnectionManager(
        credential_service,
        config,
        file_index=FileIndex(logger=logger.getChild("index")),
        logger=logger.getChild("connection"),
    )


def _password(value: str | None) -> str:
    return value if value is not None else getpass.getpass("Password: ")


async def _require_session(manager: ConnectionManager) -> Session | None:
    session = await manager.auto_reconnect()
    if session is None:
        print(tr("cli.no_session"), file=sys.stderr)
    return session


async def run_command(args: argparse.Namespace, manager: ConnectionManager) -> int:
    if args.command == "connect":
        result = await manager.dispatch(
            Connect(
                url=args.url,
                username=args.username,
                password=_password(args.password),
                protocol=ConnectionProtocol.parse(args.protocol),
                project=args.project,
            )
        )
        if not result.ok:
            print(tr("command.failed", error=result.message), file=sys.stderr)
            return 1
        return 0

    if args.command == "test":
        result = await manager.dispatch(
            ProbeConnection(args.url, args.username, _password(args.password), ConnectionProtocol.parse(args.protocol))
        )
        print(result.message)
        return 0 if result.ok else 1

    if args.command == "disconnect":
        await manager.dispatch(Disconnect())
        return 0

    if args.command == "projects":
        if args.url and args.username:
            command = FetchProjects(args.url, args.username, _password(args.password))
        else:
            session = await _require_session(manager)
            if session is None:
                return 1
            credentials = session.credentials
            command = FetchProjects(credentials.base_url, credentials.username, credentials.password)
        result = await manager.dispatch(command)
        if not result.ok:
            print(tr("command.failed", error=result.message), file=sys.stderr)
            return 1
        for project in result.projects:
            print(project)
        if not result.projects:
            print(tr("cli.projects.empty"), file=sys.stderr)
        return 0

    session = await _require_session(manager)
    if args.command == "status":
        print(tr("connection.status", state=manager.state.value))
        if session is not None:
            print(
                tr(
                    "cli.session",
                    url=session.credentials.base_url,
                    username=session.credentials.username,
                    project=session.project or "-",
                    since=datetime.fromtimestamp(session.established_at).strftime("%Y-%m-%d %H:%M:%S"),
                )
            )
        return 0
    if session is None:
        return 1

    if args.command == "use":
        result = await manager.dispatch(SelectProject(args.project))
        return 0 if result.ok else 1

    filesystem = session.filesystem
    try:
        if args.command == "ls":
            if args.recursive:
                async for path, file_type in filesystem.walk(args.path):
                    print(f"{path}/" if file_type is FileType.DIRECTORY else path)
            else:
                for name, file_type in await filesystem.read_directory(args.path):
                    print(f"{name}/" if file_type is FileType.DIRECTORY else name)
        elif args.command == "cat":
            sys.stdout.buffer.write(await filesystem.read_file(args.path))
            sys.stdout.flush()
        elif args.command == "put":
            payload = args.local.read_bytes()
            await filesystem.write_file(args.path, payload)
            print(tr("cli.written", size=len(payload), path=args.path))
        elif args.command == "mkdir":
            await filesystem.create_directory(args.path)
            print(tr("cli.created", path=args.path))
        elif args.command == "rm":
            await filesystem.delete(args.path)
            print(tr("cli.deleted", path=args.path))
        elif args.command == "mv":
            await filesystem.rename(args.old, args.new)
            print(tr("cli.renamed", old=args.old, new=args.new))
    except RemoteFsError as error:
        print(tr("command.failed", error=tr_error(error)), file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    ensure_runtime_directories()

    config = AppConfig()
    initialize_i18n(config.get_language())
    logger = setup_logging(config.get_log_level(), logging.DEBUG if args.verbose else logging.WARNING)

    manager = build_manager(config, logger)
    manager.message.connect(lambda text: print(text, file=sys.stderr))
    return asyncio.run(run_command(args, manager))


if __name__ == "__main__":
    raise SystemExit(main())
