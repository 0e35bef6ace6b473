"""Connection lifecycle for one remote session.

connect() validates with a probe before anything is persisted; auto_reconnect()
trusts credentials that were validated when they were stored and never probes.
Neither call is guarded against re-entrance: callers serialize connect().
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

import httpx
from PySide6.QtCore import QObject, Signal

from core.config import AppConfig
from core.connection.collaborators import CredentialAware, ProviderBinding
from core.connection.commands import (
    CommandResult,
    Connect,
    ConnectionCommand,
    Disconnect,
    FetchProjects,
    ProbeConnection,
    RequestStatus,
    SelectProject,
)
from core.connection.models import (
    ConnectionState,
    ConnectionStatus,
    Session,
    normalize_server_url,
    validate_server_url,
)
from core.overlay.file_index import FileIndex
from core.overlay.filesystem import OverlayFileSystem
from core.profiles.credentials import CredentialService
from core.profiles.models import ConnectionProtocol, Credentials
from core.remote.client_base import RemoteClient
from core.remote.client_factory import create_client
from core.remote.errors import AuthFailure, InvalidAddress, RemoteFsError
from i18n.i18n import tr, tr_error

ClientFactory = Callable[[Credentials], RemoteClient]


class NotConnectedError(RuntimeError):
    pass


class ConnectionManager(QObject):
    state_changed = Signal(object)
    message = Signal(str)

    def __init__(
        self,
        credential_service: CredentialService,
        config: AppConfig,
        *,
        client_factory: ClientFactory | None = None,
        provider_binding: ProviderBinding | None = None,
        credential_listeners: Iterable[CredentialAware] = (),
        file_index: FileIndex | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__()
        self._credential_service = credential_service
        self._config = config
        self._logger = logger or logging.getLogger("davoverlay.connection")
        self._transport = transport
        self._client_factory = client_factory or self._default_client_factory
        self._provider_binding = provider_binding
        self._credential_listeners = list(credential_listeners)
        self._file_index = file_index
        self._status = ConnectionStatus.disconnected()
        self._session: Session | None = None

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def state(self) -> ConnectionState:
        return self._status.state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_connected(self) -> bool:
        return self._session is not None and self._status.state is ConnectionState.CONNECTED

    async def connect(
        self,
        url: str,
        username: str,
        password: str,
        protocol: ConnectionProtocol | str = ConnectionProtocol.HTTP,
        project: str | None = None,
    ) -> Session:
        try:
            credentials = self._build_credentials(url, username, password, protocol, project)
        except InvalidAddress as error:
            self._fail(tr("connection.error.generic", error=tr_error(error)))
            raise

        self._logger.info(
            "Connecting to %s as %s (protocol=%s, project=%s)",
            credentials.base_url,
            credentials.username,
            credentials.protocol.value,
            credentials.project,
        )
        self._set_status(ConnectionStatus.connecting())
        self._report(tr("connection.connecting", url=credentials.base_url))

        try:
            valid = await self._client_factory(credentials).probe(credentials)
        except Exception as error:
            self._fail(tr("connection.error.generic", error=tr_error(error)))
            raise

        if not valid:
            message = tr("connection.error.auth")
            self._fail(message)
            raise AuthFailure(message)

        self._credential_service.store(credentials)
        session = self._open_session(credentials)
        self._report(tr("connection.connected", url=credentials.base_url))
        return session

    def disconnect(self) -> None:
        session = self._session
        self._session = None
        if session is not None:
            self._unregister(session)

        self._credential_service.clear()
        self._set_status(ConnectionStatus.disconnected())
        self._report(tr("connection.disconnected"))

    async def auto_reconnect(self) -> Session | None:
        if self.is_connected:
            self._logger.debug("Already connected; skipping auto-reconnect")
            return self._session

        credentials = self._credential_service.reconcile()
        if credentials is None:
            self._logger.info("No stored credentials; staying disconnected")
            return None

        session = self._open_session(credentials)
        self._logger.info("Auto-reconnected to %s (project=%s)", credentials.base_url, credentials.project)
        self._report(
            tr("connection.reconnected", url=credentials.base_url, project=credentials.project or "-")
        )
        return session

    async def select_project(self, project: str) -> Session:
        if self._session is None:
            raise NotConnectedError(tr("connection.error.not_connected"))

        credentials = self._session.credentials.with_project(project)
        self._credential_service.store(credentials)
        session = self._open_session(credentials)
        self._report(tr("connection.project_selected", project=project))
        return session

    async def list_projects(self, url: str, username: str, password: str) -> list[str]:
        credentials = self._build_credentials(url, username, password, ConnectionProtocol.HTTP, None)
        client = self._client_factory(credentials.with_project(None))
        entries = await client.list_projects()
        return [entry.name for entry in entries]

    async def test_connection(
        self,
        url: str,
        username: str,
        password: str,
        protocol: ConnectionProtocol | str = ConnectionProtocol.HTTP,
    ) -> bool:
        credentials = self._build_credentials(url, username, password, protocol, None)
        return await self._client_factory(credentials).probe(credentials)

    async def dispatch(self, command: ConnectionCommand) -> CommandResult:
        try:
            if isinstance(command, ProbeConnection):
                ok = await self.test_connection(command.url, command.username, command.password, command.protocol)
                return self._result(ok, tr("connection.test.ok" if ok else "connection.test.failed"))
            if isinstance(command, Connect):
                await self.connect(command.url, command.username, command.password, command.protocol, command.project)
                return self._result(True, tr("connection.connected", url=self._session_url()))
            if isinstance(command, Disconnect):
                self.disconnect()
                return self._result(True, tr("connection.disconnected"))
            if isinstance(command, FetchProjects):
                projects = await self.list_projects(command.url, command.username, command.password)
                return self._result(True, "", projects=projects)
            if isinstance(command, SelectProject):
                await self.select_project(command.project)
                return self._result(True, tr("connection.project_selected", project=command.project))
            if isinstance(command, RequestStatus):
                return self._result(True, tr("connection.status", state=self._status.state.value))
        except (RemoteFsError, NotConnectedError) as error:
            self._logger.error("Command %s failed: %s", type(command).__name__, error)
            return self._result(False, tr_error(error))

        raise TypeError(f"Unsupported connection command: {type(command).__name__}")

    def _build_credentials(
        self,
        url: str,
        username: str,
        password: str,
        protocol: ConnectionProtocol | str,
        project: str | None,
    ) -> Credentials:
        base_url, url_project = normalize_server_url(url, self._config.get_remote_scope())
        validate_server_url(base_url)
        return Credentials(
            base_url=base_url,
            username=username,
            password=password,
            protocol=ConnectionProtocol.parse(protocol),
            project=project or url_project,
        )

    def _open_session(self, credentials: Credentials) -> Session:
        previous = self._session
        if previous is not None:
            self._unregister(previous)

        filesystem = self._build_filesystem(credentials)
        session = Session(credentials=credentials, filesystem=filesystem)
        self._session = session
        self._register(session)
        self._set_status(ConnectionStatus.connected())
        return session

    def _build_filesystem(self, credentials: Credentials) -> OverlayFileSystem:
        return OverlayFileSystem(
            self._client_factory(credentials),
            index_hook=self._file_index,
            virtual_prefixes=self._config.get_virtual_prefixes(),
            logger=self._logger.getChild("fs"),
        )

    def _register(self, session: Session) -> None:
        binding = self._provider_binding
        if binding is not None:
            self._notify_collaborator(
                "provider host",
                lambda: binding.attach(session.credentials, session.filesystem),
            )
        for listener in self._credential_listeners:
            self._notify_collaborator(type(listener).__name__, lambda: listener.set_credentials(session.credentials))
        if self._file_index is not None:
            self._file_index.set_credentials(session.credentials)
            self._file_index.bind(session.filesystem)

    def _unregister(self, session: Session) -> None:
        binding = self._provider_binding
        if binding is not None:
            self._notify_collaborator("provider host", lambda: binding.detach(session.credentials))
        for listener in self._credential_listeners:
            self._notify_collaborator(type(listener).__name__, lambda: listener.set_credentials(None))
        if self._file_index is not None:
            self._file_index.bind(None)
            self._file_index.set_credentials(None)

    def _notify_collaborator(self, label: str, call: Callable[[], None]) -> None:
        try:
            call()
        except Exception as error:
            self._logger.warning("Collaborator %s rejected registration update: %s", label, error)

    def _fail(self, message: str) -> None:
        self._logger.error(message)
        self._set_status(ConnectionStatus.error(message))
        self._report(message)
        restored = ConnectionStatus.connected() if self._session is not None else ConnectionStatus.disconnected()
        self._set_status(restored)

    def _set_status(self, status: ConnectionStatus) -> None:
        self._status = status
        self.state_changed.emit(status)

    def _report(self, message: str) -> None:
        self.message.emit(message)

    def _result(self, ok: bool, message: str, projects: list[str] | None = None) -> CommandResult:
        return CommandResult(ok=ok, message=message, status=self._status, projects=projects or [])

    def _session_url(self) -> str:
        return self._session.credentials.base_url if self._session is not None else ""

    def _default_client_factory(self, credentials: Credentials) -> RemoteClient:
        return create_client(credentials, self._config, self._logger.getChild("remote"), self._transport)
