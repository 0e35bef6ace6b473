from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from core.connection.models import ConnectionStatus
from core.profiles.models import ConnectionProtocol


@dataclass(slots=True, frozen=True)
class ProbeConnection:
    url: str
    username: str
    password: str
    protocol: ConnectionProtocol = ConnectionProtocol.HTTP


@dataclass(slots=True, frozen=True)
class Connect:
    url: str
    username: str
    password: str
    protocol: ConnectionProtocol = ConnectionProtocol.HTTP
    project: str | None = None


@dataclass(slots=True, frozen=True)
class Disconnect:
    pass


@dataclass(slots=True, frozen=True)
class FetchProjects:
    url: str
    username: str
    password: str


@dataclass(slots=True, frozen=True)
class SelectProject:
    project: str


@dataclass(slots=True, frozen=True)
class RequestStatus:
    pass


ConnectionCommand = Union[ProbeConnection, Connect, Disconnect, FetchProjects, SelectProject, RequestStatus]


@dataclass(slots=True)
class CommandResult:
    ok: bool
    message: str
    status: ConnectionStatus
    projects: list[str] = field(default_factory=list)
