from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum

import httpx

from core.overlay.filesystem import OverlayFileSystem
from core.profiles.models import Credentials
from core.remote.errors import InvalidAddress


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class ConnectionStatus:
    state: ConnectionState
    message: str | None = None

    @classmethod
    def disconnected(cls) -> ConnectionStatus:
        return cls(ConnectionState.DISCONNECTED)

    @classmethod
    def connecting(cls) -> ConnectionStatus:
        return cls(ConnectionState.CONNECTING)

    @classmethod
    def connected(cls) -> ConnectionStatus:
        return cls(ConnectionState.CONNECTED)

    @classmethod
    def error(cls, message: str) -> ConnectionStatus:
        return cls(ConnectionState.ERROR, message)


@dataclass(slots=True)
class Session:
    credentials: Credentials
    filesystem: OverlayFileSystem
    established_at: float = field(default_factory=time.time)

    @property
    def project(self) -> str | None:
        return self.credentials.project


def normalize_server_url(url: str, scope: str) -> tuple[str, str | None]:
    """Strip a trailing ``/<scope>/<project>...`` subpath from ``url``.

    Returns the bare server URL and the project segment found in the subpath,
    if any. Query strings and fragments after the project are dropped.
    """
    cleaned = url.strip()
    scope_marker = f"/{scope.strip('/')}"

    index = cleaned.find(f"{scope_marker}/")
    if index < 0 and cleaned.rstrip("/").endswith(scope_marker):
        index = cleaned.rstrip("/").rfind(scope_marker)
    if index < 0:
        return cleaned.rstrip("/"), None

    remainder = cleaned[index + len(scope_marker):].lstrip("/")
    project = re.split(r"[/?#]", remainder, maxsplit=1)[0] if remainder else ""
    return cleaned[:index].rstrip("/"), project or None


def validate_server_url(base_url: str) -> None:
    try:
        parsed = httpx.URL(base_url)
    except httpx.InvalidURL as error:
        raise InvalidAddress(f"{error}: {base_url}") from error

    if parsed.scheme not in {"http", "https"} or not parsed.host:
        raise InvalidAddress(f"Server URL must start with http:// or https://: {base_url or '<empty>'}")
