from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any


class ConnectionProtocol(str, Enum):
    HTTP = "http"
    WEBDAV = "webdav"

    @classmethod
    def parse(cls, value: object) -> ConnectionProtocol:
        if isinstance(value, ConnectionProtocol):
            return value
        normalized = str(value or "").strip().lower()
        if normalized == cls.WEBDAV.value:
            return cls.WEBDAV
        return cls.HTTP


@dataclass(slots=True, frozen=True)
class Credentials:
    base_url: str
    username: str
    password: str
    protocol: ConnectionProtocol = ConnectionProtocol.HTTP
    project: str | None = None

    def with_project(self, project: str | None) -> Credentials:
        return replace(self, project=project or None)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["protocol"] = self.protocol.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Credentials:
        base_url = payload.get("base_url")
        username = payload.get("username")
        password = payload.get("password")
        if not isinstance(base_url, str) or not base_url.strip():
            raise ValueError("credentials record is missing base_url")
        if not isinstance(username, str) or not isinstance(password, str):
            raise ValueError("credentials record is missing username or password")

        project = payload.get("project")
        return cls(
            base_url=base_url.strip(),
            username=username,
            password=password,
            protocol=ConnectionProtocol.parse(payload.get("protocol")),
            project=str(project) if project else None,
        )
