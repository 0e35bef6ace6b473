from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from core.overlay.filesystem import OverlayFileSystem
from core.profiles.models import Credentials


class ProviderHost(Protocol):
    def set_real_provider(self, filesystem: OverlayFileSystem | None) -> None: ...


class ProjectScopedProviderHost(Protocol):
    def set_real_provider_for_project(self, project: str, filesystem: OverlayFileSystem | None) -> None: ...


class CredentialAware(Protocol):
    def set_credentials(self, credentials: Credentials | None) -> None: ...


@dataclass(slots=True, frozen=True)
class BasicProviderBinding:
    host: ProviderHost

    def attach(self, credentials: Credentials, filesystem: OverlayFileSystem) -> None:
        self.host.set_real_provider(filesystem)

    def detach(self, credentials: Credentials) -> None:
        self.host.set_real_provider(None)


@dataclass(slots=True, frozen=True)
class ProjectScopedProviderBinding:
    host: ProjectScopedProviderHost

    def attach(self, credentials: Credentials, filesystem: OverlayFileSystem) -> None:
        self.host.set_real_provider_for_project(credentials.project or "", filesystem)

    def detach(self, credentials: Credentials) -> None:
        self.host.set_real_provider_for_project(credentials.project or "", None)


ProviderBinding = Union[BasicProviderBinding, ProjectScopedProviderBinding]
