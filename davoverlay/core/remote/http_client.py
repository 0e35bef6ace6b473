from __future__ import annotations

import logging
import re
import time
from typing import Any
from urllib.parse import quote

import httpx

from core.profiles.models import Credentials
from core.remote.client_base import RemoteEntry
from core.remote.errors import AuthFailure, InvalidAddress, NotFound, TransportFailure, Unavailable
from core.remote.listing_parser import parse_listing

DEFAULT_SCOPE = "apps/remote"
DEFAULT_USER_AGENT = "davoverlay"

_HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
_NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}
_SYSTEM_PROJECT_NAMES = frozenset({"index.html", "parent", ".."})
_TRANSPORT_HINTS = (
    "check that the server is reachable from this machine",
    "check proxy settings and TLS interception",
    "browser-hosted runtimes need the server to allow cross-origin requests",
)


def collapse_path(remote_path: str) -> str:
    return "/".join(part for part in re.split(r"/+", remote_path.strip()) if part)


def encode_path(remote_path: str) -> str:
    return "/".join(quote(part, safe="") for part in collapse_path(remote_path).split("/") if part)


class HttpDirectoryClient:
    def __init__(
        self,
        credentials: Credentials,
        *,
        scope: str = DEFAULT_SCOPE,
        user_agent: str = DEFAULT_USER_AGENT,
        trust_unreachable_probe: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._credentials = credentials
        self._scope = scope.strip("/")
        self._user_agent = user_agent
        self._trust_unreachable_probe = trust_unreachable_probe
        self._transport = transport
        self._logger = logger or logging.getLogger("davoverlay.remote")

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def collection_url(self) -> str:
        return self._collection_url(self._credentials)

    def build_url(self, remote_path: str) -> str:
        clean_path = encode_path(remote_path)
        if not clean_path:
            return f"{self.collection_url}/"
        return f"{self.collection_url}/{clean_path}"

    async def probe(self, credentials: Credentials | None = None) -> bool:
        target = credentials or self._credentials
        url = f"{self._collection_url(target)}/"
        self._logger.debug("Probing %s as %s", url, target.username)

        try:
            async with self._open_client(target) as client:
                response = await client.get(url, headers={"Accept": _HTML_ACCEPT, **_NO_CACHE_HEADERS})
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as error:
            self._logger.warning("Probe of %s rejected before sending: %s", url, error)
            raise InvalidAddress(str(error) or None, path=url) from error
        except (httpx.NetworkError, httpx.TimeoutException) as error:
            if self._trust_unreachable_probe:
                self._logger.warning(
                    "Probe of %s got no response (%s); assuming credentials are valid",
                    url,
                    error,
                )
                return True
            self._logger.warning("Probe of %s got no response: %s", url, error)
            return False
        except httpx.TransportError as error:
            self._logger.warning("Probe of %s failed: %s", url, error)
            return False

        if response.is_success:
            return True
        if response.status_code in (401, 403):
            self._logger.warning("Authentication failed for %s (HTTP %s)", url, response.status_code)
            return False

        self._logger.warning("Server error while probing %s (HTTP %s)", url, response.status_code)
        return False

    async def list_dir(self, remote_path: str) -> list[RemoteEntry]:
        url = self.build_url(remote_path)
        response = await self._send(
            "GET",
            url,
            remote_path,
            headers={"Accept": _HTML_ACCEPT, **_NO_CACHE_HEADERS},
            params=self._cache_buster(),
        )
        if not response.is_success:
            raise NotFound(f"HTTP {response.status_code} listing {remote_path or '/'}", path=remote_path)

        entries = parse_listing(response.text)
        self._logger.debug("Listed %s: %d entries", url, len(entries))
        return entries

    async def list_projects(self) -> list[RemoteEntry]:
        url = f"{self._scope_url(self._credentials)}/"
        response = await self._send(
            "GET",
            url,
            "/",
            headers={"Accept": _HTML_ACCEPT, **_NO_CACHE_HEADERS},
        )
        if response.status_code in (401, 403):
            raise AuthFailure(f"HTTP {response.status_code} fetching project list")
        if not response.is_success:
            raise NotFound(f"HTTP {response.status_code} fetching project list")

        return [
            entry
            for entry in parse_listing(response.text)
            if entry.is_directory
            and entry.name.strip()
            and not entry.name.startswith(".")
            and entry.name not in _SYSTEM_PROJECT_NAMES
        ]

    async def read_bytes(self, remote_path: str) -> bytes:
        response = await self._send(
            "GET",
            self.build_url(remote_path),
            remote_path,
            headers={"Accept": "*/*", **_NO_CACHE_HEADERS},
            params=self._cache_buster(),
        )
        if not response.is_success:
            raise NotFound(f"HTTP {response.status_code} reading {remote_path}", path=remote_path)
        return response.content

    async def mkdir(self, name: str, parent_path: str) -> None:
        response = await self._send(
            "POST",
            self.build_url(parent_path),
            parent_path,
            data={"action": "mkcol", "name": name},
        )
        self._require_success(response, "creating directory", self._item_path(name, parent_path))

    async def put(self, name: str, data: bytes, parent_path: str) -> None:
        response = await self._send(
            "POST",
            self.build_url(parent_path),
            parent_path,
            data={"action": "put", "name": name},
            files={"file": (name, data, "application/octet-stream")},
        )
        self._require_success(response, "writing file", self._item_path(name, parent_path))

    async def remove(self, name: str, parent_path: str) -> None:
        item_path = self._item_path(name, parent_path)
        response = await self._send(
            "GET",
            f"{self.build_url(item_path)}/",
            item_path,
            params={"action": "delete"},
        )
        self._require_success(response, "deleting", item_path)

    async def rename(self, old_name: str, new_name: str, parent_path: str) -> None:
        item_path = self._item_path(old_name, parent_path)
        # newName carries %20 for spaces, never form-style "+"
        response = await self._send(
            "GET",
            f"{self.build_url(item_path)}?action=rename&newName={quote(new_name, safe='')}",
            item_path,
        )
        self._require_success(response, "renaming", item_path)

    async def _send(self, method: str, url: str, remote_path: str, **kwargs: Any) -> httpx.Response:
        self._logger.debug("%s %s", method, url)
        try:
            async with self._open_client() as client:
                response = await client.request(method, url, **kwargs)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as error:
            self._logger.error("Cannot send %s %s: %s", method, url, error)
            raise InvalidAddress(str(error) or None, path=remote_path) from error
        except httpx.TransportError as error:
            self._logger.error(
                "No response for %s %s (%s). Hints: %s",
                method,
                url,
                error,
                "; ".join(_TRANSPORT_HINTS),
            )
            raise TransportFailure(str(error) or None, path=remote_path) from error

        self._logger.debug("%s %s -> HTTP %s", method, url, response.status_code)
        return response

    def _require_success(self, response: httpx.Response, action: str, item_path: str) -> None:
        if response.is_success:
            return
        self._logger.warning("Remote rejected %s %s (HTTP %s)", action, item_path, response.status_code)
        raise Unavailable(f"HTTP {response.status_code} {action} {item_path}", path=item_path)

    def _item_path(self, name: str, parent_path: str) -> str:
        clean_parent = collapse_path(parent_path)
        return f"{clean_parent}/{name}" if clean_parent else name

    def _scope_url(self, credentials: Credentials) -> str:
        base_url = credentials.base_url.rstrip("/")
        return f"{base_url}/{self._scope}" if self._scope else base_url

    def _collection_url(self, credentials: Credentials) -> str:
        scope_url = self._scope_url(credentials)
        project = encode_path(credentials.project or "")
        return f"{scope_url}/{project}" if project else scope_url

    def _cache_buster(self) -> dict[str, str]:
        return {"_cb": str(int(time.time() * 1000))}

    def _open_client(self, credentials: Credentials | None = None) -> httpx.AsyncClient:
        target = credentials or self._credentials
        return httpx.AsyncClient(
            auth=httpx.BasicAuth(target.username, target.password),
            headers={"User-Agent": self._user_agent},
            transport=self._transport,
        )
