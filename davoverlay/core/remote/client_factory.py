from __future__ import annotations

import logging

import httpx

from core.config import AppConfig
from core.profiles.models import ConnectionProtocol, Credentials
from core.remote.client_base import RemoteClient
from core.remote.http_client import HttpDirectoryClient


def create_client(
    credentials: Credentials,
    config: AppConfig,
    logger: logging.Logger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RemoteClient:
    if credentials.protocol in {ConnectionProtocol.HTTP, ConnectionProtocol.WEBDAV}:
        return HttpDirectoryClient(
            credentials,
            scope=config.get_remote_scope(),
            user_agent=config.get_user_agent(),
            trust_unreachable_probe=config.get_trust_unreachable_probe(),
            transport=transport,
            logger=logger,
        )

    logger.error("Unsupported connection protocol: %s", credentials.protocol)
    raise ValueError(f"Unsupported protocol: {credentials.protocol}")
