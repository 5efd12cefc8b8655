"""Hetzner Cloud implementation of the provider capability."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

import httpx
from loguru import logger

from cargo_remote.config.model import HetznerConfig, ProviderKind
from cargo_remote.constants import DEFAULT_USERNAME, SERVER_NAME_PREFIX, SSH_PORT
from cargo_remote.core.exceptions import ProviderError
from cargo_remote.state import ServerHandle

from .bootstrap import generate_user_data
from .client import HetznerClient
from .types import CreateServerResponse


def server_name(project_key: str, now: Callable[[], float] = time.time) -> str:
    """Unique server name; the timestamp keeps repeated rentals apart."""
    return f"{SERVER_NAME_PREFIX}-{project_key}-{int(now())}"


def _extract(response: CreateServerResponse) -> tuple[str, str]:
    """Pull (id, public IPv4) out of a create response; missing fields are errors."""
    server = response.get("server") if isinstance(response, dict) else None
    if not isinstance(server, dict):
        raise ProviderError("hetzner create failed: missing server in response")

    server_id = server.get("id")
    if not isinstance(server_id, int) or isinstance(server_id, bool):
        raise ProviderError("hetzner create failed: missing id in response")

    ip = ((server.get("public_net") or {}).get("ipv4") or {}).get("ip")
    if not isinstance(ip, str) or not ip:
        raise ProviderError("hetzner create failed: missing IPv4 in response")

    return str(server_id), ip


class HetznerProvider:
    def __init__(
        self,
        config: HetznerConfig,
        *,
        transport: httpx.BaseTransport | None = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._transport = transport
        self._now = now
        self._log = logger.bind(component="hetzner")

    def _client(self) -> HetznerClient:
        return HetznerClient(self.config.api_key, transport=self._transport)

    def rent(self, project_key: str, preinstall: Sequence[str]) -> ServerHandle:
        """Create a server for ``project_key``.

        The handle is built only after the response has both an id and a
        public IPv4; the server becomes usable once cloud-init touches the
        readiness sentinel.
        """
        name = server_name(project_key, self._now)
        body = {
            "name": name,
            "server_type": self.config.server_type,
            "image": self.config.image,
            "location": self.config.location,
            "ssh_keys": [self.config.ssh_key_name],
            "user_data": generate_user_data(preinstall),
        }
        self._log.info(
            "Creating server {name} ({type} in {loc})",
            name=name, type=self.config.server_type, loc=self.config.location,
        )
        with self._client() as client:
            response = client.create_server(body)

        server_id, ip = _extract(response)
        self._log.info("Server {id} created at {ip}", id=server_id, ip=ip)
        return ServerHandle(
            provider=ProviderKind.HETZNER,
            config=self.config.name,
            id=server_id,
            host=ip,
            port=SSH_PORT,
            username=self.config.username or DEFAULT_USERNAME,
        )

    def delete(self, handle: ServerHandle) -> None:
        """Delete the server. Deleting an already deleted id may fail; not retried."""
        self._log.info("Deleting server {id} ({host})", id=handle.id, host=handle.host)
        with self._client() as client:
            client.delete_server(handle.id)

    def exists(self, handle: ServerHandle) -> bool:
        with self._client() as client:
            return client.server_exists(handle.id)
