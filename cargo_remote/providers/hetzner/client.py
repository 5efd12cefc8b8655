"""Blocking HTTP client for the Hetzner Cloud API."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from cargo_remote.constants import HETZNER_API_BASE
from cargo_remote.core.exceptions import ProviderError
from cargo_remote.infra.http import BearerAuth, HttpClient, HttpError

from .types import CreateServerResponse, Location, ServerType, SSHKey


class HetznerClient:
    """Thin wrapper over the endpoints cargo-remote consumes.

    Every non-2xx answer becomes a ``ProviderError`` carrying the response
    body verbatim; transport failures become a ``ProviderError`` with no
    status.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = HETZNER_API_BASE,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = HttpClient(
            base_url, BearerAuth(api_key), timeout=timeout, transport=transport
        )

    def _call(self, action: str, send: Callable[..., Any], path: str, **kwargs: Any) -> Any:
        try:
            return send(path, **kwargs)
        except HttpError as e:
            raise ProviderError(
                f"hetzner {action} failed: {e.body}",
                status=e.status or None,
                body=e.body,
            ) from e

    # =========================================================================
    # Servers
    # =========================================================================

    def create_server(self, body: dict[str, Any]) -> CreateServerResponse:
        return self._call("create", self._http.post, "/servers", json=body)

    def delete_server(self, server_id: str) -> None:
        self._call("delete", self._http.delete, f"/servers/{server_id}")

    def server_exists(self, server_id: str) -> bool:
        """True on 2xx, False on any other status; transport errors raise."""
        try:
            resp = self._http.send("GET", f"/servers/{server_id}")
        except HttpError as e:
            raise ProviderError(f"hetzner lookup failed: {e.body}", body=e.body) from e
        return resp.ok

    # =========================================================================
    # Catalogue
    # =========================================================================

    def list_locations(self) -> list[Location]:
        data = self._call("locations", self._http.get, "/locations") or {}
        return [
            Location(name=loc["name"], country=loc["country"], description=loc["description"])
            for loc in data.get("locations", [])
        ]

    def list_server_types(self) -> list[ServerType]:
        data = self._call("server types", self._http.get, "/server_types") or {}
        return [
            ServerType(
                name=t["name"],
                cores=t["cores"],
                memory=t["memory"],
                architecture=t["architecture"],
                category=t.get("category", ""),
            )
            for t in data.get("server_types", [])
        ]

    def list_ssh_keys(self) -> list[SSHKey]:
        data = self._call("ssh keys", self._http.get, "/ssh_keys") or {}
        return [
            SSHKey(name=k["name"], fingerprint=k["fingerprint"])
            for k in data.get("ssh_keys", [])
        ]

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> HetznerClient:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()
