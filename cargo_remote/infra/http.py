from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx
from loguru import logger

# ─── Errors ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    """Non-success response (``status`` > 0) or transport failure (``status`` == 0)."""

    status: int
    body: str

    def __str__(self) -> str:
        if self.status == 0:
            return f"request failed: {self.body}"
        return f"HTTP {self.status}: {self.body}"


# ─── Response ────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Response[T]:
    status: int
    data: T
    headers: dict[str, str]
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


# ─── Auth ────────────────────────────────────────────────────────────


@runtime_checkable
class Auth(Protocol):
    def headers(self) -> dict[str, str]: ...


class BearerAuth:
    def __init__(self, token: str) -> None:
        self._token = token

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }


# ─── Client ──────────────────────────────────────────────────────────


class HttpClient:
    """Blocking JSON client.

    ``timeout=None`` waits indefinitely; pass a number to bound every request.
    ``transport`` is handed to httpx unchanged (tests pass a MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        auth: Auth | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None
        self._log = logger.bind(component="http")

    def _ensure_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    def _headers(self) -> dict[str, str]:
        return self._auth.headers() if self._auth else {}

    def send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Response[Any]:
        """Send a request and return the response whatever its status.

        Transport failures raise ``HttpError(status=0)``; status handling is
        left to the caller.
        """
        client = self._ensure_client()
        self._log.debug("{method} {path}", method=method, path=path)
        try:
            resp = client.request(method, path, headers=self._headers(), json=json, params=params)
        except httpx.HTTPError as e:
            raise HttpError(status=0, body=str(e)) from e

        data: Any
        if not resp.content:
            data = None
        elif resp.headers.get("content-type", "").startswith("application/json"):
            data = resp.json()
        else:
            data = resp.text
        return Response(
            status=resp.status_code, data=data, headers=dict(resp.headers), text=resp.text
        )

    def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request; raise ``HttpError`` carrying the body on non-2xx."""
        resp = self.send(method, path, json=json, params=params)
        if not resp.ok:
            body = resp.text
            self._log.warning(
                "HTTP {status} from {path}: {body}",
                status=resp.status, path=path, body=body[:500],
            )
            raise HttpError(status=resp.status, body=body)
        return resp.data

    # ─── Typed convenience ───────────────────────────────────────────

    def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, *, json: dict[str, Any] | list[Any] | None = None) -> Any:
        return self.request("POST", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    # ─── Lifecycle ───────────────────────────────────────────────────

    def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._log.debug("Closing HTTP client")
            self._client.close()

    def __enter__(self) -> HttpClient:
        self._ensure_client()
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

