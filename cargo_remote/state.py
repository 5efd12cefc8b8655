"""Session state: the cloud servers currently rented.

A handle lives independently of the config it was rented from. Deleting that
config orphans the handle; ``status`` prunes it on the next reconciliation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from cargo_remote.config.model import ProviderKind
from cargo_remote.config.store import read_toml, write_toml
from cargo_remote.constants import STATE_FILE_NAME, config_dir
from cargo_remote.core.exceptions import PersistenceError


@dataclass(frozen=True, slots=True)
class ServerHandle:
    """A rented, running cloud server.

    Attributes:
        provider: Provider that owns the server.
        config: Name of the config the server was rented from.
        id: Provider-assigned server id.
        host: Public IPv4 address.
        port: SSH port.
        username: SSH login user.
    """

    provider: ProviderKind
    config: str
    id: str
    host: str
    port: int
    username: str

    @property
    def target(self) -> str:
        return f"{self.username}@{self.host}"

    def to_record(self) -> dict[str, Any]:
        return {**asdict(self), "provider": self.provider.value}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ServerHandle:
        return cls(
            provider=ProviderKind(str(record["provider"]).lower()),
            config=record["config"],
            id=str(record["id"]),
            host=record["host"],
            port=int(record["port"]),
            username=record["username"],
        )

    def __str__(self) -> str:
        return f"{self.config} [{self.provider} {self.host}:{self.port} id={self.id}]"


@dataclass
class SessionState:
    """Rented servers, keyed by handle id.

    Duplicate rentals for the same project are allowed; they are a user
    error, not a state violation.
    """

    projects: list[ServerHandle] = field(default_factory=list)

    def add(self, handle: ServerHandle) -> None:
        self.projects.append(handle)

    def get(self, handle_id: str) -> ServerHandle | None:
        return next((h for h in self.projects if h.id == handle_id), None)

    def remove_ids(self, ids: Iterable[str]) -> int:
        """Drop every handle whose id is in ``ids``; return how many were dropped."""
        doomed = set(ids)
        before = len(self.projects)
        self.projects = [h for h in self.projects if h.id not in doomed]
        return before - len(self.projects)

    def to_document(self) -> dict[str, Any]:
        return {"projects": [h.to_record() for h in self.projects]}

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> SessionState:
        return cls(projects=[ServerHandle.from_record(r) for r in doc.get("projects", [])])


@dataclass(frozen=True, slots=True)
class StateStore:
    """Loads and saves ``SessionState`` at an injected path."""

    path: Path

    @classmethod
    def default(cls) -> StateStore:
        return cls(config_dir() / STATE_FILE_NAME)

    def load(self) -> SessionState:
        doc = read_toml(self.path)
        try:
            return SessionState.from_document(doc)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"invalid state file {self.path}: {e}") from e

    def save(self, state: SessionState) -> None:
        write_toml(self.path, state.to_document())
        logger.bind(component="state").debug(
            "Saved {n} server handles to {path}", n=len(state.projects), path=self.path
        )
