from __future__ import annotations

import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from cargo_remote.config import (
    ConfigStore,
    HetznerConfig,
    ManualConfig,
    Mode,
    ProviderKind,
    SavedConfig,
)
from cargo_remote.state import ServerHandle, StateStore

# =============================================================================
# Builders
# =============================================================================


def manual(name: str = "box", host: str = "10.0.0.5", key: str = "/keys/id_box") -> SavedConfig:
    return SavedConfig(
        mode=Mode.MANUAL,
        data=ManualConfig(
            name=name,
            user="dev",
            host=host,
            port=2222,
            ssh_public_key_path=f"{key}.pub",
            ssh_private_key_path=key,
        ),
    )


def hetzner(name: str = "cloud", key: str = "/keys/id_cloud") -> SavedConfig:
    return SavedConfig(
        mode=Mode.HETZNER,
        data=HetznerConfig(
            name=name,
            api_key="secret-token",
            location="nbg1",
            server_type="cpx21",
            image="ubuntu-22.04",
            ssh_key_name="key-1",
            local_private_key_path=key,
        ),
    )


def handle(id: str = "42", config: str = "cloud", host: str = "192.0.2.10") -> ServerHandle:
    return ServerHandle(
        provider=ProviderKind.HETZNER,
        config=config,
        id=id,
        host=host,
        port=22,
        username="root",
    )


# =============================================================================
# Fakes
# =============================================================================


def completed(argv: Sequence[str], code: int = 0, stdout: str = "", stderr: str = ""):
    return subprocess.CompletedProcess(list(argv), code, stdout, stderr)


@dataclass
class FakeRunner:
    """Records every command; answers through the two handlers.

    ``on_capture`` maps argv to a CompletedProcess, ``on_interactive`` to a
    return code. Both default to success with empty output.
    """

    on_capture: Callable[[list[str]], subprocess.CompletedProcess[str]] | None = None
    on_interactive: Callable[[list[str]], int] | None = None
    calls: list[tuple[str, list[str]]] = field(default_factory=list)

    def capture(self, argv: Sequence[str]) -> subprocess.CompletedProcess[str]:
        argv = list(argv)
        self.calls.append(("capture", argv))
        if self.on_capture is None:
            return completed(argv)
        return self.on_capture(argv)

    def interactive(self, argv: Sequence[str]) -> int:
        argv = list(argv)
        self.calls.append(("interactive", argv))
        if self.on_interactive is None:
            return 0
        return self.on_interactive(argv)

    def commands(self, program: str) -> list[list[str]]:
        return [argv for _, argv in self.calls if argv[0] == program]


@dataclass
class FakeProvider:
    rented: ServerHandle | None = None
    alive: set[str] = field(default_factory=set)
    deleted: list[str] = field(default_factory=list)
    exists_error: Exception | None = None

    def rent(self, project_key: str, preinstall: Sequence[str]) -> ServerHandle:
        assert self.rented is not None
        return self.rented

    def delete(self, handle: ServerHandle) -> None:
        self.deleted.append(handle.id)

    def exists(self, handle: ServerHandle) -> bool:
        if self.exists_error is not None:
            raise self.exists_error
        return handle.id in self.alive


def never_choose(message: str, labels: Sequence[str]) -> int:
    raise AssertionError(f"unexpected prompt: {message} {list(labels)}")


def chooser(index: int, seen: list[list[str]] | None = None):
    def _choose(message: str, labels: Sequence[str]) -> int:
        if seen is not None:
            seen.append(list(labels))
        return index

    return _choose


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config_store(tmp_path: Path) -> ConfigStore:
    return ConfigStore(tmp_path / "config.toml")


@pytest.fixture
def state_store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "servers.toml")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()
