"""Provider capability: rent, delete and probe cloud servers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from cargo_remote.config.model import HetznerConfig, ManualConfig, SavedConfig
from cargo_remote.core.exceptions import ProviderError
from cargo_remote.state import ServerHandle


class Provider(Protocol):
    def rent(self, project_key: str, preinstall: Sequence[str]) -> ServerHandle: ...

    def delete(self, handle: ServerHandle) -> None: ...

    def exists(self, handle: ServerHandle) -> bool: ...


class ManualProvider:
    """Manual hosts are neither rented nor deleted; every call is an error."""

    def __init__(self, config: ManualConfig) -> None:
        self.config = config

    def _unsupported(self, op: str) -> ProviderError:
        return ProviderError(f"{op} is not supported for manual config {self.config.name!r}")

    def rent(self, project_key: str, preinstall: Sequence[str]) -> ServerHandle:
        raise self._unsupported("rent")

    def delete(self, handle: ServerHandle) -> None:
        raise self._unsupported("delete")

    def exists(self, handle: ServerHandle) -> bool:
        raise self._unsupported("exists")


def get_provider(config: SavedConfig) -> Provider:
    from cargo_remote.providers.hetzner import HetznerProvider

    match config.data:
        case HetznerConfig():
            return HetznerProvider(config.data)
        case ManualConfig():
            return ManualProvider(config.data)
