"""Hetzner Cloud API response shapes and catalogue entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NotRequired, TypedDict

# =============================================================================
# Raw responses (only the fields read here)
# =============================================================================


class IPv4Response(TypedDict):
    ip: str


class PublicNetResponse(TypedDict):
    ipv4: NotRequired[IPv4Response | None]


class ServerResponse(TypedDict):
    id: int
    name: str
    status: NotRequired[str]
    public_net: NotRequired[PublicNetResponse]


class CreateServerResponse(TypedDict):
    server: NotRequired[ServerResponse]


# =============================================================================
# Catalogue entries (configure wizard)
# =============================================================================


@dataclass(frozen=True, slots=True)
class Location:
    name: str
    country: str
    description: str

    def __str__(self) -> str:
        return f"{self.name} (Country: {self.country}, Description: {self.description})"


@dataclass(frozen=True, slots=True)
class ServerType:
    name: str
    cores: int
    memory: float
    architecture: str
    category: str

    def __str__(self) -> str:
        return (
            f"{self.name} ({self.architecture}-Cores: {self.cores} "
            f"Ram: {self.memory}, Category: {self.category})"
        )


@dataclass(frozen=True, slots=True)
class SSHKey:
    name: str
    fingerprint: str

    def __str__(self) -> str:
        return f"{self.name} ({self.fingerprint})"
