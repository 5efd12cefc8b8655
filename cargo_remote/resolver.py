"""Endpoint resolution: pick one live remote from configs and session state.

Candidates come from two pools:

- cloud: rented server handles whose owning config still exists and is a
  cloud config (mode and data agree, which guards against a config edited
  after the rental);
- manual: every manual config.

The priority policy decides which pool is consulted. A single candidate is
used without asking; several are offered through the chooser.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from cargo_remote.config.model import ManualConfig, Priority, SavedConfig, SavedConfigs
from cargo_remote.core.exceptions import (
    ConfigError,
    NoCandidatesError,
    NoConfiguredError,
    SelectionNotFoundError,
)
from cargo_remote.prompt import Chooser
from cargo_remote.state import ServerHandle, SessionState


@dataclass(frozen=True, slots=True)
class Endpoint:
    host: str
    user: str
    port: int
    private_key: Path

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}"


@dataclass(frozen=True, slots=True)
class CloudCandidate:
    handle: ServerHandle
    config: SavedConfig

    @property
    def label(self) -> str:
        h = self.handle
        return f"{self.config.name} [{h.provider} {h.host}:{h.port} id={h.id}]"

    def endpoint(self) -> Endpoint:
        # live host from the rental, key from the config
        return Endpoint(
            host=self.handle.host,
            user=self.handle.username,
            port=self.handle.port,
            private_key=Path(self.config.private_key_path).expanduser(),
        )


@dataclass(frozen=True, slots=True)
class ManualCandidate:
    config: SavedConfig
    data: ManualConfig

    @property
    def label(self) -> str:
        return f"{self.config.name} [manual {self.data.host}:{self.data.port}]"

    def endpoint(self) -> Endpoint:
        return Endpoint(
            host=self.data.host,
            user=self.data.user,
            port=self.data.port,
            private_key=Path(self.data.ssh_private_key_path).expanduser(),
        )


type Candidate = CloudCandidate | ManualCandidate


def cloud_candidates(configs: SavedConfigs, state: SessionState) -> list[CloudCandidate]:
    out: list[CloudCandidate] = []
    for handle in state.projects:
        config = configs.get(handle.config)
        if config is not None and config.is_cloud:
            out.append(CloudCandidate(handle=handle, config=config))
    return out


def manual_candidates(configs: SavedConfigs) -> list[ManualCandidate]:
    out: list[ManualCandidate] = []
    for config in configs.items:
        match config.data:
            case ManualConfig() if config.is_manual:
                out.append(ManualCandidate(config=config, data=config.data))
            case _:
                pass
    return out


def pick[T: CloudCandidate | ManualCandidate](
    candidates: list[T], message: str, choose: Chooser
) -> T:
    """Auto-pick a single candidate, otherwise ask."""
    if len(candidates) == 1:
        return candidates[0]
    index = choose(message, [c.label for c in candidates])
    if not 0 <= index < len(candidates):
        raise SelectionNotFoundError(index)
    return candidates[index]


def select_candidate(
    configs: SavedConfigs,
    state: SessionState,
    choose: Chooser,
    override: str | None = None,
) -> Candidate:
    """Apply the priority policy and return the chosen candidate."""
    if not configs.items:
        raise NoConfiguredError()

    cloud = cloud_candidates(configs, state)
    manual = manual_candidates(configs)

    if override is not None:
        if configs.get(override) is None:
            raise ConfigError(f"config {override!r} not found")
        cloud = [c for c in cloud if c.config.name == override]
        manual = [c for c in manual if c.config.name == override]

    priority = configs.effective_priority
    logger.bind(component="resolver").debug(
        "priority={p} cloud={c} manual={m}", p=priority, c=len(cloud), m=len(manual)
    )

    match priority:
        case Priority.CLOUD:
            if not cloud:
                raise NoCandidatesError(
                    "no active cloud servers; start one with `cargo remote begin`"
                )
            return pick(cloud, "Select cloud server", choose)
        case Priority.MANUAL:
            if not manual:
                raise NoCandidatesError(
                    "no manual server configured; run `cargo remote configure`"
                )
            return pick(manual, "Select manual configuration", choose)
        case Priority.ASK:
            both: list[Candidate] = [*cloud, *manual]
            if not both:
                raise NoCandidatesError(
                    "no usable configuration; run `cargo remote configure` "
                    "or start a server with `cargo remote begin`"
                )
            return pick(both, "Select configuration", choose)


def resolve_endpoint(
    configs: SavedConfigs,
    state: SessionState,
    choose: Chooser,
    override: str | None = None,
) -> Endpoint:
    """Return host, user, port and private key of the remote to use."""
    candidate = select_candidate(configs, state, choose, override)
    endpoint = candidate.endpoint()
    logger.bind(component="resolver").info(
        "Using {label} ({target}:{port})",
        label=candidate.label, target=endpoint.target, port=endpoint.port,
    )
    return endpoint
