"""Session lifecycle: rent, release and reconcile cloud build servers.

Renting and persisting are not transactional. A server rented successfully
whose handle then fails to persist keeps running (and billing) untracked;
``begin_session`` reports that loudly instead of hiding it. The store files
are not locked either, so concurrent begin/end invocations may lose updates.
Both situations surface through ``status`` or the provider console.
"""

from __future__ import annotations

import ipaddress
import socket
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from cargo_remote.config.model import SavedConfig, SavedConfigs
from cargo_remote.config.store import ConfigStore
from cargo_remote.constants import PING_TIMEOUT, READY_SENTINEL
from cargo_remote.core.exceptions import (
    ConfigError,
    PersistenceError,
    ResolutionError,
    SelectionNotFoundError,
    SessionError,
)
from cargo_remote.infra.ssh import CommandRunner, SSHTransport, SubprocessRunner
from cargo_remote.prompt import Chooser
from cargo_remote.providers import Provider, get_provider
from cargo_remote.resolver import manual_candidates
from cargo_remote.state import ServerHandle, StateStore

type ProviderFactory = Callable[[SavedConfig], Provider]

# =============================================================================
# Begin
# =============================================================================


def select_cloud_config(
    configs: SavedConfigs,
    choose: Chooser,
    override: str | None = None,
) -> SavedConfig:
    """Pick the config to rent from.

    Order: explicit name, then the default, then the only cloud config,
    then ask. Names that do not point at a cloud config fall through.
    """
    log = logger.bind(component="session")
    cloud = configs.cloud_items()
    if not cloud:
        raise ConfigError("no cloud provider configured; add one via `cargo remote configure`")

    for name in (override, configs.default):
        if name is None:
            continue
        config = configs.get(name)
        if config is not None and config.mode.is_cloud:
            return config
        log.warning("Config {name!r} is not a cloud config, ignoring it", name=name)

    if len(cloud) == 1:
        return cloud[0]

    index = choose(
        "No matching config for your input or default. Please choose one",
        [f"{c.name} ({c.mode.label}, {c.data})" for c in cloud],
    )
    if not 0 <= index < len(cloud):
        raise SelectionNotFoundError(index)
    return cloud[index]


def begin_session(
    config_store: ConfigStore,
    state_store: StateStore,
    project_key: str,
    choose: Chooser,
    *,
    override: str | None = None,
    preinstall: Sequence[str] = (),
    provider_factory: ProviderFactory = get_provider,
) -> ServerHandle:
    """Rent a fresh server for the project and record its handle."""
    log = logger.bind(component="session")
    configs = config_store.load()
    config = select_cloud_config(configs, choose, override)

    key = Path(config.private_key_path).expanduser()
    if not key.is_file():
        raise ConfigError(f"private key missing at {key}")

    provider = provider_factory(config)
    handle = provider.rent(project_key, preinstall)
    log.info("Rented {id} at {host} from {cfg}", id=handle.id, host=handle.host, cfg=config.name)

    try:
        state = state_store.load()
        state.add(handle)
        state_store.save(state)
    except PersistenceError as e:
        log.error(
            "Server {id} ({host}) is running but could not be recorded; "
            "delete it from the provider console",
            id=handle.id, host=handle.host,
        )
        raise PersistenceError(
            f"server {handle.id} at {handle.host} was rented but not recorded "
            f"(it keeps running and billing until deleted): {e}"
        ) from e
    return handle


# =============================================================================
# End
# =============================================================================


def owning_config(configs: SavedConfigs, handle: ServerHandle) -> SavedConfig:
    """Config for ``handle``: by name, else any config of the handle's provider."""
    config = configs.get(handle.config)
    if config is not None and config.is_cloud:
        return config
    fallback = next((c for c in configs.items if c.mode is handle.provider.mode), None)
    if fallback is None:
        raise ConfigError(
            f"no {handle.provider} config left to delete server {handle.id} "
            f"(owned by missing config {handle.config!r})"
        )
    logger.bind(component="session").warning(
        "Config {old!r} is gone, deleting {id} with {new!r}",
        old=handle.config, id=handle.id, new=fallback.name,
    )
    return fallback


def end_session(
    config_store: ConfigStore,
    state_store: StateStore,
    choose: Chooser,
    *,
    provider_factory: ProviderFactory = get_provider,
) -> ServerHandle:
    """Delete one rented server and drop its handle."""
    state = state_store.load()
    if not state.projects:
        raise SessionError("no running sessions")

    if len(state.projects) == 1:
        handle = state.projects[0]
    else:
        index = choose("Select session to end", [str(h) for h in state.projects])
        if not 0 <= index < len(state.projects):
            raise SelectionNotFoundError(index)
        handle = state.projects[index]

    config = owning_config(config_store.load(), handle)
    provider_factory(config).delete(handle)

    state.remove_ids([handle.id])
    state_store.save(state)
    logger.bind(component="session").info("Ended session {id}", id=handle.id)
    return handle


# =============================================================================
# Status
# =============================================================================


def resolve_ip(host: str) -> str:
    """Resolve ``host``; dotless names also try the ``.local`` mDNS domain."""
    if host == "localhost":
        return "127.0.0.1"
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        pass

    names = [host]
    if "." not in host:
        names.append(f"{host}.local")
    for name in names:
        try:
            infos = socket.getaddrinfo(name, None)
        except socket.gaierror:
            continue
        if infos:
            return str(infos[0][4][0])
    raise ResolutionError(f"unresolvable host {host!r}")


def ping_host(
    host: str,
    *,
    timeout: int = PING_TIMEOUT,
    runner: CommandRunner | None = None,
) -> bool:
    """One ICMP echo with a short timeout."""
    ip = resolve_ip(host)
    result = (runner or SubprocessRunner()).capture(
        ["ping", "-c", "1", "-W", str(timeout), ip]
    )
    return result.returncode == 0


@dataclass(frozen=True, slots=True)
class Readiness:
    ready: bool
    cloud_init: str = ""
    error: str | None = None


def probe_readiness(handle: ServerHandle, key_path: Path, runner: CommandRunner) -> Readiness:
    """Check the sentinel; when absent, fetch ``cloud-init status``. Never raises."""
    transport = SSHTransport(
        host=handle.host, user=handle.username, key_path=key_path,
        port=handle.port, runner=runner,
    )
    try:
        if transport.run("test", "-f", READY_SENTINEL).returncode == 0:
            return Readiness(ready=True)
        out = transport.run("cloud-init", "status")
        return Readiness(ready=False, cloud_init=out.stdout.strip())
    except (OSError, subprocess.SubprocessError) as e:
        return Readiness(ready=False, error=str(e))


@dataclass(frozen=True, slots=True)
class ManualStatus:
    name: str
    host: str
    up: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class CloudStatus:
    config: SavedConfig
    handle: ServerHandle
    readiness: Readiness


@dataclass
class StatusReport:
    manual: list[ManualStatus] = field(default_factory=list)
    cloud: list[CloudStatus] = field(default_factory=list)
    pruned: list[ServerHandle] = field(default_factory=list)


type Pinger = Callable[[str], bool]
type ReadinessProbe = Callable[[ServerHandle, Path], Readiness]


def status(
    config_store: ConfigStore,
    state_store: StateStore,
    *,
    provider_factory: ProviderFactory = get_provider,
    pinger: Pinger | None = None,
    probe: ReadinessProbe | None = None,
) -> StatusReport:
    """Report manual host liveness and reconcile rented servers.

    Handles whose config is gone or whose server no longer exists are
    pruned in one batch; the state file is rewritten only if something was
    pruned. A failing ``exists`` call propagates: unknown is not absent.
    """
    log = logger.bind(component="status")
    runner = SubprocessRunner()
    pinger = pinger or (lambda host: ping_host(host, runner=runner))
    probe = probe or (lambda handle, key: probe_readiness(handle, key, runner))

    configs = config_store.load()
    state = state_store.load()
    report = StatusReport()

    for candidate in manual_candidates(configs):
        name, host = candidate.config.name, candidate.data.host
        try:
            report.manual.append(ManualStatus(name, host, up=pinger(host)))
        except (ResolutionError, OSError) as e:
            log.warning("Failed to probe {host}: {err}", host=host, err=e)
            report.manual.append(ManualStatus(name, host, up=False, error=str(e)))

    for handle in state.projects:
        config = configs.get(handle.config)
        if config is None or not config.is_cloud:
            log.info("Pruning {id}: config {cfg!r} is gone", id=handle.id, cfg=handle.config)
            report.pruned.append(handle)
            continue
        if not provider_factory(config).exists(handle):
            log.info("Pruning {id}: server no longer exists", id=handle.id)
            report.pruned.append(handle)
            continue
        key = Path(config.private_key_path).expanduser()
        report.cloud.append(CloudStatus(config, handle, probe(handle, key)))

    if report.pruned:
        state.remove_ids(h.id for h in report.pruned)
        state_store.save(state)

    return report
