"""cargo-remote - Build Cargo projects on a remote machine.

Example:

    from cargo_remote import ConfigStore, ExecOptions, StateStore, remote_exec
    from cargo_remote.prompt import choose

    code = remote_exec(
        "build", ["--release"], ExecOptions(copy_back="release"),
        ConfigStore.default(), StateStore.default(), choose,
    )
"""

# Configuration
from cargo_remote.config import (
    HetznerConfig,
    ManualConfig,
    Mode,
    Priority,
    SavedConfig,
    SavedConfigs,
)
from cargo_remote.config.store import ConfigStore

# Errors
from cargo_remote.core.exceptions import (
    CargoRemoteError,
    ConfigError,
    PersistenceError,
    ProviderError,
    ResolutionError,
    TransferError,
)

# Logging
from cargo_remote.logging import LogConfig, configure_logging

# Orchestration
from cargo_remote.remote import ExecOptions, remote_exec
from cargo_remote.resolver import Endpoint, resolve_endpoint
from cargo_remote.session import begin_session, end_session, status
from cargo_remote.state import ServerHandle, SessionState, StateStore

__version__ = "0.3.0"

__all__ = [
    "CargoRemoteError",
    "ConfigError",
    "ConfigStore",
    "Endpoint",
    "ExecOptions",
    "HetznerConfig",
    "LogConfig",
    "ManualConfig",
    "Mode",
    "PersistenceError",
    "Priority",
    "ProviderError",
    "ResolutionError",
    "SavedConfig",
    "SavedConfigs",
    "ServerHandle",
    "SessionState",
    "StateStore",
    "TransferError",
    "begin_session",
    "configure_logging",
    "end_session",
    "remote_exec",
    "resolve_endpoint",
    "status",
]
