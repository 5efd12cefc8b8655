"""Saved remote configurations and their TOML store."""

from cargo_remote.config.model import (
    ConfigData,
    HetznerConfig,
    ManualConfig,
    Mode,
    Priority,
    ProviderKind,
    SavedConfig,
    SavedConfigs,
)
from cargo_remote.config.store import ConfigStore

__all__ = [
    "ConfigData",
    "ConfigStore",
    "HetznerConfig",
    "ManualConfig",
    "Mode",
    "Priority",
    "ProviderKind",
    "SavedConfig",
    "SavedConfigs",
]
