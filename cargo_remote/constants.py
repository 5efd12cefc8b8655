"""Centralized constants for cargo-remote.

Paths, remote contracts and CLI defaults live here so the stores, the
providers and the execution protocol agree on them.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final

# =============================================================================
# Local store locations
# =============================================================================

APP_NAME: Final = "cargo-remote"
CONFIG_DIR_ENV: Final = "CARGO_REMOTE_CONFIG_DIR"
LOG_LEVEL_ENV: Final = "CARGO_REMOTE_LOG"
CONFIG_FILE_NAME: Final = "config.toml"
STATE_FILE_NAME: Final = "servers.toml"


def config_dir() -> Path:
    """Directory holding config.toml and servers.toml."""
    if override := os.environ.get(CONFIG_DIR_ENV):
        return Path(override).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_NAME


# =============================================================================
# Remote host contract
# =============================================================================

READY_SENTINEL: Final = "/root/ready"
REMOTE_BUILDS_DIR: Final = "remote-builds"
ARTIFACT_DIR: Final = "target"
LOCK_FILE: Final = "Cargo.lock"
SSH_PORT: Final = 22
DEFAULT_USERNAME: Final = "root"
PING_TIMEOUT: Final = 2

# =============================================================================
# Hetzner Cloud
# =============================================================================

HETZNER_API_BASE: Final = "https://api.hetzner.cloud/v1"
SERVER_NAME_PREFIX: Final = "cargo-remote"
DEFAULT_LOCATION: Final = "nbg1"
DEFAULT_SERVER_TYPE: Final = "cpx21"
DEFAULT_IMAGE: Final = "ubuntu-22.04"
DEFAULT_SSH_KEY_NAME: Final = "key-1"

BASE_PACKAGES: Final = (
    "build-essential",
    "gcc",
    "make",
    "musl",
    "musl-tools",
    "libssl-dev",
    "pkg-config",
    "llvm",
    "clang",
    "git",
    "curl",
    "ca-certificates",
)

# =============================================================================
# Execution defaults
# =============================================================================

DEFAULT_BUILD_ENV: Final = "RUST_BACKTRACE=1"
DEFAULT_TOOLCHAIN: Final = "stable"
DEFAULT_MANIFEST: Final = "Cargo.toml"

# CLI exit code bands
EXIT_CONFIG: Final = 2
EXIT_SESSION: Final = 3
EXIT_EXEC: Final = 4
