"""Exception hierarchy for cargo-remote.

Every error raised by the orchestrator inherits from CargoRemoteError so the
CLI can surface all of them through a single except clause and map them to
an exit code. Nothing here is retried automatically.
"""

from __future__ import annotations


class CargoRemoteError(Exception):
    """Base exception for all cargo-remote errors."""


class ConfigError(CargoRemoteError):
    """Raised when a configuration is missing, ambiguous or incomplete."""


class ProjectError(CargoRemoteError):
    """Raised when the local Cargo project root cannot be determined."""


class PersistenceError(CargoRemoteError):
    """Raised when a store file cannot be read, parsed or written."""


class SessionError(CargoRemoteError):
    """Raised for session lifecycle problems (e.g. nothing to end)."""


# =============================================================================
# Endpoint resolution
# =============================================================================


class ResolutionError(CargoRemoteError):
    """Raised when no remote endpoint can be chosen."""


class NoConfiguredError(ResolutionError):
    def __init__(self) -> None:
        super().__init__("no configurations available; run `cargo remote configure`")


class NoCandidatesError(ResolutionError):
    """Raised when the pool selected by the priority policy is empty."""


class SelectionNotFoundError(ResolutionError):
    def __init__(self, selection: object) -> None:
        self.selection = selection
        super().__init__(f"selection not found: {selection!r}")


# =============================================================================
# Provider
# =============================================================================


class ProviderError(CargoRemoteError):
    """Raised when the cloud API rejects a request or answers unexpectedly."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(message)


# =============================================================================
# Remote execution
# =============================================================================


class TransferError(CargoRemoteError):
    """Raised when a file mirror (upsync or copy-back) fails.

    ``remote_exit_code`` is set when the remote command already ran.
    """

    def __init__(self, message: str, *, remote_exit_code: int | None = None) -> None:
        self.remote_exit_code = remote_exit_code
        super().__init__(message)


class RemoteExecError(CargoRemoteError):
    """Raised when a remote command produced no usable result."""


class EmptyHomeError(RemoteExecError):
    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"empty remote HOME on {target}")
