"""Remote execution protocol for ``run``, ``build`` and ``clean``.

Strictly sequential, no retries:

1. resolve the endpoint,
2. derive the per-project build path from the remote ``$HOME``,
3. upsync the project tree (mirror with deletion),
4. run ``cargo <command>`` with the terminal attached,
5. downsync the requested artifact directory and the lock file.

A failure in steps 1-3 aborts before anything runs remotely (apart from the
idempotent ``mkdir -p``). The artifact copy-back failing is an error even
when the remote command succeeded; the lock file copy failing is only logged.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from cargo_remote.config.store import ConfigStore
from cargo_remote.constants import (
    ARTIFACT_DIR,
    DEFAULT_BUILD_ENV,
    DEFAULT_MANIFEST,
    DEFAULT_TOOLCHAIN,
    LOCK_FILE,
    REMOTE_BUILDS_DIR,
)
from cargo_remote.core.exceptions import (
    EmptyHomeError,
    ProjectError,
    RemoteExecError,
    TransferError,
)
from cargo_remote.infra.ssh import CommandRunner, SSHTransport, SubprocessRunner, sh_quote
from cargo_remote.prompt import Chooser
from cargo_remote.resolver import resolve_endpoint
from cargo_remote.state import StateStore


@dataclass(frozen=True, slots=True)
class ExecOptions:
    """Per-invocation options shared by run, build and clean.

    Attributes:
        build_env: Environment prefix for the remote cargo call.
        toolchain: Channel passed to ``rustup default`` (best effort).
        copy_back: Subdirectory of ``target/`` to copy back, e.g. "release".
        no_copy_lock: Skip copying ``Cargo.lock`` back.
        manifest_path: Manifest used to locate the workspace root.
        hidden: Also transfer dotfiles and dot-directories.
        config: Restrict endpoint resolution to this config name.
    """

    build_env: str = DEFAULT_BUILD_ENV
    toolchain: str = DEFAULT_TOOLCHAIN
    copy_back: str | None = None
    no_copy_lock: bool = False
    manifest_path: Path = Path(DEFAULT_MANIFEST)
    hidden: bool = False
    config: str | None = None


@dataclass(frozen=True, slots=True)
class RemoteSessionSpec:
    """Everything one remote execution needs. Built per call, never persisted."""

    project_dir: Path
    transport: SSHTransport
    build_path: str
    command: str
    options: tuple[str, ...] = ()
    build_env: str = DEFAULT_BUILD_ENV
    toolchain: str = DEFAULT_TOOLCHAIN
    copy_back: str | None = None
    no_copy_lock: bool = False
    hidden: bool = False

    @property
    def excludes(self) -> tuple[str, ...]:
        if self.hidden:
            return (ARTIFACT_DIR,)
        return (ARTIFACT_DIR, ".*", "*/.*")


# =============================================================================
# Project identity
# =============================================================================


def metadata_dir(manifest_path: Path, runner: CommandRunner | None = None) -> Path:
    """Workspace root of the Cargo project owning ``manifest_path``."""
    argv = [
        "cargo", "metadata", "--no-deps", "--format-version", "1",
        "--manifest-path", str(manifest_path),
    ]
    try:
        result = (runner or SubprocessRunner()).capture(argv)
    except OSError as e:
        raise ProjectError(f"could not run cargo metadata: {e}") from e
    if result.returncode != 0:
        raise ProjectError(f"cargo metadata failed: {result.stderr.strip()}")
    try:
        return Path(json.loads(result.stdout)["workspace_root"])
    except (ValueError, KeyError, TypeError) as e:
        raise ProjectError(f"unexpected cargo metadata output: {e}") from e


def project_key(project_dir: Path) -> str:
    """Stable key for a local project root; different paths never share one."""
    absolute = os.path.abspath(project_dir)
    return hashlib.sha256(absolute.encode()).hexdigest()[:16]


# =============================================================================
# Protocol steps
# =============================================================================


def remote_home(transport: SSHTransport) -> str:
    try:
        result = transport.run("bash -lc 'printf %s \"$HOME\"'")
    except OSError as e:
        raise RemoteExecError(f"could not start ssh to {transport.target}: {e}") from e
    if result.returncode != 0:
        raise RemoteExecError(
            f"could not get remote HOME on {transport.target}: {result.stderr.strip()}"
        )
    home = result.stdout.strip()
    if not home:
        raise EmptyHomeError(transport.target)
    return home


def build_path_for(home: str, key: str) -> str:
    return f"{home.rstrip('/')}/{REMOTE_BUILDS_DIR}/{key}/"


def upsync(spec: RemoteSessionSpec) -> None:
    """Mirror the project tree to the build path, deleting remote-only files."""
    t = spec.transport
    log = logger.bind(component="remote")

    # mkdir -p is idempotent; a real problem shows up in the rsync below
    try:
        t.run(f"mkdir -p {sh_quote(spec.build_path.rstrip('/'))}")
    except OSError as e:
        raise RemoteExecError(f"could not start ssh to {t.target}: {e}") from e

    log.info("Syncing {src} to {dst}", src=spec.project_dir, dst=t.remote_path(spec.build_path))
    try:
        code = t.rsync(
            f"{spec.project_dir}/",
            t.remote_path(spec.build_path),
            delete=True,
            excludes=spec.excludes,
        )
    except OSError as e:
        raise TransferError(f"rsync failed to start: {e}") from e
    if code != 0:
        raise TransferError(f"rsync upload failed with exit code {code}")


def cargo_command(spec: RemoteSessionSpec) -> str:
    """Remote shell command running cargo in the build path."""
    args = " ".join(sh_quote(a) for a in spec.options)
    script = (
        f"cd {sh_quote(spec.build_path)} || exit 1; "
        f"rustup default {sh_quote(spec.toolchain)} >/dev/null 2>&1 || true; "
        f"{spec.build_env} cargo {spec.command} {args}"
    ).rstrip()
    return f"bash -lc {sh_quote(script)}"


def run_cargo(spec: RemoteSessionSpec) -> int:
    """Run cargo remotely with the terminal attached; signal death maps to 1."""
    try:
        code = spec.transport.run_interactive(cargo_command(spec))
    except OSError as e:
        raise RemoteExecError(f"could not start ssh to {spec.transport.target}: {e}") from e
    return code if code >= 0 else 1


def downsync(spec: RemoteSessionSpec, exit_code: int) -> None:
    """Copy the artifact directory and the lock file back."""
    t = spec.transport
    log = logger.bind(component="remote")
    remote_root = spec.build_path.rstrip("/")

    if spec.copy_back:
        local = spec.project_dir / ARTIFACT_DIR / spec.copy_back
        local.mkdir(parents=True, exist_ok=True)
        source = t.remote_path(f"{remote_root}/{ARTIFACT_DIR}/{spec.copy_back}/")
        log.info("Copying back {src}", src=source)
        try:
            code = t.rsync(source, f"{local}/")
        except OSError as e:
            raise TransferError(
                f"copy-back failed to start (remote command exited {exit_code}): {e}",
                remote_exit_code=exit_code,
            ) from e
        if code != 0:
            raise TransferError(
                f"copy-back of {ARTIFACT_DIR}/{spec.copy_back} failed with exit code {code} "
                f"(remote command exited {exit_code})",
                remote_exit_code=exit_code,
            )

    if not spec.no_copy_lock:
        try:
            code = t.rsync(
                t.remote_path(f"{remote_root}/{LOCK_FILE}"),
                str(spec.project_dir / LOCK_FILE),
                compress=False,
            )
        except OSError as e:
            log.warning("Could not copy {lock} back: {err}", lock=LOCK_FILE, err=e)
        else:
            if code != 0:
                log.warning("Could not copy {lock} back (rsync exit {code})", lock=LOCK_FILE, code=code)


# =============================================================================
# Entry point
# =============================================================================


def remote_exec(
    command: str,
    args: tuple[str, ...] | list[str],
    options: ExecOptions,
    config_store: ConfigStore,
    state_store: StateStore,
    choose: Chooser,
    *,
    runner: CommandRunner | None = None,
    project_dir: Path | None = None,
) -> int:
    """Run ``cargo <command> <args>`` remotely; returns the remote exit code."""
    runner = runner or SubprocessRunner()
    log = logger.bind(component="remote")

    project_dir = project_dir or metadata_dir(options.manifest_path, runner)
    key = project_key(project_dir)

    endpoint = resolve_endpoint(
        config_store.load(), state_store.load(), choose, override=options.config
    )
    transport = SSHTransport(
        host=endpoint.host,
        user=endpoint.user,
        key_path=endpoint.private_key,
        port=endpoint.port,
        runner=runner,
    )

    spec = RemoteSessionSpec(
        project_dir=project_dir,
        transport=transport,
        build_path=build_path_for(remote_home(transport), key),
        command=command,
        options=tuple(args),
        build_env=options.build_env,
        toolchain=options.toolchain,
        copy_back=options.copy_back,
        no_copy_lock=options.no_copy_lock,
        hidden=options.hidden,
    )
    log.debug("Remote build path {path}", path=spec.build_path)

    upsync(spec)
    exit_code = run_cargo(spec)
    log.info("cargo {cmd} exited with {code}", cmd=command, code=exit_code)
    downsync(spec, exit_code)
    return exit_code
