"""SSH and rsync transport built on the system ``ssh``/``rsync`` binaries.

Service class pattern: the target (host, user, port, key) is bound at
construction and every call blocks until the child process exits. There are
no timeouts and no retries at this layer.
"""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from loguru import logger

SSH_OPTIONS: tuple[str, ...] = ("-o", "StrictHostKeyChecking=accept-new")


def sh_quote(s: str) -> str:
    """Quote ``s`` for a POSIX shell as a single word.

    Wraps in single quotes; each embedded ``'`` becomes ``'"'"'``.
    """
    return "'" + s.replace("'", "'\"'\"'") + "'"


# =============================================================================
# Process runner
# =============================================================================


class CommandRunner(Protocol):
    """Runs local commands. Swapped for a recorder in tests."""

    def capture(self, argv: Sequence[str]) -> subprocess.CompletedProcess[str]: ...

    def interactive(self, argv: Sequence[str]) -> int: ...


class SubprocessRunner:
    def capture(self, argv: Sequence[str]) -> subprocess.CompletedProcess[str]:
        logger.bind(component="ssh").debug("capture: {cmd}", cmd=shlex.join(argv))
        return subprocess.run(list(argv), capture_output=True, text=True)

    def interactive(self, argv: Sequence[str]) -> int:
        """Run with stdin/stdout/stderr inherited; return the raw return code."""
        logger.bind(component="ssh").debug("interactive: {cmd}", cmd=shlex.join(argv))
        return subprocess.run(list(argv)).returncode


# =============================================================================
# SSH Transport
# =============================================================================


@dataclass(frozen=True, slots=True)
class SSHTransport:
    """SSH/rsync access to one remote host.

    Example:
        >>> t = SSHTransport(host="10.0.0.5", user="root", key_path=Path("~/.ssh/id_ed25519"))
        >>> t.run("test", "-f", "/root/ready").returncode
        0
    """

    host: str
    user: str
    key_path: Path
    port: int = 22
    runner: CommandRunner = field(default_factory=SubprocessRunner, compare=False, repr=False)

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}"

    def ssh_argv(self, *command: str) -> list[str]:
        return [
            "ssh",
            *SSH_OPTIONS,
            "-i", str(self.key_path),
            "-p", str(self.port),
            self.target,
            *command,
        ]

    @property
    def rsync_shell(self) -> str:
        """Value for ``rsync -e``."""
        return shlex.join(["ssh", *SSH_OPTIONS, "-i", str(self.key_path), "-p", str(self.port)])

    def remote_path(self, path: str) -> str:
        return f"{self.target}:{path}"

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def run(self, *command: str) -> subprocess.CompletedProcess[str]:
        """Run a remote command, capturing its output."""
        return self.runner.capture(self.ssh_argv(*command))

    def run_interactive(self, command: str) -> int:
        """Run a remote command with the local terminal attached."""
        return self.runner.interactive(self.ssh_argv(command))

    # -------------------------------------------------------------------------
    # File mirroring
    # -------------------------------------------------------------------------

    def rsync(
        self,
        source: str,
        dest: str,
        *,
        delete: bool = False,
        compress: bool = True,
        excludes: Sequence[str] = (),
    ) -> int:
        """Mirror ``source`` to ``dest`` with rsync; returns its exit code."""
        argv = ["rsync", "-a"]
        if delete:
            argv.append("--delete")
        if compress:
            argv.append("--compress")
        argv += ["-e", self.rsync_shell]
        for pattern in excludes:
            argv += ["--exclude", pattern]
        argv += [source, dest]
        return self.runner.interactive(argv)
