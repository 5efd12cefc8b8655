"""Cloud-init user data for rented build servers.

The script installs the base build packages plus any extra apt packages,
installs a stable Rust toolchain through rustup and, as its very last step,
touches the readiness sentinel. The sentinel is the only signal that a server
is ready to build.
"""

from __future__ import annotations

from collections.abc import Sequence

from cargo_remote.constants import BASE_PACKAGES, READY_SENTINEL

RUSTUP_URL = "https://sh.rustup.rs"


def _runcmd(command: str) -> str:
    escaped = command.replace("\\", "\\\\").replace('"', '\\"')
    return f' - [bash, -lc, "{escaped}"]'


def _packages(preinstall: Sequence[str]) -> list[str]:
    extra = [p.strip() for p in preinstall if p.strip()]
    return [*BASE_PACKAGES, *extra]


def generate_user_data(preinstall: Sequence[str] = ()) -> str:
    """Build the ``#cloud-config`` document for a new build server."""
    lines = [
        "#cloud-config",
        "package_update: true",
        "package_upgrade: true",
        "packages:",
        *(f" - {p}" for p in _packages(preinstall)),
        "runcmd:",
    ]
    commands = (
        "export DEBIAN_FRONTEND=noninteractive && apt-get update && apt-get -yq upgrade",
        "apt-get install -yqq curl ca-certificates",
        f"curl --proto '=https' --tlsv1.2 -sSf {RUSTUP_URL} -o /root/rustup-init.sh",
        "chmod +x /root/rustup-init.sh",
        "/root/rustup-init.sh -y --profile minimal --default-toolchain stable",
        "echo 'export PATH=\"$HOME/.cargo/bin:$PATH\"' >> /root/.bashrc",
        "printf 'export PATH=\"/root/.cargo/bin:$PATH\"\\n' > /etc/profile.d/cargo.sh"
        " && chmod +x /etc/profile.d/cargo.sh",
        "/root/.cargo/bin/rustc --version && /root/.cargo/bin/cargo --version",
        f"touch {READY_SENTINEL}",
    )
    lines += [_runcmd(c) for c in commands]
    return "\n".join(lines) + "\n"
