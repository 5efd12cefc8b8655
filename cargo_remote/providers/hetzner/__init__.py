"""Hetzner Cloud provider.

Example:
    from cargo_remote.providers.hetzner import HetznerProvider

    handle = HetznerProvider(config).rent(project_key, preinstall=[])
"""

from cargo_remote.providers.hetzner.client import HetznerClient
from cargo_remote.providers.hetzner.provider import HetznerProvider

__all__ = ["HetznerClient", "HetznerProvider"]
