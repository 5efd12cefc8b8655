"""Providers that rent and release remote build servers.

Example:
    from cargo_remote.providers import get_provider

    provider = get_provider(saved_config)
    handle = provider.rent(project_key, preinstall=["protobuf-compiler"])
"""

from cargo_remote.providers.base import ManualProvider, Provider, get_provider

__all__ = ["ManualProvider", "Provider", "get_provider"]
