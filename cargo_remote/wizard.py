"""Interactive ``configure`` wizard.

Asks for the priority policy (first run only), the mode and a name, then runs
the per-mode questions and upserts the result into the config store. The
Hetzner questions offer the account's locations, server types and SSH keys
when the API answers, and fall back to free text with sensible defaults when
it does not.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from loguru import logger

from cargo_remote.config.model import HetznerConfig, ManualConfig, Mode, Priority, SavedConfig
from cargo_remote.config.store import ConfigStore
from cargo_remote.constants import (
    DEFAULT_IMAGE,
    DEFAULT_LOCATION,
    DEFAULT_SERVER_TYPE,
    DEFAULT_SSH_KEY_NAME,
    DEFAULT_USERNAME,
    SSH_PORT,
)
from cargo_remote.core.exceptions import ConfigError, ProviderError
from cargo_remote.prompt import Prompter
from cargo_remote.providers.hetzner import HetznerClient
from cargo_remote.providers.hetzner.types import Location, ServerType

type ClientFactory = Callable[[str], HetznerClient]

PRIORITY_LABELS: dict[Priority, str] = {
    Priority.MANUAL: "Manual (prefer your own servers)",
    Priority.CLOUD: "Cloud (prefer rented servers)",
    Priority.ASK: "Ask (choose every time)",
}

CATALOGUE_WARNING = (
    "Could not query the {what}. The API key may be wrong or the network "
    "unreachable; this may cause problems later."
)


# =============================================================================
# Manual
# =============================================================================


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"invalid port {raw!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"invalid port {raw!r}")
    return port


def manual_wizard(name: str, prompter: Prompter) -> ManualConfig:
    host = prompter.text("Server host or IP")
    port = _parse_port(prompter.text("SSH port", default=str(SSH_PORT)))
    user = prompter.text("Username")
    prompter.warn("Only public key authentication is supported.")
    public_key = prompter.text("SSH public key path")
    private_default = public_key.removesuffix(".pub") if public_key.endswith(".pub") else None
    private_key = prompter.text("SSH private key path", default=private_default)
    return ManualConfig(
        name=name,
        user=user,
        host=host,
        port=port,
        ssh_public_key_path=public_key,
        ssh_private_key_path=private_key,
    )


# =============================================================================
# Hetzner
# =============================================================================


def _pick(
    prompter: Prompter, label: str, items: Sequence[Location | ServerType], default: str
) -> str:
    """Choose from the catalogue, or ask for a name when it is empty."""
    if not items:
        return prompter.text(label, default=default)
    return items[prompter.choose(label, [str(x) for x in items])].name


def hetzner_wizard(
    name: str,
    prompter: Prompter,
    client_factory: ClientFactory = HetznerClient,
) -> HetznerConfig:
    log = logger.bind(component="wizard")
    api_key = prompter.secret("Hetzner API key")

    with client_factory(api_key) as client:
        try:
            locations = client.list_locations()
        except ProviderError as e:
            log.debug("Location query failed: {err}", err=e)
            prompter.warn(CATALOGUE_WARNING.format(what="locations"))
            locations = []
        location = _pick(prompter, "Location", locations, DEFAULT_LOCATION)

        try:
            types = client.list_server_types()
        except ProviderError as e:
            log.debug("Server type query failed: {err}", err=e)
            prompter.warn(CATALOGUE_WARNING.format(what="server types"))
            types = []
        server_type = _pick(prompter, "Server type", types, DEFAULT_SERVER_TYPE)

        image = prompter.text(
            "Image (dependencies are installed with apt, Ubuntu recommended)",
            default=DEFAULT_IMAGE,
        )

        try:
            keys = client.list_ssh_keys()
        except ProviderError as e:
            log.debug("SSH key query failed: {err}", err=e)
            ssh_key_name = prompter.text("Hetzner SSH key name", default=DEFAULT_SSH_KEY_NAME)
        else:
            if not keys:
                raise ConfigError(
                    "no SSH keys in the Hetzner project; upload your public key first"
                )
            ssh_key_name = keys[prompter.choose("SSH key", [str(x) for x in keys])].name

    private_key = prompter.text("Local SSH private key path")
    return HetznerConfig(
        name=name,
        api_key=api_key,
        location=location,
        server_type=server_type,
        image=image,
        ssh_key_name=ssh_key_name,
        local_private_key_path=private_key,
        username=DEFAULT_USERNAME,
    )


# =============================================================================
# Entry point
# =============================================================================


def configure(
    store: ConfigStore,
    prompter: Prompter,
    *,
    client_factory: ClientFactory = HetznerClient,
) -> SavedConfig:
    """Run the wizard and persist the new (or replaced) configuration."""
    configs = store.load()

    if configs.priority is None:
        priorities = list(PRIORITY_LABELS)
        index = prompter.choose(
            "Which servers should be used when several are available?",
            list(PRIORITY_LABELS.values()),
        )
        configs.priority = priorities[index]

    modes = list(Mode)
    mode = modes[prompter.choose("What kind of remote server?", [m.label for m in modes])]
    name = prompter.text("Config name")

    match mode:
        case Mode.MANUAL:
            saved = SavedConfig(mode=mode, data=manual_wizard(name, prompter))
        case Mode.HETZNER:
            saved = SavedConfig(mode=mode, data=hetzner_wizard(name, prompter, client_factory))

    configs.upsert(saved)
    store.save(configs)
    logger.bind(component="wizard").info("Saved config {name}", name=saved.name)

    if len(configs.items) >= 2 and configs.default is None:
        if prompter.confirm("No default configuration is set. Set one now?"):
            index = prompter.choose(
                "Default configuration", [f"{c.name} {c}" for c in configs.items]
            )
            configs.default = configs.items[index].name
            store.save(configs)

    return saved
