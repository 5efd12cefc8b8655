"""Saved configuration model.

A saved configuration is a tagged union: ``mode`` names the kind of remote
(manual SSH host or a cloud provider) and ``data`` carries the matching
record. On disk the record is flat, ``mode`` next to the data fields, and the
data variant is recognised by its fields alone.
"""

from __future__ import annotations

from dataclasses import MISSING, asdict, dataclass, field, fields
from enum import StrEnum
from typing import Any

from cargo_remote.constants import DEFAULT_USERNAME
from cargo_remote.core.exceptions import ConfigError

# =============================================================================
# Enums
# =============================================================================


class Mode(StrEnum):
    MANUAL = "manual"
    HETZNER = "hetzner"

    @property
    def is_cloud(self) -> bool:
        return self is not Mode.MANUAL

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Priority(StrEnum):
    """Which pool the resolver prefers when both have candidates."""

    MANUAL = "manual"
    CLOUD = "cloud"
    ASK = "ask"


class ProviderKind(StrEnum):
    HETZNER = "hetzner"

    @property
    def mode(self) -> Mode:
        match self:
            case ProviderKind.HETZNER:
                return Mode.HETZNER


# =============================================================================
# Config data variants
# =============================================================================


@dataclass(frozen=True, slots=True)
class ManualConfig:
    """A pre-existing host reachable over SSH with a key pair."""

    name: str
    user: str
    host: str
    port: int
    ssh_public_key_path: str
    ssh_private_key_path: str

    def __str__(self) -> str:
        return f"SSHConfig({self.user}@{self.host}:{self.port})"


@dataclass(frozen=True, slots=True)
class HetznerConfig:
    """Template for renting Hetzner Cloud servers.

    Attributes:
        name: Config name.
        api_key: Hetzner Cloud project API token.
        location: Datacenter location (e.g. "nbg1").
        server_type: Server type (e.g. "cpx21").
        image: OS image; the bootstrap uses apt, so Ubuntu/Debian images.
        ssh_key_name: Name of the SSH key registered in the Hetzner account.
        local_private_key_path: Local private key matching ``ssh_key_name``.
        username: Login user on rented servers.
    """

    name: str
    api_key: str
    location: str
    server_type: str
    image: str
    ssh_key_name: str
    local_private_key_path: str
    username: str | None = DEFAULT_USERNAME

    def __str__(self) -> str:
        return f"HetznerConfig(location: {self.location}, server_type: {self.server_type})"


type ConfigData = ManualConfig | HetznerConfig


def _required_fields(cls: type) -> frozenset[str]:
    return frozenset(
        f.name for f in fields(cls) if f.default is MISSING and f.default_factory is MISSING
    )


def _all_fields(cls: type) -> frozenset[str]:
    return frozenset(f.name for f in fields(cls))


def parse_config_data(record: dict[str, Any]) -> ConfigData:
    """Recognise the data variant of a flat record by its fields."""
    keys = set(record) - {"mode"}
    for cls in (HetznerConfig, ManualConfig):
        if _required_fields(cls) <= keys <= _all_fields(cls):
            values = {k: record[k] for k in keys}
            if cls is ManualConfig:
                values["port"] = int(values["port"])
            return cls(**values)
    raise ConfigError(f"config record {record.get('name', '?')!r} matches no known variant")


# =============================================================================
# Saved configs
# =============================================================================


@dataclass(frozen=True, slots=True)
class SavedConfig:
    mode: Mode
    data: ConfigData

    @property
    def name(self) -> str:
        match self.data:
            case ManualConfig(name=name) | HetznerConfig(name=name):
                return name

    @property
    def private_key_path(self) -> str:
        match self.data:
            case ManualConfig():
                return self.data.ssh_private_key_path
            case HetznerConfig():
                return self.data.local_private_key_path

    @property
    def is_cloud(self) -> bool:
        """Mode is a cloud mode and the data is a cloud record."""
        match self.data:
            case HetznerConfig():
                return self.mode is Mode.HETZNER
            case ManualConfig():
                return False

    @property
    def is_manual(self) -> bool:
        return self.mode is Mode.MANUAL and isinstance(self.data, ManualConfig)

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {"mode": self.mode.value}
        record.update((k, v) for k, v in asdict(self.data).items() if v is not None)
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> SavedConfig:
        try:
            mode = Mode(record["mode"])
        except (KeyError, ValueError) as e:
            raise ConfigError(f"config record has invalid mode: {record.get('mode')!r}") from e
        data = parse_config_data(record)
        match mode, data:
            case (Mode.MANUAL, ManualConfig()) | (Mode.HETZNER, HetznerConfig()):
                return cls(mode=mode, data=data)
            case _:
                raise ConfigError(
                    f"config {data.name!r} has mode {mode.value!r} "
                    f"but {type(data).__name__} fields"
                )

    def __str__(self) -> str:
        return f"{self.mode.label} ({self.data})"


@dataclass
class SavedConfigs:
    """Every saved configuration plus the default name and priority policy.

    ``default`` should name an existing item; the resolver tolerates a
    dangling default and falls back.
    """

    default: str | None = None
    priority: Priority | None = None
    items: list[SavedConfig] = field(default_factory=list)

    @property
    def effective_priority(self) -> Priority:
        return self.priority or Priority.ASK

    def get(self, name: str) -> SavedConfig | None:
        return next((c for c in self.items if c.name == name), None)

    def index_of(self, name: str) -> int | None:
        return next((i for i, c in enumerate(self.items) if c.name == name), None)

    def upsert(self, config: SavedConfig) -> None:
        """Replace the config with the same name, or append it."""
        if (i := self.index_of(config.name)) is not None:
            self.items[i] = config
        else:
            self.items.append(config)

    def remove(self, *, name: str | None = None, index: int | None = None) -> SavedConfig:
        """Remove a config by name or index; clears ``default`` if it pointed there."""
        if name is not None:
            pos = self.index_of(name)
            if pos is None:
                raise ConfigError(f"config {name!r} not found")
        elif index is not None:
            if not 0 <= index < len(self.items):
                raise ConfigError(f"no config at index {index}")
            pos = index
        else:
            raise ConfigError("provide a config name or index")

        removed = self.items.pop(pos)
        if self.default == removed.name:
            self.default = None
        return removed

    def cloud_items(self) -> list[SavedConfig]:
        return [c for c in self.items if c.is_cloud]

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {}
        if self.default is not None:
            doc["default"] = self.default
        if self.priority is not None:
            doc["priority"] = self.priority.value
        doc["items"] = [c.to_record() for c in self.items]
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> SavedConfigs:
        raw_priority = doc.get("priority")
        try:
            priority = Priority(raw_priority.lower()) if raw_priority else None
        except ValueError as e:
            raise ConfigError(f"unknown priority {raw_priority!r}") from e
        return cls(
            default=doc.get("default"),
            priority=priority,
            items=[SavedConfig.from_record(r) for r in doc.get("items", [])],
        )
