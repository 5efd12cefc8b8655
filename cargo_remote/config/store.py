"""TOML persistence for saved configurations.

The store is read fully into memory, mutated by the caller and rewritten as
a whole. Writes are not atomic and not locked: two concurrent invocations
that both save can lose one update.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w
from loguru import logger

from cargo_remote.config.model import SavedConfigs
from cargo_remote.constants import CONFIG_FILE_NAME, config_dir
from cargo_remote.core.exceptions import ConfigError, PersistenceError

type RawDocument = dict[str, Any]


def read_toml(path: Path) -> RawDocument:
    """Read a TOML file; a missing file reads as an empty document."""
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise PersistenceError(f"could not read {path}: {e}") from e


def write_toml(path: Path, doc: RawDocument) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(tomli_w.dumps(doc))
    except OSError as e:
        raise PersistenceError(f"could not write {path}: {e}") from e


@dataclass(frozen=True, slots=True)
class ConfigStore:
    """Loads and saves ``SavedConfigs`` at an injected path."""

    path: Path

    @classmethod
    def default(cls) -> ConfigStore:
        return cls(config_dir() / CONFIG_FILE_NAME)

    def load(self) -> SavedConfigs:
        doc = read_toml(self.path)
        try:
            configs = SavedConfigs.from_document(doc)
        except (ConfigError, TypeError, ValueError) as e:
            raise PersistenceError(f"invalid config file {self.path}: {e}") from e
        logger.bind(component="config").debug(
            "Loaded {n} configs from {path}", n=len(configs.items), path=self.path
        )
        return configs

    def save(self, configs: SavedConfigs) -> None:
        write_toml(self.path, configs.to_document())
        logger.bind(component="config").debug("Saved configs to {path}", path=self.path)
