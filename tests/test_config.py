from __future__ import annotations

from pathlib import Path

import pytest
from conftest import hetzner, manual

from cargo_remote.config import (
    ConfigStore,
    HetznerConfig,
    ManualConfig,
    Mode,
    Priority,
    SavedConfig,
    SavedConfigs,
)
from cargo_remote.config.model import parse_config_data
from cargo_remote.core.exceptions import ConfigError, PersistenceError

pytestmark = [pytest.mark.unit]


class TestParseConfigData:
    def test_manual_record(self):
        data = parse_config_data({
            "mode": "manual",
            "name": "box",
            "user": "dev",
            "host": "box.lan",
            "port": 22,
            "ssh_public_key_path": "/k.pub",
            "ssh_private_key_path": "/k",
        })
        assert isinstance(data, ManualConfig)
        assert data.host == "box.lan"

    def test_hetzner_record_without_username(self):
        data = parse_config_data({
            "mode": "hetzner",
            "name": "cloud",
            "api_key": "t",
            "location": "fsn1",
            "server_type": "cpx31",
            "image": "ubuntu-24.04",
            "ssh_key_name": "laptop",
            "local_private_key_path": "/k",
        })
        assert isinstance(data, HetznerConfig)
        assert data.username == "root"

    def test_unknown_shape_is_rejected(self):
        with pytest.raises(ConfigError, match="matches no known variant"):
            parse_config_data({"mode": "manual", "name": "x", "host": "h"})

    def test_invalid_mode(self):
        with pytest.raises(ConfigError, match="invalid mode"):
            SavedConfig.from_record({"mode": "aws", "name": "x"})

    def test_mode_must_match_fields(self):
        record = manual().to_record() | {"mode": "hetzner"}
        with pytest.raises(ConfigError, match="has mode 'hetzner' but ManualConfig fields"):
            SavedConfig.from_record(record)


class TestSavedConfig:
    def test_name_and_key_per_variant(self):
        assert manual().name == "box"
        assert manual().private_key_path == "/keys/id_box"
        assert hetzner().name == "cloud"
        assert hetzner().private_key_path == "/keys/id_cloud"

    def test_cloud_requires_mode_and_data_to_agree(self):
        mismatched = SavedConfig(mode=Mode.MANUAL, data=hetzner().data)
        assert hetzner().is_cloud
        assert not mismatched.is_cloud
        assert not mismatched.is_manual

    def test_record_is_flat(self):
        record = hetzner().to_record()
        assert record["mode"] == "hetzner"
        assert record["api_key"] == "secret-token"
        assert "data" not in record


class TestSavedConfigs:
    def test_priority_defaults_to_ask(self):
        assert SavedConfigs().effective_priority is Priority.ASK
        assert SavedConfigs(priority=Priority.CLOUD).effective_priority is Priority.CLOUD

    def test_upsert_replaces_by_name(self):
        configs = SavedConfigs(items=[manual()])
        configs.upsert(manual(host="10.9.9.9"))
        configs.upsert(hetzner())
        assert [c.name for c in configs.items] == ["box", "cloud"]
        assert configs.get("box").data.host == "10.9.9.9"

    def test_removing_default_clears_it(self):
        configs = SavedConfigs(default="box", items=[manual(), hetzner()])
        configs.remove(name="box")
        assert configs.default is None
        assert [c.name for c in configs.items] == ["cloud"]

    def test_removing_other_keeps_default(self):
        configs = SavedConfigs(default="box", items=[manual(), hetzner()])
        removed = configs.remove(index=1)
        assert removed.name == "cloud"
        assert configs.default == "box"

    def test_remove_errors(self):
        configs = SavedConfigs(items=[manual()])
        with pytest.raises(ConfigError, match="not found"):
            configs.remove(name="nope")
        with pytest.raises(ConfigError, match="index 3"):
            configs.remove(index=3)
        with pytest.raises(ConfigError, match="name or index"):
            configs.remove()

    def test_cloud_items(self):
        configs = SavedConfigs(items=[manual(), hetzner(), hetzner("other")])
        assert [c.name for c in configs.cloud_items()] == ["cloud", "other"]

    def test_cloud_items_need_cloud_data(self):
        mislabelled = SavedConfig(mode=Mode.HETZNER, data=manual().data)
        configs = SavedConfigs(items=[mislabelled, hetzner()])
        assert [c.name for c in configs.cloud_items()] == ["cloud"]


class TestConfigStore:
    def test_missing_file_loads_empty(self, config_store: ConfigStore):
        configs = config_store.load()
        assert configs.items == []
        assert configs.default is None
        assert configs.priority is None

    def test_round_trip_both_variants(self, config_store: ConfigStore):
        original = SavedConfigs(
            default="cloud", priority=Priority.MANUAL, items=[manual(), hetzner()]
        )
        config_store.save(original)
        assert config_store.load() == original

    def test_creates_parent_directory(self, tmp_path: Path):
        store = ConfigStore(tmp_path / "nested" / "dir" / "config.toml")
        store.save(SavedConfigs(items=[manual()]))
        assert store.path.is_file()

    def test_priority_is_case_insensitive(self, config_store: ConfigStore):
        config_store.path.write_text('priority = "Cloud"\nitems = []\n')
        assert config_store.load().priority is Priority.CLOUD

    def test_corrupt_file(self, config_store: ConfigStore):
        config_store.path.write_text("items = [\n")
        with pytest.raises(PersistenceError, match="could not read"):
            config_store.load()

    def test_invalid_record(self, config_store: ConfigStore):
        config_store.path.write_text('[[items]]\nmode = "manual"\nname = "x"\n')
        with pytest.raises(PersistenceError, match="invalid config file"):
            config_store.load()

    def test_mislabelled_record_is_rejected_on_load(self, config_store: ConfigStore):
        config_store.path.write_text(
            '[[items]]\nmode = "hetzner"\nname = "box"\nuser = "dev"\nhost = "box.lan"\n'
            'port = 22\nssh_public_key_path = "/k.pub"\nssh_private_key_path = "/k"\n'
        )
        with pytest.raises(PersistenceError, match="ManualConfig fields"):
            config_store.load()
