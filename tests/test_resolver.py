from __future__ import annotations

from pathlib import Path

import pytest
from conftest import chooser, handle, hetzner, manual, never_choose

from cargo_remote.config import Mode, Priority, SavedConfig, SavedConfigs
from cargo_remote.core.exceptions import (
    ConfigError,
    NoCandidatesError,
    NoConfiguredError,
    SelectionNotFoundError,
)
from cargo_remote.resolver import (
    CloudCandidate,
    ManualCandidate,
    cloud_candidates,
    resolve_endpoint,
    select_candidate,
)
from cargo_remote.state import SessionState

pytestmark = [pytest.mark.unit]


class TestCandidatePools:
    def test_handles_of_missing_configs_are_skipped(self):
        configs = SavedConfigs(items=[hetzner()])
        state = SessionState([handle("1"), handle("2", config="gone")])
        assert [c.handle.id for c in cloud_candidates(configs, state)] == ["1"]

    def test_config_edited_to_other_mode_is_not_a_cloud_owner(self):
        edited = SavedConfig(mode=Mode.MANUAL, data=hetzner().data)
        configs = SavedConfigs(items=[edited])
        assert cloud_candidates(configs, SessionState([handle()])) == []

    def test_labels(self):
        cloud = CloudCandidate(handle=handle(), config=hetzner())
        box = manual()
        assert cloud.label == "cloud [hetzner 192.0.2.10:22 id=42]"
        assert ManualCandidate(config=box, data=box.data).label == "box [manual 10.0.0.5:2222]"


class TestSelectCandidate:
    def test_nothing_configured(self):
        with pytest.raises(NoConfiguredError):
            select_candidate(SavedConfigs(), SessionState(), never_choose)

    def test_single_manual_under_ask_never_prompts(self):
        configs = SavedConfigs(items=[manual()])
        candidate = select_candidate(configs, SessionState(), never_choose)
        assert isinstance(candidate, ManualCandidate)

    def test_cloud_priority_without_servers(self):
        configs = SavedConfigs(priority=Priority.CLOUD, items=[manual(), hetzner()])
        with pytest.raises(NoCandidatesError, match="cargo remote begin"):
            select_candidate(configs, SessionState(), never_choose)

    def test_manual_priority_ignores_running_servers(self):
        configs = SavedConfigs(priority=Priority.MANUAL, items=[manual(), hetzner()])
        candidate = select_candidate(configs, SessionState([handle()]), never_choose)
        assert candidate.config.name == "box"

    def test_manual_priority_without_manual_configs(self):
        configs = SavedConfigs(priority=Priority.MANUAL, items=[hetzner()])
        with pytest.raises(NoCandidatesError, match="configure"):
            select_candidate(configs, SessionState([handle()]), never_choose)

    def test_cloud_priority_picks_among_servers(self):
        configs = SavedConfigs(priority=Priority.CLOUD, items=[hetzner()])
        seen: list[list[str]] = []
        state = SessionState([handle("1"), handle("2", host="192.0.2.11")])
        candidate = select_candidate(configs, state, chooser(1, seen))
        assert candidate.handle.id == "2"
        assert seen == [[
            "cloud [hetzner 192.0.2.10:22 id=1]",
            "cloud [hetzner 192.0.2.11:22 id=2]",
        ]]

    def test_ask_offers_cloud_first(self):
        configs = SavedConfigs(items=[manual(), hetzner()])
        seen: list[list[str]] = []
        candidate = select_candidate(configs, SessionState([handle()]), chooser(1, seen))
        assert seen == [["cloud [hetzner 192.0.2.10:22 id=42]", "box [manual 10.0.0.5:2222]"]]
        assert isinstance(candidate, ManualCandidate)

    def test_ask_with_nothing_usable(self):
        configs = SavedConfigs(items=[hetzner()])
        with pytest.raises(NoCandidatesError):
            select_candidate(configs, SessionState(), never_choose)

    def test_selection_out_of_range(self):
        configs = SavedConfigs(items=[manual("a"), manual("b")])
        with pytest.raises(SelectionNotFoundError):
            select_candidate(configs, SessionState(), chooser(5))

    def test_override_restricts_pools(self):
        configs = SavedConfigs(items=[manual("a"), manual("b")])
        candidate = select_candidate(configs, SessionState(), never_choose, override="b")
        assert candidate.config.name == "b"

    def test_unknown_override(self):
        configs = SavedConfigs(items=[manual()])
        with pytest.raises(ConfigError, match="'nope' not found"):
            select_candidate(configs, SessionState(), never_choose, override="nope")


class TestResolveEndpoint:
    def test_box_scenario(self):
        configs = SavedConfigs(items=[manual()])
        endpoint = resolve_endpoint(configs, SessionState(), never_choose)
        assert (endpoint.host, endpoint.user, endpoint.port) == ("10.0.0.5", "dev", 2222)
        assert endpoint.private_key == Path("/keys/id_box")
        assert endpoint.target == "dev@10.0.0.5"

    def test_cloud_uses_live_host_and_config_key(self):
        configs = SavedConfigs(priority=Priority.CLOUD, items=[hetzner()])
        endpoint = resolve_endpoint(configs, SessionState([handle()]), never_choose)
        assert endpoint.target == "root@192.0.2.10"
        assert endpoint.port == 22
        assert endpoint.private_key == Path("/keys/id_cloud")
