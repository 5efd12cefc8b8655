from __future__ import annotations

from pathlib import Path

import pytest
from conftest import handle, hetzner, manual
from typer.testing import CliRunner

from cargo_remote import cli
from cargo_remote.config import ConfigStore, SavedConfigs
from cargo_remote.core.exceptions import TransferError
from cargo_remote.session import CloudStatus, ManualStatus, Readiness, StatusReport
from cargo_remote.state import SessionState, StateStore

pytestmark = [pytest.mark.unit]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CARGO_REMOTE_CONFIG_DIR", str(tmp_path))
    monkeypatch.setattr(cli, "configure_logging", lambda config: [])
    return tmp_path


@pytest.fixture
def store(isolated: Path) -> ConfigStore:
    return ConfigStore(isolated / "config.toml")


class TestConfigCommands:
    def test_list_unconfigured(self, runner: CliRunner):
        result = runner.invoke(cli.app, ["remote", "config", "list"])
        assert result.exit_code == 0
        assert "isn't configured" in result.stdout

    def test_list_marks_default(self, runner: CliRunner, store: ConfigStore):
        store.save(SavedConfigs(default="cloud", items=[manual(), hetzner()]))
        result = runner.invoke(cli.app, ["remote", "config", "list"])
        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["0 [ ] box manual", "1 [*] cloud hetzner"]

    def test_show_single_masks_api_key(self, runner: CliRunner, store: ConfigStore):
        store.save(SavedConfigs(items=[hetzner()]))
        result = runner.invoke(cli.app, ["remote", "config", "show"])
        assert result.exit_code == 0
        assert 'mode = "hetzner"' in result.stdout
        assert "secret-token" not in result.stdout

    def test_show_needs_selector_when_ambiguous(self, runner: CliRunner, store: ConfigStore):
        store.save(SavedConfigs(items=[manual(), hetzner()]))
        result = runner.invoke(cli.app, ["remote", "config", "show"])
        assert result.exit_code == 2
        assert "--name or --index" in result.output

    def test_show_by_index(self, runner: CliRunner, store: ConfigStore):
        store.save(SavedConfigs(items=[manual(), hetzner()]))
        result = runner.invoke(cli.app, ["remote", "config", "show", "--index", "0"])
        assert result.exit_code == 0
        assert 'host = "10.0.0.5"' in result.stdout

    def test_delete_default(self, runner: CliRunner, store: ConfigStore):
        store.save(SavedConfigs(default="box", items=[manual(), hetzner()]))
        result = runner.invoke(cli.app, ["remote", "config", "delete", "--name", "box"])
        assert result.exit_code == 0
        configs = store.load()
        assert configs.default is None
        assert [c.name for c in configs.items] == ["cloud"]

    def test_delete_unknown(self, runner: CliRunner, store: ConfigStore):
        store.save(SavedConfigs(items=[manual()]))
        result = runner.invoke(cli.app, ["remote", "config", "delete", "--name", "nope"])
        assert result.exit_code == 2
        assert len(store.load().items) == 1


class TestSessionCommands:
    def test_end_without_sessions(self, runner: CliRunner, store: ConfigStore):
        store.save(SavedConfigs(items=[hetzner()]))
        result = runner.invoke(cli.app, ["remote", "end"])
        assert result.exit_code == 3
        assert "no running sessions" in result.output

    def test_status_table(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch):
        report = StatusReport(
            manual=[ManualStatus("box", "10.0.0.5", up=True)],
            cloud=[CloudStatus(hetzner(), handle(), Readiness(ready=False, cloud_init="running"))],
            pruned=[handle("9")],
        )
        monkeypatch.setattr(cli, "status", lambda config_store, state_store: report)

        result = runner.invoke(cli.app, ["remote", "status"])

        assert result.exit_code == 0
        assert "box" in result.stdout
        assert "192.0.2.10:22" in result.stdout
        assert "booting" in result.stdout
        assert "Removed stale session" in result.stdout

    def test_status_prunes_orphans(
        self, runner: CliRunner, store: ConfigStore, isolated: Path
    ):
        state = StateStore(isolated / "servers.toml")
        state.save(SessionState([handle("1", config="deleted")]))

        result = runner.invoke(cli.app, ["remote", "status"])

        assert result.exit_code == 0
        assert state.load().projects == []


class TestExecCommands:
    def test_passes_options_and_exit_code(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ):
        calls = []

        def fake_exec(command, args, options, config_store, state_store, choose):
            calls.append((command, args, options))
            return 5

        monkeypatch.setattr(cli, "remote_exec", fake_exec)

        result = runner.invoke(
            cli.app, ["remote", "build", "-c", "release", "-h", "--", "--release", "-j", "2"]
        )

        assert result.exit_code == 5
        command, args, options = calls[0]
        assert command == "build"
        assert args == ["--release", "-j", "2"]
        assert options.copy_back == "release"
        assert options.hidden
        assert options.build_env == "RUST_BACKTRACE=1"
        assert options.toolchain == "stable"

    def test_unknown_flags_pass_through(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch):
        calls = []
        monkeypatch.setattr(
            cli, "remote_exec", lambda command, args, *rest: calls.append(args) or 0
        )

        result = runner.invoke(cli.app, ["remote", "run", "--release"])

        assert result.exit_code == 0
        assert calls == [["--release"]]

    def test_transfer_failure_exits_with_exec_band(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ):
        def failing(*args, **kwargs):
            raise TransferError("rsync upload failed with exit code 23")

        monkeypatch.setattr(cli, "remote_exec", failing)

        result = runner.invoke(cli.app, ["remote", "clean"])

        assert result.exit_code == 4
        assert "exit code 23" in result.output
