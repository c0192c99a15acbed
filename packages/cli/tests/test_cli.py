"""Tests for the CLI entry point."""

import subprocess
from unittest.mock import MagicMock, patch

import yaml
from click.testing import CliRunner
from rich.console import Console

from prinbox_cli.cli import _build_store, main
from prinbox_core.models import Column, InboxState, QuerySource
from prinbox_core.scheduler import PollResult
from prinbox_store.codec import state_to_dict
from prinbox_store.gist import GistStore
from prinbox_store.json_file import JSONFileStore
from prinbox_store.memory import MemoryStore


def _make_config(github_token="tok", store="memory", state_path="/tmp/prinbox-test/inbox-state.json"):
    return {
        "github_token": github_token,
        "slack_token": None,
        "store": store,
        "state_path": state_path,
        "gist_id": None,
        "max_concurrency": 5,
        "search_limit": 50,
        "slack_lookback_days": 7,
    }


def _patch_common(mocker, config=None, token="tok", state=None):
    """Patch load_config, token resolution and _build_store for most tests."""
    cfg = config or _make_config()
    mocker.patch("prinbox_core.config.load_config", return_value=cfg)
    mocker.patch("prinbox_cli.auth.resolve_github_token", return_value=token)
    store = MemoryStore(state_to_dict(state) if state is not None else None)
    mocker.patch("prinbox_cli.cli._build_store", return_value=store)
    return cfg, store


def _seeded_state():
    from prinbox_core.inbox import add_pr, add_source

    state = add_source(InboxState(), QuerySource(id="q1", name="Reviews", query="is:open"))
    return add_pr(state, "owner/repo#1", "2026-01-15T12:00:00+00:00")


# ---------------------------------------------------------------------------
# PR commands
# ---------------------------------------------------------------------------


class TestPRCommands:
    def test_add_tracks_pr(self, mocker):
        _, store = _patch_common(mocker)

        result = CliRunner().invoke(main, ["add", "https://github.com/owner/repo/pull/7"])

        assert result.exit_code == 0, result.output
        assert "Added" in result.output
        assert store.load().get_pr("owner/repo#7") is not None

    def test_add_rejects_bad_reference(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["add", "not-a-pr"])

        assert result.exit_code != 0
        assert "Invalid PR reference" in result.output

    def test_move_to_reviewed(self, mocker):
        _, store = _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["move", "owner/repo#1", "reviewed"])

        assert result.exit_code == 0, result.output
        pr = store.load().get_pr("owner/repo#1")
        assert pr.column == Column.REVIEWED
        assert pr.reviewed_at is not None

    def test_move_unknown_pr(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["move", "owner/repo#99", "done"])

        assert result.exit_code != 0
        assert "not in the inbox" in result.output

    def test_move_rejects_unknown_column(self, mocker):
        _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["move", "owner/repo#1", "archived"])

        assert result.exit_code != 0

    def test_ignore(self, mocker):
        _, store = _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["ignore", "owner/repo#1"])

        assert result.exit_code == 0, result.output
        state = store.load()
        assert state.get_pr("owner/repo#1") is None
        assert "owner/repo#1" in state.ignored_pr_ids


class TestBoardCommand:
    def test_empty_board(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["board"])

        assert result.exit_code == 0
        assert "No pull requests" in result.output

    def test_shows_prs(self, mocker):
        _patch_common(mocker, state=_seeded_state())
        mocker.patch("prinbox_cli.commands.board.console", Console(width=200))

        result = CliRunner().invoke(main, ["board"])

        assert result.exit_code == 0, result.output
        assert "owner/repo#1" in result.output
        assert "inbox" in result.output

    def test_column_filter(self, mocker):
        _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["board", "--column", "done"])

        assert "No pull requests" in result.output


# ---------------------------------------------------------------------------
# Source commands
# ---------------------------------------------------------------------------


class TestSourceCommands:
    def test_list_empty(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["source", "list"])

        assert "No sources configured" in result.output

    def test_add_query(self, mocker):
        _, store = _patch_common(mocker)

        result = CliRunner().invoke(main, ["source", "add-query", "--name", "Mine", "--query", "is:open author:@me"])

        assert result.exit_code == 0, result.output
        sources = store.load().sources
        assert len(sources) == 1
        assert sources[0].query == "is:open author:@me"

    def test_add_channel(self, mocker):
        _, store = _patch_common(mocker)

        result = CliRunner().invoke(main, ["source", "add-channel", "--name", "Team", "--channel", "#code-reviews"])

        assert result.exit_code == 0, result.output
        assert store.load().sources[0].channel_name == "code-reviews"

    def test_list_shows_sources(self, mocker):
        _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["source", "list"])

        assert "Reviews" in result.output

    def test_disable_and_enable(self, mocker):
        _, store = _patch_common(mocker, state=_seeded_state())

        CliRunner().invoke(main, ["source", "disable", "q1"])
        assert store.load().sources[0].enabled is False

        CliRunner().invoke(main, ["source", "enable", "q1"])
        assert store.load().sources[0].enabled is True

    def test_update_query(self, mocker):
        _, store = _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["source", "update", "q1", "--query", "is:open team-review-requested:org/t"])

        assert result.exit_code == 0, result.output
        assert store.load().sources[0].query == "is:open team-review-requested:org/t"

    def test_update_wrong_field_for_source_type(self, mocker):
        _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["source", "update", "q1", "--channel", "general"])

        assert result.exit_code != 0
        assert "Cannot update" in result.output

    def test_update_requires_a_field(self, mocker):
        _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["source", "update", "q1"])

        assert result.exit_code != 0
        assert "Nothing to update" in result.output

    def test_remove_with_confirmation_declined(self, mocker):
        _, store = _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["source", "remove", "q1"], input="n\n")

        assert result.exit_code != 0
        assert len(store.load().sources) == 1

    def test_remove_with_yes(self, mocker):
        _, store = _patch_common(mocker, state=_seeded_state())

        result = CliRunner().invoke(main, ["source", "remove", "q1", "--yes"])

        assert result.exit_code == 0, result.output
        assert store.load().sources == ()

    def test_unknown_source(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["source", "disable", "nope"])

        assert result.exit_code != 0
        assert "No source with id nope" in result.output


# ---------------------------------------------------------------------------
# Polling commands
# ---------------------------------------------------------------------------


class TestPollCommands:
    def test_interval(self, mocker):
        _, store = _patch_common(mocker)

        result = CliRunner().invoke(main, ["interval", "120"])

        assert result.exit_code == 0, result.output
        assert store.load().poll_interval_ms == 120_000

    def test_interval_below_floor_noted(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["interval", "10"])

        assert "60s minimum" in result.output

    def test_interval_rejects_zero(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["interval", "0"])

        assert result.exit_code != 0

    def test_refresh_reports_summary_and_errors(self, mocker):
        cfg, _ = _patch_common(mocker)
        scheduler = MagicMock()
        scheduler.trigger_poll_now.return_value = PollResult(
            state=_seeded_state(), errors=["Error polling Team: Cannot access channel: x"]
        )
        build = mocker.patch("prinbox_core.factory.build_scheduler", return_value=scheduler)

        result = CliRunner().invoke(main, ["refresh"])

        assert result.exit_code == 0, result.output
        assert build.call_args.args[1] is cfg
        assert "Cannot access channel" in result.output
        assert "Poll complete" in result.output
        assert "inbox: 1" in result.output

    def test_refresh_failure(self, mocker):
        _patch_common(mocker)
        scheduler = MagicMock()
        scheduler.trigger_poll_now.return_value = PollResult(errors=["disk full"])
        mocker.patch("prinbox_core.factory.build_scheduler", return_value=scheduler)

        result = CliRunner().invoke(main, ["refresh"])

        assert result.exit_code != 0
        assert "disk full" in result.output
        assert "Poll did not complete" in result.output


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


class TestInitCommand:
    def test_writes_config_and_adds_source(self, mocker):
        _, store = _patch_common(mocker)
        runner = CliRunner()

        with runner.isolated_filesystem():
            result = runner.invoke(main, ["init"], input="memory\ny\nis:open review-requested:@me\n")
            written = yaml.safe_load(open(".prinbox.yml").read())

        assert result.exit_code == 0, result.output
        assert written == {"store": "memory"}
        sources = store.load().sources
        assert [s.name for s in sources] == ["Review requests"]

    def test_gist_store_records_created_gist(self, mocker):
        _patch_common(mocker)
        mocker.patch("prinbox_cli.commands.init._create_inbox_gist", return_value="gist123")
        runner = CliRunner()

        with runner.isolated_filesystem():
            result = runner.invoke(main, ["init"], input="gist\nn\n")
            written = yaml.safe_load(open(".prinbox.yml").read())

        assert result.exit_code == 0, result.output
        assert written == {"store": "gist", "gist_id": "gist123"}

    def test_preserves_existing_keys(self, mocker):
        _patch_common(mocker)
        runner = CliRunner()

        with runner.isolated_filesystem():
            with open(".prinbox.yml", "w") as f:
                f.write("search_limit: 20\n")
            runner.invoke(main, ["init"], input="memory\nn\n")
            written = yaml.safe_load(open(".prinbox.yml").read())

        assert written == {"search_limit": 20, "store": "memory"}


# ---------------------------------------------------------------------------
# Token resolution
# ---------------------------------------------------------------------------


class TestResolveGithubToken:
    def test_returns_env_var_when_set(self, monkeypatch):
        from prinbox_cli.auth import resolve_github_token

        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    def test_falls_back_to_gh_cli(self, monkeypatch):
        from prinbox_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="gh-token\n")
            assert resolve_github_token() == "gh-token"

    def test_returns_none_when_gh_not_installed(self, monkeypatch):
        from prinbox_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            assert resolve_github_token() is None

    def test_returns_none_when_gh_times_out(self, monkeypatch):
        from prinbox_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="gh", timeout=5)):
            assert resolve_github_token() is None

    def test_returns_none_when_gh_returns_error(self, monkeypatch):
        from prinbox_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stdout="")
            assert resolve_github_token() is None


class TestSlackToken:
    def test_configured_token_reaches_subcommands(self, mocker, monkeypatch):
        from prinbox_core.config import load_config

        monkeypatch.delenv("SLACK_TOKEN", raising=False)
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-bot")
        cfg = load_config("/nonexistent/config.yaml")
        _patch_common(mocker, config=cfg)

        result = CliRunner().invoke(main, ["board"])

        assert result.exit_code == 0, result.output
        assert cfg["slack_token"] == "xoxb-bot"


# ---------------------------------------------------------------------------
# _build_store
# ---------------------------------------------------------------------------


class TestBuildStore:
    def test_returns_json_file_store_by_default(self, tmp_path):
        path = str(tmp_path / "inbox-state.json")
        store = _build_store({"state_path": path})
        assert isinstance(store, JSONFileStore)
        assert str(store.path) == path

    def test_returns_memory_store(self):
        assert isinstance(_build_store(_make_config(store="memory")), MemoryStore)

    def test_returns_gist_store_when_configured(self):
        with patch("prinbox_store.gist.Github"):
            store = _build_store({"store": "gist", "gist_id": "abc", "github_token": "tok", "state_path": "x"})
        assert isinstance(store, GistStore)

    def test_falls_back_to_file_when_gist_id_missing(self, tmp_path):
        store = _build_store({"store": "gist", "github_token": "tok", "state_path": str(tmp_path / "s.json")})
        assert isinstance(store, JSONFileStore)

    def test_falls_back_to_file_when_token_missing(self, tmp_path):
        store = _build_store({"store": "gist", "gist_id": "abc", "state_path": str(tmp_path / "s.json")})
        assert isinstance(store, JSONFileStore)
