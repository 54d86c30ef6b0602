"""Tests for the typer CLI."""

import importlib.util
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from copybot.storage import CopyBotDB
from tests.mocks.factories import make_trade

CLI_PATH = Path(__file__).resolve().parents[1] / "scripts" / "python" / "cli.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("copybot_cli", CLI_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


runner = CliRunner()


def test_config_shows_named_profile(cli):
    result = runner.invoke(cli.app, ["config", "--profile", "aggressive"])
    assert result.exit_code == 0
    assert "max_position_size_usdc" in result.output
    assert "aggressive" in result.output


def test_config_unknown_profile_fails(cli):
    result = runner.invoke(cli.app, ["config", "--profile", "yolo"])
    assert result.exit_code == 1


def test_run_without_identity_exits_non_zero(cli, monkeypatch):
    monkeypatch.delenv("USER_ADDRESS", raising=False)
    monkeypatch.delenv("PROXY_WALLET", raising=False)
    result = runner.invoke(cli.app, ["run"])
    assert result.exit_code == 1
    assert "USER_ADDRESS" in result.output


def test_pending_lists_queue(cli):
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = str(Path(tmpdir) / "cli.db")
        CopyBotDB(db_path).insert_event(make_trade(title="Rain market"))

        result = runner.invoke(cli.app, ["pending", "--db-path", db_path])

        assert result.exit_code == 0
        assert "Pending trades (1)" in result.output
