# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the command line interface and the interactive shell."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from afkbot.cli import cli, load_bot_config
from afkbot.client.events import EventKind
from afkbot.config import BotConfig, HeartbeatConfig
from afkbot.core.orchestrator import SessionOrchestrator
from afkbot.settings import Settings
from afkbot.shell import AfkShell, LoopRunner
from tests.fakes import ClientPool

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


def test_config_init_and_show(tmp_path: Path) -> None:
    """Test writing the default config and printing it back."""
    runner = CliRunner()
    path = tmp_path / "bot.yaml"

    result = runner.invoke(cli, ["config", "init", str(path)])
    assert result.exit_code == 0, result.output
    assert BotConfig.from_yaml(path) == BotConfig()

    result = runner.invoke(cli, ["config", "init", str(path)])
    assert result.exit_code != 0
    assert "exists" in result.output

    assert runner.invoke(cli, ["config", "init", str(path), "--force"]).exit_code == 0

    result = runner.invoke(cli, ["config", "show", "--config", str(path)])
    assert result.exit_code == 0, result.output
    assert '"order_command": "/order"' in result.output


def test_config_show_missing_explicit_path(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["config", "show", "--config", str(tmp_path / "missing.yaml")])
    assert result.exit_code != 0
    assert "Config not found" in result.output


def test_items_lists_known_blocks() -> None:
    result = CliRunner().invoke(cli, ["items"])
    assert result.exit_code == 0
    assert "amethyst_block" in result.output
    assert "582" in result.output


def test_load_bot_config_defaults_and_errors(tmp_path: Path) -> None:
    """Test default fallback and invalid YAML values."""
    settings = Settings(config_path=tmp_path / "absent.yaml")
    assert load_bot_config(None, settings) == BotConfig()

    bad = tmp_path / "bad.yaml"
    bad.write_text("dropper:\n  target_slots: [12]\n")
    result = CliRunner().invoke(cli, ["config", "show", "--config", str(bad)])
    assert result.exit_code != 0
    assert "Invalid config" in result.output


def test_run_rejects_bad_client_factory(tmp_path: Path) -> None:
    path = tmp_path / "bot.yaml"
    BotConfig().to_yaml(path)
    result = CliRunner().invoke(cli, ["run", "--config", str(path), "--client", "not-a-path"])
    assert result.exit_code == 2
    assert "--client" in result.output


@pytest.fixture
def shell(fast_config: BotConfig, client_pool: ClientPool) -> Iterator[AfkShell]:
    config = fast_config.model_copy(
        update={"heartbeat": HeartbeatConfig(interval_ms=60_000, timeout_ms=60_000, grace_ms=60_000)}
    )
    runner = LoopRunner()
    runner.start()
    app = AfkShell(SessionOrchestrator(config, client_pool), runner)
    yield app
    app.shutdown()
    app.shutdown()


def test_shell_session_commands(
    shell: AfkShell, client_pool: ClientPool, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test connect, commands and settings through the REPL."""
    shell.onecmd("order")
    assert "Not ready" in capsys.readouterr().out

    shell.onecmd("connect")
    assert "Connected" in capsys.readouterr().out
    shell.runner.call(client_pool.last.push, EventKind.SPAWN)

    shell.onecmd("order")
    shell.onecmd("tpa Alex")
    shell.onecmd("cmd spawn")
    shell.onecmd("afk take diamond")
    assert client_pool.last.commands() == ["/order", "/tpa Alex", "/spawn", "/afk"]
    assert "diamond_block" in capsys.readouterr().out

    shell.onecmd("slot 3")
    shell.onecmd("slots 1,2")
    assert shell.orchestrator.config.dropper.take_slot == 3
    assert shell.orchestrator.config.dropper.target_slots == [1, 2]

    shell.onecmd("slots 1,9")
    shell.onecmd("target dirt")
    out = capsys.readouterr().out
    assert "target_slots" in out
    assert "Unknown item" in out
    assert shell.orchestrator.config.dropper.target_slots == [1, 2]

    shell.onecmd("dropper start")
    assert client_pool.last.commands()[-1] == "/order"
    shell.onecmd("state")
    assert "Dropper" in capsys.readouterr().out

    shell.onecmd("disconnect")
    assert not shell.orchestrator.connected
    assert shell.onecmd("exit")


def test_shell_unknown_command_prints_usage(shell: AfkShell, capsys: pytest.CaptureFixture[str]) -> None:
    shell.onecmd("bogus")
    assert "Commands:" in capsys.readouterr().out
    shell.onecmd("dropper status")
    assert "connect first" in capsys.readouterr().out


def test_shell_order_uses_configured_command(
    shell: AfkShell, client_pool: ClientPool, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test connect shows the mode and order follows dropper.order_command."""
    shell.orchestrator.config = shell.orchestrator.config.with_dropper(order_command="/shop")
    shell.onecmd("connect")
    assert "Mode: headless" in capsys.readouterr().out
    shell.runner.call(client_pool.last.push, EventKind.SPAWN)

    shell.onecmd("order 2")
    shell.onecmd("order")
    assert client_pool.last.commands() == ["/shop 2", "/shop"]
