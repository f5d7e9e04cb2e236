from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from afkbot.client import load_client_factory
from afkbot.client.base import ClientFactory
from afkbot.config import BotConfig
from afkbot.core.orchestrator import SessionOrchestrator
from afkbot.items import KNOWN_ITEMS
from afkbot.logging import configure_logging
from afkbot.settings import Settings

console = Console()


def load_bot_config(config_path: Path | None, settings: Settings) -> BotConfig:
    """Load the YAML config, falling back to defaults when the default path is absent."""
    path = config_path or settings.config_path
    if not path.exists():
        if config_path is not None:
            raise click.ClickException(f"Config not found: {path}")
        return BotConfig()
    try:
        return BotConfig.from_yaml(path)
    except ValidationError as e:
        raise click.ClickException(f"Invalid config {path}:\n{e}") from e


def resolve_client_factory(client_path: str | None, config: BotConfig) -> ClientFactory:
    path = client_path or config.client.factory
    try:
        return load_client_factory(path)
    except (ValueError, ModuleNotFoundError) as e:
        raise click.BadParameter(str(e), param_hint="--client") from e


def _setup(config_path: Path | None, log_level: str | None) -> BotConfig:
    settings = Settings()
    configure_logging(settings, level=log_level)
    return load_bot_config(config_path, settings)


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config (default: $AFKBOT_CONFIG_PATH or ./config.yaml).",
)
client_option = click.option(
    "--client",
    "client_path",
    default=None,
    help="Protocol client factory as 'module:callable' (overrides client.factory).",
)
log_level_option = click.option("--log-level", default=None, help="Override AFKBOT_LOG_LEVEL.")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """afkbot command line interface."""


@cli.command("shell")
@config_option
@client_option
@log_level_option
def shell(config_path: Path | None, client_path: str | None, log_level: str | None) -> None:
    """Interactive shell with manual connect and dropper control."""
    from afkbot.shell import AfkShell, LoopRunner, print_chat

    config = _setup(config_path, log_level)
    factory = resolve_client_factory(client_path, config)

    runner = LoopRunner()
    orchestrator = SessionOrchestrator(config, factory, on_chat=print_chat)
    app = AfkShell(orchestrator, runner)

    # SIGTERM takes the same path as Ctrl+C.
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    runner.start()
    try:
        app.cmdloop()
    except KeyboardInterrupt:
        console.print("")
    finally:
        app.shutdown()


@cli.command("run")
@config_option
@client_option
@log_level_option
@click.option("--dropper/--no-dropper", default=True, show_default=True, help="Start the order dropper on ready.")
def run(config_path: Path | None, client_path: str | None, log_level: str | None, dropper: bool) -> None:
    """Headless mode: connect, keep the session alive, run until SIGINT/SIGTERM."""
    from afkbot.shell import print_chat

    config = _setup(config_path, log_level)
    factory = resolve_client_factory(client_path, config)

    async def _run() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        orchestrator = SessionOrchestrator(
            config,
            factory,
            on_chat=print_chat,
            auto_start_dropper=dropper,
        )
        console.print(f"[cyan]afkbot headless → {config.server.host}:{config.server.port}[/cyan]")
        try:
            await orchestrator.connect()
            await stop.wait()
        finally:
            console.print("[cyan]Shutting down[/cyan]")
            await orchestrator.shutdown()

    asyncio.run(_run())


@cli.group("config")
def config_group() -> None:
    """Config file helpers."""


@config_group.command("init")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path), default=Path("config.yaml"))
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def config_init(path: Path, force: bool) -> None:
    """Write the default configuration to PATH."""
    if path.exists() and not force:
        raise click.ClickException(f"{path} exists (use --force to overwrite)")
    BotConfig().to_yaml(path)
    console.print(f"[green]✓[/green] Wrote {path}")


@config_group.command("show")
@config_option
def config_show(config_path: Path | None) -> None:
    """Print the effective configuration."""
    config = load_bot_config(config_path, Settings())
    console.print_json(config.model_dump_json())


@cli.command("items")
def items() -> None:
    """List known target items."""
    table = Table(title="Known items", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Id", justify="right")
    for name, item in sorted(KNOWN_ITEMS.items()):
        table.add_row(name, str(item.id))
    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
