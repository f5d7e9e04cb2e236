# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Interactive REPL shell for manual session control."""

from __future__ import annotations

import asyncio
import cmd
import threading
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from rich.console import Console
from rich.table import Table
from rich.text import Text

from afkbot.core.orchestrator import ChatLine, SessionOrchestrator
from afkbot.errors import ConfigError, NotReadyError
from afkbot.items import KNOWN_ITEMS

console = Console()

T = TypeVar("T")

USAGE = (
    "Commands:\n"
    "  connect | disconnect | state | cmd <command>\n"
    "  dropper start | dropper stop | dropper status\n"
    "  afk [take <item>] | target <item> | order [args] | tpa [player]\n"
    "  slot <n> | slots <a,b,c> | exit"
)


class LoopRunner:
    """Event loop on a background thread.

    Every session operation is submitted to this loop, so the session core
    stays single-threaded while stdin blocks the main thread.
    """

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="afkbot-loop", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout)

    def call(self, fn: Callable[..., T], *args: Any) -> T:
        async def _invoke() -> T:
            return fn(*args)

        return self.run(_invoke())

    def stop(self) -> None:
        if not self.loop.is_running():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5.0)
        self.loop.close()


def print_chat(line: ChatLine) -> None:
    console.print(Text.assemble((line.source, "cyan"), ": ", line.message))


class AfkShell(cmd.Cmd):
    """Interactive REPL for one game session."""

    intro = "afkbot - type 'connect' to start, 'help' for commands, 'exit' to quit"
    prompt = "> "

    def __init__(self, orchestrator: SessionOrchestrator, runner: LoopRunner) -> None:
        super().__init__()
        self.orchestrator = orchestrator
        self.runner = runner
        self._closed = False

    def emptyline(self) -> bool:
        return False

    def default(self, line: str) -> None:
        console.print(USAGE)
        console.print(f"Items: {', '.join(sorted(KNOWN_ITEMS))} (or numeric id)")

    def do_connect(self, arg: str) -> None:
        """Connect to the server: connect"""
        config = self.orchestrator.config
        console.print(f"[cyan]Connecting to {config.server.host}:{config.server.port}[/cyan]")
        console.print(f"  Mode: {config.mode}")
        console.print(f"  Take slot: {config.dropper.take_slot}")
        console.print(f"  Auto-reconnect: {'enabled' if config.reconnect.enabled else 'disabled'}")
        if self.runner.run(self.orchestrator.connect()):
            console.print("[green]✓[/green] Connected, waiting for ready state...")
        elif not self.orchestrator.connected:
            console.print("[red]Connection failed[/red]")
        else:
            console.print("[yellow]Already connected[/yellow]")

    def do_disconnect(self, arg: str) -> None:
        """Disconnect and cancel auto-reconnect: disconnect"""
        if not self.runner.run(self.orchestrator.disconnect()):
            console.print("[yellow]Not connected[/yellow]")

    def do_state(self, arg: str) -> None:
        """Show session state: state"""
        status = self.runner.call(self.orchestrator.status)
        table = Table(title="Session", show_header=False)
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        table.add_row("Connected", str(status.connected))
        table.add_row("State", str(status.state.state))
        table.add_row("Commands available", str(status.state.commands_available))
        table.add_row("Inventory ready", str(status.state.inventory_ready))
        table.add_row("Window", str(status.state.window_id))
        table.add_row("Take slot", str(status.take_slot))
        table.add_row("Target slots", ", ".join(str(s) for s in status.target_slots))
        table.add_row("Target item", status.target_item.label() if status.target_item else "(auto)")
        table.add_row("Reconnect attempts", f"{status.reconnect.attempts}/{status.reconnect.max_attempts}")
        table.add_row("User initiated", str(status.reconnect.user_initiated))
        if status.detector is not None:
            latency = status.detector.last_latency_ms
            table.add_row("Heartbeat", f"running={status.detector.running} latency={latency}ms")
        if status.dropper is not None:
            table.add_row("Dropper", f"{status.dropper.phase} ({status.dropper.cycle_count}/{status.dropper.max_cycles})")
        console.print(table)

    def do_cmd(self, arg: str) -> None:
        """Send a raw command: cmd <command>"""
        if not arg.strip():
            console.print("[yellow]Usage: cmd <command>[/yellow]")
            return
        self._send(arg.strip())

    def do_dropper(self, arg: str) -> None:
        """Control the order dropper: dropper start|stop|status"""
        action = arg.strip().lower()
        if action == "start":
            try:
                self.runner.call(self.orchestrator.start_dropper)
            except NotReadyError as e:
                console.print(f"[red]Cannot start dropper: {e}[/red]")
        elif action == "stop":
            self.runner.call(self.orchestrator.stop_dropper)
        elif action == "status":
            status = self.runner.call(self.orchestrator.dropper_status)
            if status is None:
                console.print("[yellow]Dropper not initialized - connect first[/yellow]")
            else:
                console.print(status.model_dump())
        else:
            console.print("[yellow]Usage: dropper start|stop|status[/yellow]")

    def do_afk(self, arg: str) -> None:
        """Go to the AFK area, optionally choosing the item: afk [take <item>]"""
        parts = arg.split()
        lowered = [p.lower() for p in parts]
        if "take" in lowered:
            index = lowered.index("take")
            if index + 1 >= len(parts):
                console.print("[yellow]Usage: afk take <item_name|item_id>[/yellow]")
                return
            if not self._set_target(parts[index + 1]):
                return

        item = self.orchestrator.target_item
        console.print(f"[cyan]Sending /afk (target: {item.label() if item else 'auto-detect'})[/cyan]")
        self._send("/afk")

    def do_target(self, arg: str) -> None:
        """Set the target item: target <item_name|item_id>"""
        if not arg.strip():
            item = self.orchestrator.target_item
            console.print(f"Current target: {item.label() if item else '(none)'}")
            console.print("[yellow]Usage: target <item_name|item_id>[/yellow]")
            return
        self._set_target(arg.strip())

    def do_order(self, arg: str) -> None:
        """Open the order menu: order [args]"""
        order = self.orchestrator.config.dropper.order_command
        self._send(f"{order} {arg.strip()}".strip())

    def do_tpa(self, arg: str) -> None:
        """Request a teleport: tpa [player]"""
        self._send(f"/tpa {arg.strip()}".strip())

    def do_slot(self, arg: str) -> None:
        """Set the container slot the dropper takes from: slot <index>"""
        try:
            slot = int(arg.strip())
        except ValueError:
            console.print("[yellow]Usage: slot <index> (0-based)[/yellow]")
            return
        try:
            self.runner.call(self.orchestrator.set_take_slot, slot)
        except ConfigError as e:
            console.print(f"[red]{e}[/red]")
            return
        console.print(f"[green]take_slot={slot}[/green]")

    def do_slots(self, arg: str) -> None:
        """Set the hotbar slots to drop: slots <a,b,c>"""
        try:
            slots = [int(part) for part in arg.replace(",", " ").split()]
        except ValueError:
            console.print("[yellow]Usage: slots <a,b,c> (hotbar 0-8)[/yellow]")
            return
        try:
            self.runner.call(self.orchestrator.set_target_slots, slots)
        except ConfigError as e:
            console.print(f"[red]{e}[/red]")
            return
        console.print(f"[green]target_slots={slots}[/green]")

    def do_exit(self, arg: str) -> bool:
        """Exit shell"""
        return True

    def do_quit(self, arg: str) -> bool:
        """Exit shell"""
        return True

    do_EOF = do_exit

    def shutdown(self) -> None:
        """Tear the session down and stop the loop. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        console.print("[cyan]Shutting down[/cyan]")
        self.runner.run(self.orchestrator.shutdown(), timeout=5.0)
        self.runner.stop()

    def _send(self, line: str) -> None:
        if not self.runner.call(self.orchestrator.send_command, line):
            state = self.orchestrator.state_machine.state
            console.print(f"[yellow]Not ready to send commands yet (state={state})[/yellow]")

    def _set_target(self, arg: str) -> bool:
        try:
            item = self.runner.call(self.orchestrator.set_target_item, arg)
        except ConfigError as e:
            console.print(f"[red]{e}[/red]")
            return False
        console.print(f"[green]Target item set to {item.label()}[/green]")
        return True
