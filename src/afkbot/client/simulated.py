# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process simulated server.

Answers the heartbeat command, opens an order GUI on the order command,
grants the take click and closes the container. Used for dry runs and tests.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from afkbot.client import packets
from afkbot.client.base import ProtocolClient
from afkbot.client.events import ClientEvent, EventKind
from afkbot.constants import PLAYER_INVENTORY_WINDOW
from afkbot.errors import ClientError
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.config import BotConfig

logger = get_logger(__name__)

PING_REPLY = "§aPong! §7Your ping is §f42ms"


class SimulatedClient(ProtocolClient):
    def __init__(
        self,
        *,
        latency_ms: int = 20,
        spawn_delay_ms: int = 50,
        order_command: str = "/order",
        heartbeat_command: str = "/ping",
        answer_heartbeat: bool = True,
        close_on_take: bool = True,
        open_gui: bool = True,
        fail_connects: int = 0,
        container_size: int = 54,
        first_window_id: int = 1,
    ) -> None:
        super().__init__()
        self.latency_ms = latency_ms
        self.spawn_delay_ms = spawn_delay_ms
        self.order_command = order_command.lower()
        self.heartbeat_command = heartbeat_command.lower()
        self.answer_heartbeat = answer_heartbeat
        self.close_on_take = close_on_take
        self.open_gui = open_gui
        self.fail_connects = fail_connects
        self.container_size = container_size
        self.written: list[tuple[str, dict[str, Any]]] = []
        self._next_window = first_window_id
        self._open_window: int | None = None
        self._connected = False
        self._handles: list[asyncio.TimerHandle] = []

    async def connect(self) -> None:
        await asyncio.sleep(self.latency_ms / 1000.0)
        if self.fail_connects > 0:
            self.fail_connects -= 1
            raise ConnectionError("simulated: connection refused")
        self._connected = True
        logger.debug("simulated_connected")
        self._later(
            self.spawn_delay_ms,
            ClientEvent(kind=EventKind.SPAWN),
            ClientEvent(
                kind=EventKind.INVENTORY_CONTENT,
                window_id=PLAYER_INVENTORY_WINDOW,
                slots=[{"network_id": 0, "count": 0} for _ in range(36)],
            ),
        )

    def write(self, name: str, payload: dict[str, Any]) -> None:
        if not self._connected:
            raise ClientError(f"simulated: not connected (write {name})")
        self.written.append((name, payload))
        if name == packets.COMMAND_REQUEST:
            self._on_command(str(payload.get("command", "")))
        elif name == packets.INVENTORY_TRANSACTION:
            if self.close_on_take and self._open_window is not None:
                window_id = self._open_window
                self._open_window = None
                self._later(self.latency_ms, ClientEvent(kind=EventKind.CONTAINER_CLOSE, window_id=window_id))
        elif name == packets.CONTAINER_CLOSE:
            if payload.get("window_id") == self._open_window:
                self._open_window = None

    def close(self) -> None:
        if self._connected:
            logger.debug("simulated_closed")
        self._connected = False
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    def is_connected(self) -> bool:
        return self._connected

    def drop(self, kind: EventKind = EventKind.KICK, message: str | None = "simulated kick") -> None:
        """Terminate the session from the server side."""
        self.close()
        self.emit(ClientEvent(kind=kind, message=message))

    def say(self, message: str, source_name: str | None = None) -> None:
        """Deliver a chat line after the simulated latency."""
        self._later(self.latency_ms, ClientEvent(kind=EventKind.TEXT, message=message, source_name=source_name))

    def written_names(self) -> list[str]:
        return [name for name, _ in self.written]

    def _on_command(self, command: str) -> None:
        lowered = command.strip().lower()
        if lowered == self.heartbeat_command:
            if self.answer_heartbeat:
                self._later(self.latency_ms, ClientEvent(kind=EventKind.TEXT, message=PING_REPLY))
            return
        if lowered.startswith(self.order_command):
            if self.open_gui:
                self._open_order_gui()
            return
        self._later(self.latency_ms, ClientEvent(kind=EventKind.TEXT, message=f"§7Executed {command}"))

    def _open_order_gui(self) -> None:
        window_id = self._next_window
        self._next_window += 1
        self._open_window = window_id
        slots = [{"network_id": 582, "count": 64} for _ in range(self.container_size)]
        self._later(
            self.latency_ms,
            ClientEvent(kind=EventKind.CONTAINER_OPEN, window_id=window_id),
            ClientEvent(kind=EventKind.INVENTORY_CONTENT, window_id=window_id, slots=slots),
        )

    def _later(self, delay_ms: int, *events: ClientEvent) -> None:
        loop = asyncio.get_running_loop()
        self._handles = [h for h in self._handles if not h.cancelled()]
        self._handles.append(loop.call_later(delay_ms / 1000.0, self._deliver, events))

    def _deliver(self, events: tuple[ClientEvent, ...]) -> None:
        if not self._connected:
            return
        for event in events:
            self.emit(ClientEvent(kind=EventKind.PACKET, packet_name=str(event.kind)))
            self.emit(event)


def create_client(config: BotConfig) -> SimulatedClient:
    """Client factory used by the CLI when no real protocol client is configured."""
    return SimulatedClient(
        order_command=config.dropper.order_command,
        heartbeat_command=config.heartbeat.command,
    )
