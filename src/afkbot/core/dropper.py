# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Order dropper: repeated order / take / drop cycle.

Flow per cycle:
1. Send the order command so the server opens its order GUI
2. Wait for container_open + inventory_content on the same window
3. Click the take slot to receive items
4. Wait for container_close (or force-close after a fallback delay)
5. Select and drop each target hotbar slot, in order
6. Schedule the next cycle
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from afkbot.client import packets
from afkbot.client.events import ClientEvent, EventBus, EventKind
from afkbot.core.timers import Timer
from afkbot.errors import CommandSendError
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.client.base import ProtocolClient
    from afkbot.config import DropperConfig
    from afkbot.core.commands import CommandSender

logger = get_logger(__name__)


class Phase(StrEnum):
    IDLE = "idle"
    ORDERING = "ordering"
    WAITING_FOR_GUI = "waiting_for_gui"
    TAKING = "taking"
    DROPPING = "dropping"


class DropperStatus(BaseModel):
    running: bool
    phase: Phase
    cycle_count: int
    max_cycles: int
    window_id: int | None
    slots_received: int
    drops: int


class OrderDropper:
    def __init__(
        self,
        client: ProtocolClient,
        command_sender: CommandSender,
        config: DropperConfig,
    ) -> None:
        self._client = client
        self._sender = command_sender
        self.config = config

        self.running = False
        self.phase = Phase.IDLE
        self.cycle_count = 0
        self.window_id: int | None = None
        self.container_slots: list[dict[str, Any]] = []
        self.drops = 0

        # Bumped on start/stop and on every phase abort; timer callbacks
        # compare against it before acting.
        self._epoch = 0
        self._gui_timer = Timer("dropper-gui-timeout")
        self._close_timer = Timer("dropper-close-fallback")
        self._cycle_timer = Timer("dropper-next-cycle")
        self._drop_task: asyncio.Task[None] | None = None

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(EventKind.CONTAINER_OPEN, self.on_container_open)
        bus.subscribe(EventKind.INVENTORY_CONTENT, self.on_inventory_content)
        bus.subscribe(EventKind.CONTAINER_CLOSE, self.on_container_close)

    def start(self) -> bool:
        if self.running:
            logger.warning("dropper_already_running")
            return False

        self.running = True
        self.cycle_count = 0
        self.drops = 0
        self.phase = Phase.IDLE
        self.window_id = None
        self._epoch += 1

        logger.info(
            "dropper_started",
            order_command=self.config.order_command,
            target_slots=self.config.target_slots,
            take_slot=self.config.take_slot,
            max_cycles=self.config.max_cycles,
        )
        self._start_cycle()
        return True

    def stop(self) -> None:
        was_running = self.running
        self.running = False
        self.phase = Phase.IDLE
        self.window_id = None
        self._epoch += 1
        self._gui_timer.cancel()
        self._close_timer.cancel()
        self._cycle_timer.cancel()
        task = self._drop_task
        self._drop_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if was_running:
            logger.info("dropper_stopped", cycles=self.cycle_count)

    def status(self) -> DropperStatus:
        return DropperStatus(
            running=self.running,
            phase=self.phase,
            cycle_count=self.cycle_count,
            max_cycles=self.config.max_cycles,
            window_id=self.window_id,
            slots_received=len(self.container_slots),
            drops=self.drops,
        )

    # ── container events ──

    def on_container_open(self, event: ClientEvent) -> None:
        if not self.running or self.phase != Phase.WAITING_FOR_GUI:
            return
        if self.window_id is not None:
            return
        self.window_id = event.window_id
        logger.info("dropper_container_opened", window_id=self.window_id)

    def on_inventory_content(self, event: ClientEvent) -> None:
        if not self.running or self.window_id is None or event.window_id != self.window_id:
            return

        self.container_slots = list(event.slots)
        logger.info("dropper_slots_received", window_id=self.window_id, slots=len(self.container_slots))

        if self.phase == Phase.WAITING_FOR_GUI:
            self._gui_timer.cancel()
            self.phase = Phase.TAKING
            self._take_from_container()

    def on_container_close(self, event: ClientEvent) -> None:
        if not self.running or self.window_id is None or event.window_id != self.window_id:
            return

        logger.info("dropper_container_closed", window_id=self.window_id)
        self.window_id = None
        self._close_timer.cancel()
        if self.phase == Phase.TAKING:
            self._begin_dropping()

    # ── phases ──

    def _start_cycle(self) -> None:
        if not self.running:
            return
        if self.cycle_count >= self.config.max_cycles:
            logger.info("dropper_max_cycles", max_cycles=self.config.max_cycles)
            self.stop()
            return

        self.cycle_count += 1
        logger.info("dropper_cycle", cycle=self.cycle_count, max_cycles=self.config.max_cycles)
        self.phase = Phase.ORDERING
        self._send_order()

    def _send_order(self) -> None:
        try:
            self._sender.send_command(self.config.order_command)
        except CommandSendError as e:
            logger.error("dropper_order_failed", error=str(e))
            self._schedule_next_cycle()
            return

        self.phase = Phase.WAITING_FOR_GUI
        epoch = self._epoch
        self._gui_timer.start(self.config.gui_timeout_ms, lambda: self._on_gui_timeout(epoch))

    def _on_gui_timeout(self, epoch: int) -> None:
        if epoch != self._epoch or self.phase != Phase.WAITING_FOR_GUI:
            return
        logger.warning("dropper_gui_timeout", timeout_ms=self.config.gui_timeout_ms, cycle=self.cycle_count)
        self.window_id = None
        self._schedule_next_cycle()

    def _take_from_container(self) -> None:
        if not self.running or self.window_id is None:
            return

        slot = self.config.take_slot
        if self._write(packets.INVENTORY_TRANSACTION, packets.inventory_transaction(self.window_id, slot)):
            logger.info("dropper_take_clicked", window_id=self.window_id, slot=slot)

        epoch = self._epoch
        self._close_timer.start(self.config.close_fallback_ms, lambda: self._on_close_fallback(epoch))

    def _on_close_fallback(self, epoch: int) -> None:
        if epoch != self._epoch or self.phase != Phase.TAKING:
            return
        logger.info("dropper_force_close", window_id=self.window_id)
        if self.window_id is not None:
            self._write(packets.CONTAINER_CLOSE, packets.container_close(self.window_id))
        self.window_id = None
        self._begin_dropping()

    def _begin_dropping(self) -> None:
        self.phase = Phase.DROPPING
        self._drop_task = asyncio.create_task(self._drop_items(self._epoch), name="dropper-drop")

    async def _drop_items(self, epoch: int) -> None:
        slots = list(self.config.target_slots)
        logger.info("dropper_dropping", slots=slots)
        try:
            for slot in slots:
                if epoch != self._epoch or not self.running:
                    return
                await self._drop_slot(slot, epoch)
                await asyncio.sleep(self.config.drop_delay_ms / 1000.0)
        except asyncio.CancelledError:
            return

        if epoch != self._epoch:
            return
        if self._drop_task is asyncio.current_task():
            self._drop_task = None
        logger.info("dropper_drop_complete", cycle=self.cycle_count)
        self._schedule_next_cycle()

    async def _drop_slot(self, slot: int, epoch: int) -> None:
        self._write(packets.MOB_EQUIPMENT, packets.mob_equipment(slot))
        await asyncio.sleep(self.config.select_delay_ms / 1000.0)
        if epoch != self._epoch:
            return
        if self._write(packets.PLAYER_ACTION, packets.player_action(packets.ACTION_DROP_STACK)):
            self.drops += 1
            logger.info("dropper_slot_dropped", slot=slot)

    def _schedule_next_cycle(self) -> None:
        if not self.running:
            return

        self._epoch += 1
        self._gui_timer.cancel()
        self._close_timer.cancel()
        self.phase = Phase.IDLE

        if self.cycle_count >= self.config.max_cycles:
            logger.info("dropper_max_cycles", max_cycles=self.config.max_cycles)
            self.stop()
            return

        epoch = self._epoch
        self._cycle_timer.start(self.config.cycle_delay_ms, lambda: self._on_next_cycle(epoch))

    def _on_next_cycle(self, epoch: int) -> None:
        if epoch != self._epoch:
            return
        self._start_cycle()

    def _write(self, name: str, payload: dict[str, Any]) -> bool:
        try:
            self._client.write(name, payload)
        except Exception as e:
            logger.error("dropper_write_failed", packet=name, error=str(e))
            return False
        return True
