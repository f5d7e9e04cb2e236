# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Mirror container activity into the session readiness flags."""

from __future__ import annotations

from typing import TYPE_CHECKING

from afkbot.client.events import ClientEvent, EventBus, EventKind
from afkbot.constants import PLAYER_INVENTORY_WINDOW
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.core.state import ConnectionStateMachine

logger = get_logger(__name__)


class GuiTracker:
    """Tracks which container window the server has open, independent of the dropper."""

    def __init__(self, state_machine: ConnectionStateMachine) -> None:
        self._sm = state_machine
        self.opened = 0

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(EventKind.CONTAINER_OPEN, self.on_container_open)
        bus.subscribe(EventKind.INVENTORY_CONTENT, self.on_inventory_content)
        bus.subscribe(EventKind.CONTAINER_CLOSE, self.on_container_close)

    def on_container_open(self, event: ClientEvent) -> None:
        self.opened += 1
        self._sm.set_window(event.window_id)
        logger.debug("gui_opened", window_id=event.window_id)

    def on_inventory_content(self, event: ClientEvent) -> None:
        if event.window_id == PLAYER_INVENTORY_WINDOW and not self._sm.data.inventory_ready:
            self._sm.set_inventory_ready()
            logger.info("inventory_ready", slots=len(event.slots))

    def on_container_close(self, event: ClientEvent) -> None:
        if event.window_id == self._sm.data.window_id:
            self._sm.set_window(None)
            logger.debug("gui_closed", window_id=event.window_id)
