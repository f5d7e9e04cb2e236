# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Coarse session readiness tracking.

Pure state holder: no I/O, never raises. Mutated only by the orchestrator
(and the GUI tracker it owns) in response to protocol events.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

from afkbot.logging import get_logger

logger = get_logger(__name__)


class ClientState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READY = "ready"


class SessionEvent(StrEnum):
    CONNECT_REQUESTED = "connect_requested"
    CONNECTED = "connected"
    SPAWNED = "spawned"
    DISCONNECTED = "disconnected"


class StateData(BaseModel):
    """Readiness flags carried alongside the state."""

    commands_available: bool = False
    inventory_ready: bool = False
    window_id: int | None = None


class StateSnapshot(BaseModel):
    state: ClientState
    commands_available: bool
    inventory_ready: bool
    window_id: int | None


# (from, event) -> to
_EDGES: dict[tuple[ClientState, SessionEvent], ClientState] = {
    (ClientState.DISCONNECTED, SessionEvent.CONNECT_REQUESTED): ClientState.CONNECTING,
    (ClientState.CONNECTING, SessionEvent.CONNECTED): ClientState.CONNECTED,
    (ClientState.CONNECTING, SessionEvent.SPAWNED): ClientState.READY,
    (ClientState.CONNECTED, SessionEvent.SPAWNED): ClientState.READY,
}


class ConnectionStateMachine:
    """Disconnected -> Connecting -> Connected -> Ready, any -> Disconnected."""

    def __init__(self) -> None:
        self.state = ClientState.DISCONNECTED
        self.data = StateData()

    def transition(self, event: SessionEvent) -> bool:
        """Apply one edge.

        Returns:
            True if the state changed. Repeated events and edges that do not
            exist from the current state are no-ops.
        """
        if event == SessionEvent.DISCONNECTED:
            if self.state == ClientState.DISCONNECTED:
                return False
            previous = self.state
            self.state = ClientState.DISCONNECTED
            self.data = StateData()
            logger.debug("state_transition", session_event=str(event), previous=str(previous), state=str(self.state))
            return True

        target = _EDGES.get((self.state, event))
        if target is None:
            logger.debug("state_transition_ignored", session_event=str(event), state=str(self.state))
            return False

        previous = self.state
        self.state = target
        if target == ClientState.READY:
            self.data.commands_available = True
        logger.debug("state_transition", session_event=str(event), previous=str(previous), state=str(self.state))
        return True

    def can_send_command(self) -> bool:
        return self.state == ClientState.READY and self.data.commands_available

    def is_ready(self) -> bool:
        return self.state == ClientState.READY

    def reset(self) -> None:
        """Force Disconnected and clear every flag."""
        self.state = ClientState.DISCONNECTED
        self.data = StateData()

    def set_window(self, window_id: int | None) -> None:
        self.data.window_id = window_id

    def set_inventory_ready(self, ready: bool = True) -> None:
        self.data.inventory_ready = ready

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            state=self.state,
            commands_available=self.data.commands_available,
            inventory_ready=self.data.inventory_ready,
            window_id=self.data.window_id,
        )
