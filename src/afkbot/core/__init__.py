"""Session core: readiness, liveness, reconnection and order automation."""

from __future__ import annotations

from afkbot.core.commands import CommandHandler
from afkbot.core.detector import DisconnectDetector
from afkbot.core.dropper import OrderDropper, Phase
from afkbot.core.gui import GuiTracker
from afkbot.core.orchestrator import SessionOrchestrator, classify_client_error
from afkbot.core.reconnect import ReconnectSupervisor
from afkbot.core.state import ClientState, ConnectionStateMachine, SessionEvent
from afkbot.core.timers import Timer

__all__ = [
    "ClientState",
    "CommandHandler",
    "ConnectionStateMachine",
    "DisconnectDetector",
    "GuiTracker",
    "OrderDropper",
    "Phase",
    "ReconnectSupervisor",
    "SessionEvent",
    "SessionOrchestrator",
    "Timer",
    "classify_client_error",
]
