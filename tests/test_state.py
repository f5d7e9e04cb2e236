# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the connection state machine."""

from __future__ import annotations

import structlog
from structlog.testing import capture_logs

from afkbot.core.state import ClientState, ConnectionStateMachine, SessionEvent
from afkbot.logging import configure_logging


def _ready() -> ConnectionStateMachine:
    sm = ConnectionStateMachine()
    sm.transition(SessionEvent.CONNECT_REQUESTED)
    sm.transition(SessionEvent.CONNECTED)
    sm.transition(SessionEvent.SPAWNED)
    return sm


def test_initial_state_is_disconnected() -> None:
    """Test a fresh machine cannot send commands."""
    sm = ConnectionStateMachine()
    assert sm.state == ClientState.DISCONNECTED
    assert not sm.can_send_command()
    assert not sm.is_ready()


def test_full_lifecycle_reaches_ready() -> None:
    """Test connect -> connected -> spawned enables commands."""
    sm = ConnectionStateMachine()
    assert sm.transition(SessionEvent.CONNECT_REQUESTED)
    assert sm.state == ClientState.CONNECTING
    assert sm.transition(SessionEvent.CONNECTED)
    assert sm.state == ClientState.CONNECTED
    assert not sm.can_send_command()
    assert sm.transition(SessionEvent.SPAWNED)
    assert sm.state == ClientState.READY
    assert sm.data.commands_available
    assert sm.can_send_command()


def test_spawn_before_connected_still_reaches_ready() -> None:
    """Test spawn racing ahead of the connect confirmation."""
    sm = ConnectionStateMachine()
    sm.transition(SessionEvent.CONNECT_REQUESTED)
    assert sm.transition(SessionEvent.SPAWNED)
    assert sm.is_ready()


def test_repeated_events_are_noops() -> None:
    """Test duplicate events do not change state."""
    sm = _ready()
    assert not sm.transition(SessionEvent.SPAWNED)
    assert not sm.transition(SessionEvent.CONNECTED)
    assert sm.state == ClientState.READY


def test_invalid_edges_are_ignored() -> None:
    """Test events with no edge from the current state."""
    sm = ConnectionStateMachine()
    assert not sm.transition(SessionEvent.SPAWNED)
    assert not sm.transition(SessionEvent.CONNECTED)
    assert sm.state == ClientState.DISCONNECTED


def test_disconnect_from_any_state_clears_flags() -> None:
    """Test the disconnected edge resets readiness data."""
    sm = _ready()
    sm.set_window(7)
    sm.set_inventory_ready()
    assert sm.transition(SessionEvent.DISCONNECTED)
    assert sm.state == ClientState.DISCONNECTED
    assert not sm.data.commands_available
    assert not sm.data.inventory_ready
    assert sm.data.window_id is None
    assert not sm.transition(SessionEvent.DISCONNECTED)


def test_reset_forces_disconnected() -> None:
    """Test reset from a mid-lifecycle state."""
    sm = ConnectionStateMachine()
    sm.transition(SessionEvent.CONNECT_REQUESTED)
    sm.reset()
    assert sm.state == ClientState.DISCONNECTED
    assert sm.transition(SessionEvent.CONNECT_REQUESTED)


def test_snapshot_reflects_data() -> None:
    """Test snapshot carries state and flags."""
    sm = _ready()
    sm.set_window(3)
    snap = sm.snapshot()
    assert snap.state == ClientState.READY
    assert snap.commands_available
    assert snap.window_id == 3
    assert not snap.inventory_ready


def test_transitions_log_with_debug_enabled() -> None:
    """Test transitions emit debug records instead of raising."""
    configure_logging(level="DEBUG")
    try:
        sm = ConnectionStateMachine()
        with capture_logs() as logs:
            assert sm.transition(SessionEvent.CONNECT_REQUESTED)
            assert sm.transition(SessionEvent.SPAWNED)
            assert sm.transition(SessionEvent.DISCONNECTED)
    finally:
        structlog.reset_defaults()

    transitions = [entry for entry in logs if entry["event"] == "state_transition"]
    assert transitions[0]["session_event"] == "connect_requested"
    assert transitions[0]["previous"] == "disconnected"
    assert transitions[-1]["state"] == "disconnected"
