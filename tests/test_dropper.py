# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the order dropper cycle."""

from __future__ import annotations

import asyncio
import time

import pytest

from afkbot.client import packets
from afkbot.client.events import ClientEvent, EventBus, EventKind
from afkbot.config import DropperConfig
from afkbot.core.commands import CommandHandler
from afkbot.core.dropper import OrderDropper, Phase
from tests.fakes import FakeClient, FakeSender, eventually


def _dropper(client: FakeClient, config: DropperConfig) -> tuple[OrderDropper, EventBus]:
    bus = EventBus()
    dropper = OrderDropper(client, CommandHandler(client), config)
    dropper.attach(bus)
    return dropper, bus


def _open(bus: EventBus, window_id: int) -> None:
    bus.publish(ClientEvent(kind=EventKind.CONTAINER_OPEN, window_id=window_id))
    bus.publish(
        ClientEvent(kind=EventKind.INVENTORY_CONTENT, window_id=window_id, slots=[{"network_id": 582}] * 27)
    )


@pytest.mark.asyncio
async def test_full_cycle(fake_client: FakeClient, fast_dropper_config: DropperConfig) -> None:
    """Test order -> GUI -> take -> close -> drop -> next cycle."""
    dropper, bus = _dropper(fake_client, fast_dropper_config)
    assert dropper.start()
    assert fake_client.commands() == ["/order"]
    assert dropper.phase == Phase.WAITING_FOR_GUI
    assert dropper.cycle_count == 1

    _open(bus, 7)
    assert dropper.window_id == 7
    assert dropper.phase == Phase.TAKING
    name, payload = fake_client.writes[-1]
    assert name == packets.INVENTORY_TRANSACTION
    action = payload["transaction"]["actions"][0]
    assert action["inventory_id"] == 7
    assert action["slot"] == 16
    assert dropper.status().slots_received == 27

    bus.publish(ClientEvent(kind=EventKind.CONTAINER_CLOSE, window_id=7))
    assert dropper.phase == Phase.DROPPING
    assert dropper.window_id is None

    await eventually(lambda: dropper.drops == 3)
    assert fake_client.selected_slots() == [0, 1, 2]
    await eventually(lambda: fake_client.commands() == ["/order", "/order"])
    assert dropper.cycle_count == 2
    dropper.stop()


@pytest.mark.asyncio
async def test_drops_only_configured_slots_in_order(fake_client: FakeClient) -> None:
    """Test select/drop pairs follow the configured list."""
    config = DropperConfig(target_slots=[5, 2, 8], drop_delay_ms=1, select_delay_ms=1, cycle_delay_ms=1000)
    dropper, bus = _dropper(fake_client, config)
    dropper.start()
    _open(bus, 3)
    bus.publish(ClientEvent(kind=EventKind.CONTAINER_CLOSE, window_id=3))
    await eventually(lambda: dropper.drops == 3)

    tail = [name for name in fake_client.names() if name in (packets.MOB_EQUIPMENT, packets.PLAYER_ACTION)]
    assert tail == [packets.MOB_EQUIPMENT, packets.PLAYER_ACTION] * 3
    assert fake_client.selected_slots() == [5, 2, 8]
    actions = [p["action"] for n, p in fake_client.writes if n == packets.PLAYER_ACTION]
    assert actions == [packets.ACTION_DROP_STACK] * 3
    dropper.stop()


@pytest.mark.asyncio
async def test_dropping_respects_drop_delay(fake_client: FakeClient) -> None:
    """Test three slots with a 100ms drop delay take at least 300ms."""
    config = DropperConfig(target_slots=[0, 1, 2], drop_delay_ms=100, select_delay_ms=50, cycle_delay_ms=5000)
    dropper, bus = _dropper(fake_client, config)
    dropper.start()
    _open(bus, 1)
    started = time.monotonic()
    bus.publish(ClientEvent(kind=EventKind.CONTAINER_CLOSE, window_id=1))
    await eventually(lambda: dropper.phase == Phase.IDLE, timeout=3.0)
    assert time.monotonic() - started >= 0.3
    assert dropper.drops == 3
    assert len(fake_client.selected_slots()) == 3
    dropper.stop()


@pytest.mark.asyncio
async def test_foreign_window_events_are_ignored(fake_client: FakeClient, fast_dropper_config: DropperConfig) -> None:
    """Test close/content for another window do not advance the cycle."""
    dropper, bus = _dropper(fake_client, fast_dropper_config)
    dropper.start()
    _open(bus, 7)
    assert dropper.phase == Phase.TAKING

    bus.publish(ClientEvent(kind=EventKind.CONTAINER_CLOSE, window_id=9))
    bus.publish(ClientEvent(kind=EventKind.INVENTORY_CONTENT, window_id=9, slots=[{}]))
    assert dropper.phase == Phase.TAKING
    assert dropper.window_id == 7
    assert dropper.status().slots_received == 27
    dropper.stop()


@pytest.mark.asyncio
async def test_second_open_does_not_replace_window(
    fake_client: FakeClient, fast_dropper_config: DropperConfig
) -> None:
    """Test only the first container_open is adopted."""
    dropper, bus = _dropper(fake_client, fast_dropper_config)
    dropper.start()
    bus.publish(ClientEvent(kind=EventKind.CONTAINER_OPEN, window_id=4))
    bus.publish(ClientEvent(kind=EventKind.CONTAINER_OPEN, window_id=5))
    assert dropper.window_id == 4
    dropper.stop()


@pytest.mark.asyncio
async def test_gui_timeout_moves_to_next_cycle(fake_client: FakeClient, fast_dropper_config: DropperConfig) -> None:
    """Test the server never opening a GUI."""
    dropper, _ = _dropper(fake_client, fast_dropper_config)
    dropper.start()
    await eventually(lambda: dropper.cycle_count == 2)
    assert fake_client.commands() == ["/order", "/order"]
    assert not any(name == packets.INVENTORY_TRANSACTION for name in fake_client.names())
    dropper.stop()


@pytest.mark.asyncio
async def test_close_fallback_force_closes(fake_client: FakeClient, fast_dropper_config: DropperConfig) -> None:
    """Test the dropper closes the window itself when the server does not."""
    dropper, bus = _dropper(fake_client, fast_dropper_config)
    dropper.start()
    _open(bus, 11)
    await eventually(lambda: packets.CONTAINER_CLOSE in fake_client.names())
    close_payload = next(p for n, p in fake_client.writes if n == packets.CONTAINER_CLOSE)
    assert close_payload["window_id"] == 11
    await eventually(lambda: dropper.drops == 3)
    dropper.stop()


@pytest.mark.asyncio
async def test_order_send_failure_schedules_next_cycle(fast_dropper_config: DropperConfig) -> None:
    """Test a failed order command does not wait for a GUI."""
    client = FakeClient()
    client.connected = True
    sender = FakeSender(fail=True)
    dropper = OrderDropper(client, sender, fast_dropper_config)
    dropper.start()
    assert dropper.phase == Phase.IDLE
    await eventually(lambda: not dropper.running)
    assert dropper.cycle_count == fast_dropper_config.max_cycles


@pytest.mark.asyncio
async def test_stops_after_max_cycles(fake_client: FakeClient) -> None:
    """Test the cycle bound."""
    config = DropperConfig(max_cycles=2, target_slots=[0], drop_delay_ms=1, select_delay_ms=1, cycle_delay_ms=1)
    dropper, bus = _dropper(fake_client, config)
    dropper.start()
    for window_id in (1, 2):
        await eventually(lambda: dropper.phase == Phase.WAITING_FOR_GUI)
        _open(bus, window_id)
        bus.publish(ClientEvent(kind=EventKind.CONTAINER_CLOSE, window_id=window_id))
        await eventually(lambda: dropper.phase != Phase.DROPPING)
    await eventually(lambda: not dropper.running)
    assert dropper.cycle_count == 2
    assert dropper.drops == 2
    assert fake_client.commands() == ["/order", "/order"]


@pytest.mark.asyncio
async def test_stop_mid_drop_skips_remaining(fake_client: FakeClient) -> None:
    """Test stop during Dropping cancels the remaining slots."""
    config = DropperConfig(target_slots=[0, 1, 2, 3], drop_delay_ms=50, select_delay_ms=1, cycle_delay_ms=1)
    dropper, bus = _dropper(fake_client, config)
    dropper.start()
    _open(bus, 2)
    bus.publish(ClientEvent(kind=EventKind.CONTAINER_CLOSE, window_id=2))
    await eventually(lambda: dropper.drops == 1)
    dropper.stop()
    await asyncio.sleep(0.15)
    assert dropper.drops == 1
    assert dropper.phase == Phase.IDLE
    assert fake_client.commands() == ["/order"]


@pytest.mark.asyncio
async def test_events_after_stop_are_ignored(fake_client: FakeClient, fast_dropper_config: DropperConfig) -> None:
    """Test a late container_open after stop."""
    dropper, bus = _dropper(fake_client, fast_dropper_config)
    dropper.start()
    dropper.stop()
    _open(bus, 7)
    assert dropper.window_id is None
    assert dropper.phase == Phase.IDLE
    assert packets.INVENTORY_TRANSACTION not in fake_client.names()


@pytest.mark.asyncio
async def test_start_twice_is_rejected(fake_client: FakeClient, fast_dropper_config: DropperConfig) -> None:
    dropper, _ = _dropper(fake_client, fast_dropper_config)
    assert dropper.start()
    assert not dropper.start()
    assert fake_client.commands() == ["/order"]
    dropper.stop()


@pytest.mark.asyncio
async def test_write_failures_are_contained(fast_dropper_config: DropperConfig) -> None:
    """Test a dead client during Dropping does not raise."""
    client = FakeClient()
    client.connected = True
    dropper, bus = _dropper(client, fast_dropper_config)
    dropper.start()
    _open(bus, 1)
    client.fail_writes = True
    bus.publish(ClientEvent(kind=EventKind.CONTAINER_CLOSE, window_id=1))
    await eventually(lambda: dropper.phase != Phase.DROPPING)
    assert dropper.drops == 0
    dropper.stop()
