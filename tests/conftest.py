# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Pytest configuration and fixtures."""

from __future__ import annotations

import random

import pytest

from afkbot.config import BotConfig, DropperConfig, HeartbeatConfig, ReconnectConfig
from tests.fakes import ClientPool, FakeClient, FakeSender


@pytest.fixture
def fake_client() -> FakeClient:
    """Already-connected fake client."""
    client = FakeClient()
    client.connected = True
    return client


@pytest.fixture
def fake_sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def client_pool() -> ClientPool:
    return ClientPool()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def fast_dropper_config() -> DropperConfig:
    return DropperConfig(
        target_slots=[0, 1, 2],
        cycle_delay_ms=10,
        max_cycles=3,
        drop_delay_ms=5,
        select_delay_ms=2,
        gui_timeout_ms=60,
        close_fallback_ms=40,
    )


@pytest.fixture
def fast_config(fast_dropper_config: DropperConfig) -> BotConfig:
    """Config with millisecond-scale timings."""
    return BotConfig(
        heartbeat=HeartbeatConfig(interval_ms=30, timeout_ms=15, retry_ms=10, grace_ms=0),
        reconnect=ReconnectConfig(base_delay_ms=20, backoff_factor=1.5, cap_ms=100, jitter_ms=0, max_attempts=3),
        dropper=fast_dropper_config,
    )
