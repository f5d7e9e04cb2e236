# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared constants for afkbot."""

from __future__ import annotations

# Heartbeat
DEFAULT_HEARTBEAT_COMMAND = "/ping"
DEFAULT_HEARTBEAT_INTERVAL_MS = 30000
DEFAULT_HEARTBEAT_TIMEOUT_MS = 15000
DEFAULT_HEARTBEAT_RETRY_MS = 5000
DEFAULT_HEARTBEAT_GRACE_MS = 30000
DEFAULT_HEARTBEAT_TOKENS = ("ping", "ms", "pong")

# Reconnect
DEFAULT_RECONNECT_BASE_MS = 5000
DEFAULT_RECONNECT_FACTOR = 1.5
DEFAULT_RECONNECT_CAP_MS = 60000
DEFAULT_RECONNECT_JITTER_MS = 1000
DEFAULT_MAX_RECONNECT_ATTEMPTS = 10

# Order dropper
DEFAULT_ORDER_COMMAND = "/order"
DEFAULT_TAKE_SLOT = 16
DEFAULT_TARGET_SLOTS = (0, 1, 2, 3, 4, 5, 6, 7, 8)
DEFAULT_CYCLE_DELAY_MS = 2000
DEFAULT_MAX_CYCLES = 100
DEFAULT_DROP_DELAY_MS = 100
DEFAULT_SELECT_DELAY_MS = 50
DEFAULT_GUI_TIMEOUT_MS = 10000
DEFAULT_CLOSE_FALLBACK_MS = 2000

# Hotbar is slots 0-8; player inventory window is 0
HOTBAR_SIZE = 9
PLAYER_INVENTORY_WINDOW = 0

# Connection
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 19132
DEFAULT_CONNECT_TIMEOUT_MS = 30000

# Decode-layer noise from the transport that must not end a session
DEFAULT_IGNORED_ERRORS = ("Read error", "Invalid tag")

DEFAULT_CLIENT_FACTORY = "afkbot.client.simulated:create_client"
