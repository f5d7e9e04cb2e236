# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Server-bound packet payloads used by the session core.

Field layout follows the Bedrock protocol packets of the same name; the
protocol client fills in anything runtime-specific (entity ids, etc).
"""

from __future__ import annotations

from typing import Any

from afkbot.constants import PLAYER_INVENTORY_WINDOW

COMMAND_REQUEST = "command_request"
INVENTORY_TRANSACTION = "inventory_transaction"
CONTAINER_CLOSE = "container_close"
MOB_EQUIPMENT = "mob_equipment"
PLAYER_ACTION = "player_action"

ACTION_DROP_STACK = 5

_ORIGIN = {"type": "player", "uuid": "", "request_id": ""}
_ZERO = {"x": 0, "y": 0, "z": 0}


def command_request(command: str) -> dict[str, Any]:
    return {
        "command": command,
        "origin": dict(_ORIGIN),
        "internal": False,
        "version": 52,
    }


def inventory_transaction(window_id: int, slot: int) -> dict[str, Any]:
    """Click a container slot (take the item it holds)."""
    return {
        "transaction": {
            "legacy": {"legacy_request_id": 0},
            "transaction_type": "normal",
            "actions": [
                {
                    "source_type": "container",
                    "inventory_id": window_id,
                    "slot": slot,
                    "old_item": {"network_id": 0},
                    "new_item": {"network_id": 0},
                }
            ],
        }
    }


def container_close(window_id: int) -> dict[str, Any]:
    return {"window_id": window_id, "window_type": 0, "server": False}


def mob_equipment(slot: int) -> dict[str, Any]:
    """Select a hotbar slot."""
    return {
        "runtime_entity_id": 0,
        "item": {"network_id": 0},
        "slot": slot,
        "selected_slot": slot,
        "window_id": PLAYER_INVENTORY_WINDOW,
    }


def player_action(action: int = ACTION_DROP_STACK) -> dict[str, Any]:
    return {
        "runtime_entity_id": 0,
        "action": action,
        "position": dict(_ZERO),
        "result_position": dict(_ZERO),
        "face": 0,
    }
