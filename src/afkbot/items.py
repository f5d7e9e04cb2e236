# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Known target items for the AFK shop."""

from __future__ import annotations

from pydantic import BaseModel

from afkbot.errors import ConfigError


class TargetItem(BaseModel):
    id: int
    name: str | None = None

    def label(self) -> str:
        if self.name:
            return f"{self.name} (id={self.id})"
        return f"id={self.id}"


_BLOCKS: dict[str, int] = {
    "amethyst_block": 582,
    "redstone_block": 152,
    "diamond_block": 57,
    "gold_block": 41,
    "iron_block": 42,
    "emerald_block": 133,
    "lapis_block": 22,
}

KNOWN_ITEMS: dict[str, TargetItem] = {}
for _name, _id in _BLOCKS.items():
    KNOWN_ITEMS[_name] = TargetItem(id=_id, name=_name)
    KNOWN_ITEMS[_name.removesuffix("_block")] = TargetItem(id=_id, name=_name)


def resolve_item(arg: str) -> TargetItem:
    """Resolve a shell/config argument to a target item.

    Accepts a positive integer id or a known item name (case-insensitive).

    Raises:
        ConfigError: If the argument is empty, not positive, or unknown
    """
    value = (arg or "").strip()
    if not value:
        raise ConfigError("Missing item: use a known item name or a numeric id")

    try:
        item_id = int(value)
    except ValueError:
        item_id = None
    if item_id is not None:
        if item_id <= 0:
            raise ConfigError(f"Item id must be positive: {value}")
        return TargetItem(id=item_id)

    item = KNOWN_ITEMS.get(value.lower())
    if item is None:
        known = ", ".join(sorted(KNOWN_ITEMS))
        raise ConfigError(f"Unknown item: {value}. Known items: {known}. Or use a numeric id")
    return item.model_copy()
