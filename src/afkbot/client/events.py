# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Typed events emitted by protocol clients, and the dispatch table that routes them."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from afkbot.logging import get_logger

logger = get_logger(__name__)


class EventKind(StrEnum):
    """Protocol client events the session core depends on."""

    SPAWN = "spawn"
    TEXT = "text"
    DISCONNECT = "disconnect"
    KICK = "kick"
    CLOSE = "close"
    ERROR = "error"
    CONTAINER_OPEN = "container_open"
    INVENTORY_CONTENT = "inventory_content"
    CONTAINER_CLOSE = "container_close"
    PACKET = "packet"


class ClientEvent(BaseModel):
    """One inbound event with the minimal payload fields the core reads."""

    kind: EventKind
    message: str | None = None  # text/disconnect/kick/error
    source_name: str | None = None  # text sender
    window_id: int | None = None  # container events
    slots: list[dict[str, Any]] = Field(default_factory=list)  # inventory_content
    packet_name: str | None = None  # generic packet


EventHandler = Callable[[ClientEvent], None]


class EventBus:
    """Dispatch table keyed by event kind.

    Handlers run synchronously in subscription order. A failing handler is
    logged and does not stop the remaining handlers.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[EventHandler]] = {}

    def subscribe(self, kind: EventKind, handler: EventHandler) -> Callable[[], None]:
        """Register a handler; returns a callable that unregisters it."""
        self._handlers.setdefault(kind, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(kind, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: ClientEvent) -> int:
        """Deliver an event; returns the number of handlers invoked."""
        handlers = list(self._handlers.get(event.kind, ()))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("event_handler_failed", kind=str(event.kind))
        return len(handlers)

    def handler_count(self, kind: EventKind | None = None) -> int:
        if kind is not None:
            return len(self._handlers.get(kind, ()))
        return sum(len(h) for h in self._handlers.values())

    def clear(self) -> None:
        self._handlers.clear()
