# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Abstract base class for game protocol clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from afkbot.client.events import ClientEvent
    from afkbot.config import BotConfig

EventListener = Callable[["ClientEvent"], None]


class ProtocolClient(ABC):
    """Abstract base for protocol clients (handshake, encryption, packet codec).

    Implementations deliver every inbound event through the single listener
    slot. The session core never touches packets directly.
    """

    def __init__(self) -> None:
        self._listener: EventListener | None = None

    def set_listener(self, listener: EventListener | None) -> None:
        """Attach (or detach with None) the event listener."""
        self._listener = listener

    def emit(self, event: ClientEvent) -> None:
        """Deliver an event to the attached listener, if any."""
        if self._listener is not None:
            self._listener(event)

    @abstractmethod
    async def connect(self) -> None:
        """Establish the session with the server.

        Raises:
            ConnectionError: If connection fails
            ClientError: If the handshake is rejected
        """

    @abstractmethod
    def write(self, name: str, payload: dict[str, Any]) -> None:
        """Queue one server-bound packet.

        Args:
            name: Packet name (e.g. "command_request")
            payload: Packet fields

        Raises:
            ClientError: If not connected or the packet cannot be queued
        """

    @abstractmethod
    def close(self) -> None:
        """Close the session. Must be idempotent."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the session is open."""


ClientFactory = Callable[["BotConfig"], ProtocolClient]
