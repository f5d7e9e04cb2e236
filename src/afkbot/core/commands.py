# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Turn command strings into server-bound command packets."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from afkbot.client import packets
from afkbot.errors import CommandSendError
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.client.base import ProtocolClient

logger = get_logger(__name__)


class CommandSender(Protocol):
    def send_command(self, line: str) -> str: ...


class CommandHandler:
    """Sends chat commands through the protocol client."""

    def __init__(self, client: ProtocolClient) -> None:
        self._client = client
        self.sent_count = 0

    def send_command(self, line: str) -> str:
        """Send a command synchronously.

        A leading "/" is added when missing.

        Returns:
            The command as sent

        Raises:
            CommandSendError: If the command is empty or the client rejects the write
        """
        command = line.strip()
        if not command:
            raise CommandSendError("Empty command")
        if not command.startswith("/"):
            command = f"/{command}"

        try:
            self._client.write(packets.COMMAND_REQUEST, packets.command_request(command))
        except Exception as e:
            raise CommandSendError(f"Failed to send {command}: {e}") from e

        self.sent_count += 1
        logger.debug("command_sent", command=command)
        return command
