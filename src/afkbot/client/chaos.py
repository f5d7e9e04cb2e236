# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Fault-injection client wrapper (deterministic).

This is used for resilience testing. It wraps a real client and swallows
inbound chat or closes the session at deterministic intervals so tests are
repeatable.
"""

from __future__ import annotations

from typing import Any

from afkbot.client.base import ProtocolClient
from afkbot.client.events import ClientEvent, EventKind
from afkbot.errors import ClientError


class ChaosClient(ProtocolClient):
    def __init__(
        self,
        inner: ProtocolClient,
        *,
        drop_text_every_n: int = 0,
        close_after_n_writes: int = 0,
        label: str = "chaos",
    ) -> None:
        super().__init__()
        self._inner = inner
        self._drop_text_n = int(drop_text_every_n or 0)
        self._close_after = int(close_after_n_writes or 0)
        self._label = str(label or "chaos")
        self._text_count = 0
        self._write_count = 0
        self.dropped: list[ClientEvent] = []
        inner.set_listener(self._on_inner_event)

    async def connect(self) -> None:
        await self._inner.connect()

    def write(self, name: str, payload: dict[str, Any]) -> None:
        self._write_count += 1
        if self._close_after > 0 and self._write_count > self._close_after:
            self._inner.close()
            raise ClientError(f"{self._label}: injected close on write #{self._write_count}")
        self._inner.write(name, payload)

    def close(self) -> None:
        self._inner.close()

    def is_connected(self) -> bool:
        return self._inner.is_connected()

    def _on_inner_event(self, event: ClientEvent) -> None:
        if event.kind == EventKind.TEXT:
            self._text_count += 1
            if self._drop_text_n > 0 and (self._text_count % self._drop_text_n) == 0:
                self.dropped.append(event)
                return
        self.emit(event)
