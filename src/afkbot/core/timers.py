# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""One-shot cancellable timers on the running event loop."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

from afkbot.logging import get_logger

logger = get_logger(__name__)


class Timer:
    """A single re-armable timer.

    Arming replaces any pending callback. The callback may re-arm the same
    timer; the running task is detached before the callback runs so it is
    never cancelled by its own re-arm.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, delay_ms: float, callback: Callable[[], Any]) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._run(max(0.0, delay_ms) / 1000.0, callback), name=self.name)

    def cancel(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self, delay_s: float, callback: Callable[[], Any]) -> None:
        try:
            await asyncio.sleep(delay_s)
        except asyncio.CancelledError:
            return
        if self._task is asyncio.current_task():
            self._task = None
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            return
        except Exception:
            logger.exception("timer_callback_failed", timer=self.name)
