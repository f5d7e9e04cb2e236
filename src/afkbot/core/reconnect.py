# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Decide whether and when to reconnect after a disconnect."""

from __future__ import annotations

import math
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from pydantic import BaseModel

from afkbot.core.timers import Timer
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.config import ReconnectConfig

logger = get_logger(__name__)


class ReconnectStatus(BaseModel):
    enabled: bool
    user_initiated: bool
    attempts: int
    max_attempts: int
    pending: bool
    last_delay_ms: int | None


class ReconnectSupervisor:
    """Bounded exponential backoff with jitter.

    Reconnection happens only after a human connected at least once and only
    while auto-reconnect is enabled. Exhausting the attempt bound clears the
    user-initiated flag; a fresh manual connect re-arms it.
    """

    def __init__(
        self,
        config: ReconnectConfig,
        reconnect_cb: Callable[[], Awaitable[object]],
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self._reconnect_cb = reconnect_cb
        self._rng = rng or random.Random()
        self._timer = Timer("reconnect")
        self.user_initiated = False
        self.attempts = 0
        self.last_delay_ms: int | None = None

    @property
    def pending(self) -> bool:
        return self._timer.active

    def backoff_ms(self, attempt: int) -> int:
        """Delay for a 1-indexed attempt, without jitter."""
        exponent = max(attempt, 1) - 1
        raw = self.config.base_delay_ms * self.config.backoff_factor**exponent
        return math.floor(min(raw, self.config.cap_ms))

    def compute_delay_ms(self, attempt: int) -> int:
        jitter = self._rng.uniform(0, self.config.jitter_ms) if self.config.jitter_ms else 0.0
        return math.floor(self.backoff_ms(attempt) + jitter)

    def mark_user_connect(self) -> None:
        self.user_initiated = True
        self.attempts = 0

    def on_ready(self) -> None:
        if self.attempts:
            logger.info("reconnect_succeeded", attempts=self.attempts)
        self.attempts = 0

    def schedule(self, reason: str) -> int | None:
        """Arm the reconnect timer.

        Returns:
            The delay in ms, or None when no reconnect was scheduled
        """
        if not self.user_initiated:
            logger.info("reconnect_skipped", reason=reason, why="user_must_connect")
            return None
        if not self.config.enabled:
            logger.info("reconnect_skipped", reason=reason, why="disabled")
            return None
        if self.attempts >= self.config.max_attempts:
            logger.error("reconnect_exhausted", max_attempts=self.config.max_attempts, reason=reason)
            self.user_initiated = False
            self.cancel()
            return None

        self.attempts += 1
        delay_ms = self.compute_delay_ms(self.attempts)
        self.last_delay_ms = delay_ms
        logger.warning(
            "reconnect_scheduled",
            attempt=self.attempts,
            max_attempts=self.config.max_attempts,
            delay_ms=delay_ms,
            reason=reason,
        )
        self._timer.start(delay_ms, self._fire)
        return delay_ms

    def cancel(self) -> None:
        self._timer.cancel()

    def on_manual_disconnect(self) -> None:
        self.user_initiated = False
        self.cancel()

    def status(self) -> ReconnectStatus:
        return ReconnectStatus(
            enabled=self.config.enabled,
            user_initiated=self.user_initiated,
            attempts=self.attempts,
            max_attempts=self.config.max_attempts,
            pending=self.pending,
            last_delay_ms=self.last_delay_ms,
        )

    async def _fire(self) -> None:
        if not self.user_initiated:
            return
        logger.info("reconnect_attempting", attempt=self.attempts)
        await self._reconnect_cb()
