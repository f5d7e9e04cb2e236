# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Ping-based detection of silently dead sessions.

The transport can stay open while the server stops answering. The detector
sends the heartbeat command on an interval and requires a reply within a
timeout.

Reply matching is a substring heuristic on inbound chat: any line containing
one of the response tokens counts while a heartbeat is outstanding. The
protocol client offers no request id to correlate with, so ordinary chat that
happens to contain "ms" can satisfy an outstanding heartbeat.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from pydantic import BaseModel

from afkbot import constants
from afkbot.core.timers import Timer
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.config import HeartbeatConfig
    from afkbot.core.commands import CommandSender

logger = get_logger(__name__)

HEARTBEAT_SEND_FAILED = "heartbeat_send_failed"
HEARTBEAT_TIMEOUT = "heartbeat_timeout"


class DetectorStatus(BaseModel):
    running: bool
    awaiting_response: bool
    heartbeats_sent: int
    last_latency_ms: int | None
    interval_ms: int
    timeout_ms: int


class DisconnectDetector:
    def __init__(
        self,
        command_sender: CommandSender | None,
        is_ready: Callable[[], bool],
        *,
        interval_ms: int = constants.DEFAULT_HEARTBEAT_INTERVAL_MS,
        timeout_ms: int = constants.DEFAULT_HEARTBEAT_TIMEOUT_MS,
        retry_ms: int = constants.DEFAULT_HEARTBEAT_RETRY_MS,
        command: str = constants.DEFAULT_HEARTBEAT_COMMAND,
        response_tokens: Sequence[str] = constants.DEFAULT_HEARTBEAT_TOKENS,
    ) -> None:
        self._sender = command_sender
        self._is_ready = is_ready
        self.interval_ms = interval_ms
        self.timeout_ms = timeout_ms
        self.retry_ms = retry_ms
        self.command = command
        self._tokens = tuple(t.lower() for t in response_tokens if t)

        self._ping_timer = Timer("heartbeat-ping")
        self._timeout_timer = Timer("heartbeat-timeout")
        self._running = False
        self._awaiting = False
        self._last_sent: float | None = None
        self._heartbeats_sent = 0
        self._last_latency_ms: int | None = None

        self.on_disconnect_detected: Callable[[str], None] | None = None

    @classmethod
    def from_config(
        cls,
        config: HeartbeatConfig,
        command_sender: CommandSender | None,
        is_ready: Callable[[], bool],
    ) -> DisconnectDetector:
        return cls(
            command_sender,
            is_ready,
            interval_ms=config.interval_ms,
            timeout_ms=config.timeout_ms,
            retry_ms=config.retry_ms,
            command=config.command,
            response_tokens=config.response_tokens,
        )

    @property
    def running(self) -> bool:
        return self._running

    @property
    def awaiting_response(self) -> bool:
        return self._awaiting

    def armed_timeouts(self) -> int:
        return 1 if self._timeout_timer.active else 0

    def set_disconnect_callback(self, callback: Callable[[str], None] | None) -> None:
        self.on_disconnect_detected = callback

    def start(self) -> None:
        if self._running:
            logger.warning("heartbeat_already_running")
            return
        self._running = True
        logger.info("heartbeat_started", interval_ms=self.interval_ms, timeout_ms=self.timeout_ms)
        self._schedule(self.interval_ms)

    def stop(self) -> None:
        was_running = self._running
        self._running = False
        self._awaiting = False
        self._clear_timers()
        if was_running:
            logger.info("heartbeat_stopped")

    def send_heartbeat(self) -> None:
        if not self._running or self._awaiting:
            return

        if self._sender is None or not self._is_ready():
            logger.warning("heartbeat_sender_unavailable", retry_ms=self.retry_ms)
            self._schedule(self.retry_ms)
            return

        logger.info("heartbeat_sending", command=self.command)
        self._last_sent = time.monotonic()
        self._awaiting = True
        self._heartbeats_sent += 1
        try:
            self._sender.send_command(self.command)
        except Exception as e:
            # Any failure of the send primitive counts, not only wrapped client errors.
            logger.error("heartbeat_send_failed", error=str(e) or type(e).__name__)
            self._detected(HEARTBEAT_SEND_FAILED)
            return

        self._timeout_timer.start(self.timeout_ms, self._on_timeout)

    def is_response(self, message: str | None) -> bool:
        if not message:
            return False
        lowered = message.lower()
        return any(token in lowered for token in self._tokens)

    def on_text(self, message: str | None) -> bool:
        """Feed an inbound chat line; returns True if it answered the heartbeat."""
        if not self._running or not self._awaiting:
            return False
        if not self.is_response(message):
            return False

        sent = self._last_sent if self._last_sent is not None else time.monotonic()
        self._last_latency_ms = int((time.monotonic() - sent) * 1000)
        self._awaiting = False
        self._timeout_timer.cancel()
        logger.info("heartbeat_response", latency_ms=self._last_latency_ms)
        self._schedule(self.interval_ms)
        return True

    def status(self) -> DetectorStatus:
        return DetectorStatus(
            running=self._running,
            awaiting_response=self._awaiting,
            heartbeats_sent=self._heartbeats_sent,
            last_latency_ms=self._last_latency_ms,
            interval_ms=self.interval_ms,
            timeout_ms=self.timeout_ms,
        )

    def _schedule(self, delay_ms: int) -> None:
        self._clear_timers()
        if not self._running:
            return
        self._ping_timer.start(delay_ms, self.send_heartbeat)

    def _on_timeout(self) -> None:
        if self._running and self._awaiting:
            logger.error("heartbeat_timeout", timeout_ms=self.timeout_ms)
            self._detected(HEARTBEAT_TIMEOUT)

    def _detected(self, reason: str) -> None:
        self._awaiting = False
        self._running = False
        self._clear_timers()
        logger.error("disconnect_detected", reason=reason)
        if self.on_disconnect_detected is not None:
            self.on_disconnect_detected(reason)

    def _clear_timers(self) -> None:
        self._ping_timer.cancel()
        self._timeout_timer.cancel()
