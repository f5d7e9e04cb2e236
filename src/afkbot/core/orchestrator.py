# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Session orchestration: connect, route events, tear down, reconnect."""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel

from afkbot.client.base import ClientFactory, ProtocolClient
from afkbot.client.events import ClientEvent, EventBus, EventKind
from afkbot.config import BotConfig
from afkbot.core.commands import CommandHandler
from afkbot.core.detector import DetectorStatus, DisconnectDetector
from afkbot.core.dropper import DropperStatus, OrderDropper
from afkbot.core.gui import GuiTracker
from afkbot.core.reconnect import ReconnectStatus, ReconnectSupervisor
from afkbot.core.state import ClientState, ConnectionStateMachine, SessionEvent, StateSnapshot
from afkbot.core.timers import Timer
from afkbot.errors import CommandSendError, ConfigError, NotReadyError
from afkbot.items import TargetItem, resolve_item
from afkbot.logging import get_logger
from afkbot.text import strip_formatting

logger = get_logger(__name__)


class ErrorClass(StrEnum):
    NOISE = "noise"
    FATAL = "fatal"


def classify_client_error(message: str | None, ignored: Sequence[str]) -> ErrorClass:
    """Classify a transport error reported by the protocol client.

    Decode-layer noise (custom server packets the codec cannot parse) is
    matched by substring and never ends the session.
    """
    text = message or ""
    if any(fragment and fragment in text for fragment in ignored):
        return ErrorClass.NOISE
    return ErrorClass.FATAL


class ChatLine(BaseModel):
    source: str
    message: str


class SessionStatus(BaseModel):
    connected: bool
    generation: int
    state: StateSnapshot
    take_slot: int
    target_slots: list[int]
    target_item: TargetItem | None
    last_activity_s: float | None
    reconnect: ReconnectStatus
    detector: DetectorStatus | None
    dropper: DropperStatus | None


@dataclass
class SessionGeneration:
    """Everything bound to one protocol client handle.

    A reconnect builds a new generation; nothing is reused across them.
    """

    number: int
    client: ProtocolClient
    bus: EventBus
    commands: CommandHandler
    gui: GuiTracker
    detector: DisconnectDetector
    dropper: OrderDropper
    grace_timer: Timer = field(default_factory=lambda: Timer("heartbeat-grace"))

    def teardown(self) -> None:
        self.grace_timer.cancel()
        self.detector.stop()
        self.dropper.stop()
        self.bus.clear()
        self.client.set_listener(None)


class SessionOrchestrator:
    """Owns the protocol client handle and every component bound to it."""

    def __init__(
        self,
        config: BotConfig,
        client_factory: ClientFactory,
        *,
        rng: random.Random | None = None,
        on_chat: Callable[[ChatLine], None] | None = None,
        auto_start_dropper: bool = False,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self.on_chat = on_chat
        self.auto_start_dropper = auto_start_dropper
        self.state_machine = ConnectionStateMachine()
        self.supervisor = ReconnectSupervisor(config.reconnect, self._reconnect, rng=rng)
        self._generation: SessionGeneration | None = None
        self._generation_counter = 0
        self._last_activity: float | None = None
        self._shutdown = False
        self.target_item: TargetItem | None = None
        if config.target.item_id:
            self.target_item = TargetItem(id=config.target.item_id, name=config.target.item_name)

    # ── lifecycle ──

    @property
    def connected(self) -> bool:
        return self._generation is not None

    @property
    def generation(self) -> SessionGeneration | None:
        return self._generation

    async def connect(self, *, is_reconnect: bool = False) -> bool:
        """Connect and build a new session generation.

        Returns:
            True once the protocol client is connected
        """
        if self._shutdown:
            logger.warning("connect_after_shutdown")
            return False
        if self._generation is not None or self.state_machine.state != ClientState.DISCONNECTED:
            logger.info("already_connected", state=str(self.state_machine.state))
            return False

        if not is_reconnect:
            self.supervisor.mark_user_connect()
        self.supervisor.cancel()

        server = self.config.server
        logger.info(
            "connecting",
            host=server.host,
            port=server.port,
            reconnect=is_reconnect,
            auto_reconnect=self.config.reconnect.enabled,
        )

        self.state_machine.reset()
        self.state_machine.transition(SessionEvent.CONNECT_REQUESTED)
        generation = self._build_generation()
        self._generation = generation

        try:
            await asyncio.wait_for(generation.client.connect(), timeout=server.connect_timeout_ms / 1000.0)
        except Exception as e:
            if self._generation is not generation:
                # Torn down (manual disconnect) while the handshake was in flight.
                generation.client.close()
                return False
            logger.error("connect_failed", host=server.host, port=server.port, error=str(e) or type(e).__name__)
            self._drop_generation(close_client=True)
            self.supervisor.schedule("connection_failed")
            return False

        if self._generation is not generation:
            generation.client.close()
            return False

        self.state_machine.transition(SessionEvent.CONNECTED)
        generation.grace_timer.start(self.config.heartbeat.grace_ms, lambda: self._start_detector(generation))
        logger.info("connected", generation=generation.number)
        return True

    async def disconnect(self) -> bool:
        """User-requested disconnect; suppresses automatic reconnection."""
        if self._generation is None and not self.supervisor.pending:
            logger.info("not_connected")
            self.supervisor.on_manual_disconnect()
            return False

        self.supervisor.on_manual_disconnect()
        logger.info("disconnecting")
        self._drop_generation(close_client=True)
        return True

    async def shutdown(self) -> None:
        """Idempotent teardown for process exit."""
        if self._shutdown:
            return
        self._shutdown = True
        logger.info("shutdown")
        self.supervisor.on_manual_disconnect()
        self._drop_generation(close_client=True)

    def handle_disconnect(self, reason: str) -> None:
        """Single funnel for every fatal reason.

        Repeated calls while already disconnected are no-ops, so racing
        signals cannot schedule two reconnects.
        """
        if self._generation is None:
            return
        logger.warning("disconnect_handled", reason=reason)
        self._drop_generation(close_client=True)
        self.supervisor.schedule(reason)

    async def _reconnect(self) -> None:
        # Each attempt starts from a fresh state machine and client handle.
        self.state_machine.reset()
        await self.connect(is_reconnect=True)

    def _build_generation(self) -> SessionGeneration:
        self._generation_counter += 1
        client = self._client_factory(self.config)
        bus = EventBus()
        commands = CommandHandler(client)
        gui = GuiTracker(self.state_machine)
        detector = DisconnectDetector.from_config(self.config.heartbeat, commands, self.state_machine.can_send_command)
        dropper = OrderDropper(client, commands, self.config.dropper)
        generation = SessionGeneration(
            number=self._generation_counter,
            client=client,
            bus=bus,
            commands=commands,
            gui=gui,
            detector=detector,
            dropper=dropper,
        )

        detector.set_disconnect_callback(lambda reason: self._on_detector_failure(generation, reason))
        self._wire(generation)
        client.set_listener(lambda event: self._dispatch(generation, event))
        return generation

    def _wire(self, generation: SessionGeneration) -> None:
        bus = generation.bus
        bus.subscribe(EventKind.PACKET, self._on_packet)
        bus.subscribe(EventKind.SPAWN, self._on_spawn)
        bus.subscribe(EventKind.TEXT, self._on_text)
        bus.subscribe(EventKind.DISCONNECT, self._on_server_disconnect)
        bus.subscribe(EventKind.KICK, self._on_kick)
        bus.subscribe(EventKind.CLOSE, self._on_close)
        bus.subscribe(EventKind.ERROR, self._on_error)
        generation.gui.attach(bus)
        generation.dropper.attach(bus)

    def _drop_generation(self, *, close_client: bool) -> None:
        generation = self._generation
        self._generation = None
        if generation is not None:
            generation.teardown()
            if close_client:
                generation.client.close()
        self.state_machine.transition(SessionEvent.DISCONNECTED)

    def _dispatch(self, generation: SessionGeneration, event: ClientEvent) -> None:
        if generation is not self._generation:
            return
        generation.bus.publish(event)

    def _start_detector(self, generation: SessionGeneration) -> None:
        if generation is self._generation:
            generation.detector.start()

    def _on_detector_failure(self, generation: SessionGeneration, reason: str) -> None:
        if generation is self._generation:
            self.handle_disconnect(reason)

    # ── event handlers ──

    def _on_packet(self, event: ClientEvent) -> None:
        self._last_activity = time.monotonic()

    def _on_spawn(self, event: ClientEvent) -> None:
        if self.state_machine.transition(SessionEvent.SPAWNED):
            self.supervisor.on_ready()
            logger.info("session_ready")
            if self.auto_start_dropper:
                try:
                    self.start_dropper()
                except NotReadyError as e:
                    logger.warning("dropper_autostart_failed", error=str(e))

    def _on_text(self, event: ClientEvent) -> None:
        if not event.message:
            return
        message = strip_formatting(event.message)
        source = strip_formatting(event.source_name) if event.source_name else "Server"
        logger.debug("chat", source=source, message=message)
        if self.on_chat is not None:
            self.on_chat(ChatLine(source=source, message=message))
        if self._generation is not None:
            self._generation.detector.on_text(message)

    def _on_server_disconnect(self, event: ClientEvent) -> None:
        reason = strip_formatting(event.message) or "unknown"
        logger.warning("server_disconnect", reason=reason)
        self.handle_disconnect(f"server_disconnect: {reason}")

    def _on_kick(self, event: ClientEvent) -> None:
        reason = strip_formatting(event.message) or "unknown"
        logger.error("kicked", reason=reason)
        self.handle_disconnect(f"kicked: {reason}")

    def _on_close(self, event: ClientEvent) -> None:
        logger.warning("connection_closed")
        self.handle_disconnect("connection_closed")

    def _on_error(self, event: ClientEvent) -> None:
        message = event.message or "unknown"
        if classify_client_error(message, self.config.client.ignored_errors) == ErrorClass.NOISE:
            logger.debug("client_error_ignored", error=message)
            return
        logger.error("client_error", error=message)
        self.handle_disconnect(f"error: {message}")

    # ── manual control ──

    def can_send_commands(self) -> bool:
        return self._generation is not None and self.state_machine.can_send_command()

    def send_command(self, line: str) -> bool:
        """Send a manual command; returns False when not ready or the send fails."""
        generation = self._generation
        if generation is None or not self.state_machine.can_send_command():
            logger.warning("not_ready", state=str(self.state_machine.state))
            return False
        try:
            generation.commands.send_command(line)
        except CommandSendError as e:
            logger.error("command_failed", error=str(e))
            return False
        return True

    def start_dropper(self) -> None:
        """Start the order dropper.

        Raises:
            NotReadyError: If not connected or not ready for commands
        """
        generation = self._generation
        if generation is None:
            raise NotReadyError("Not connected - connect first")
        if not self.state_machine.can_send_command():
            raise NotReadyError(f"Not ready to send commands (state={self.state_machine.state})")
        if not generation.dropper.running and generation.dropper.config is not self.config.dropper:
            generation.dropper.stop()
            generation.bus.clear()
            generation.dropper = OrderDropper(generation.client, generation.commands, self.config.dropper)
            self._wire(generation)
        generation.dropper.start()

    def stop_dropper(self) -> None:
        if self._generation is not None:
            self._generation.dropper.stop()

    def dropper_status(self) -> DropperStatus | None:
        if self._generation is None:
            return None
        return self._generation.dropper.status()

    def set_take_slot(self, slot: int) -> None:
        """Raises ConfigError on an invalid slot; state is untouched on failure."""
        self.config = self.config.with_dropper(take_slot=slot)
        logger.info("config_take_slot", take_slot=slot)

    def set_target_slots(self, slots: list[int]) -> None:
        if not slots:
            raise ConfigError("At least one target slot is required")
        self.config = self.config.with_dropper(target_slots=slots)
        logger.info("config_target_slots", target_slots=slots)

    def set_target_item(self, arg: str) -> TargetItem:
        item = resolve_item(arg)
        self.target_item = item
        logger.info("config_target_item", item=item.label())
        return item

    def status(self) -> SessionStatus:
        generation = self._generation
        last_activity = None
        if self._last_activity is not None:
            last_activity = round(time.monotonic() - self._last_activity, 3)
        return SessionStatus(
            connected=generation is not None,
            generation=generation.number if generation else 0,
            state=self.state_machine.snapshot(),
            take_slot=self.config.dropper.take_slot,
            target_slots=list(self.config.dropper.target_slots),
            target_item=self.target_item,
            last_activity_s=last_activity,
            reconnect=self.supervisor.status(),
            detector=generation.detector.status() if generation else None,
            dropper=generation.dropper.status() if generation else None,
        )
