# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration management for the AFK client."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from afkbot import constants
from afkbot.errors import ConfigError
from afkbot.logging import get_logger

logger = get_logger(__name__)


class ServerConfig(BaseModel):
    """Game server endpoint and login identity."""

    host: str = constants.DEFAULT_HOST
    port: int = Field(default=constants.DEFAULT_PORT, ge=1, le=65535)
    username: str | None = None
    offline: bool = False
    version: str | None = None  # None = let the protocol client pick
    connect_timeout_ms: int = Field(default=constants.DEFAULT_CONNECT_TIMEOUT_MS, gt=0)

    model_config = ConfigDict(extra="ignore")


class HeartbeatConfig(BaseModel):
    """Ping-based disconnect detection."""

    command: str = constants.DEFAULT_HEARTBEAT_COMMAND
    interval_ms: int = Field(default=constants.DEFAULT_HEARTBEAT_INTERVAL_MS, gt=0)
    timeout_ms: int = Field(default=constants.DEFAULT_HEARTBEAT_TIMEOUT_MS, gt=0)
    retry_ms: int = Field(default=constants.DEFAULT_HEARTBEAT_RETRY_MS, gt=0)
    # Delay after connect before the detector starts, so it never pings before spawn.
    grace_ms: int = Field(default=constants.DEFAULT_HEARTBEAT_GRACE_MS, ge=0)
    # Case-insensitive substrings that mark a chat line as a ping reply.
    response_tokens: list[str] = Field(default_factory=lambda: list(constants.DEFAULT_HEARTBEAT_TOKENS))

    model_config = ConfigDict(extra="ignore")


class ReconnectConfig(BaseModel):
    """Automatic reconnection with exponential backoff."""

    enabled: bool = True
    base_delay_ms: int = Field(default=constants.DEFAULT_RECONNECT_BASE_MS, ge=0)
    backoff_factor: float = Field(default=constants.DEFAULT_RECONNECT_FACTOR, ge=1.0)
    cap_ms: int = Field(default=constants.DEFAULT_RECONNECT_CAP_MS, ge=0)
    jitter_ms: int = Field(default=constants.DEFAULT_RECONNECT_JITTER_MS, ge=0)
    max_attempts: int = Field(default=constants.DEFAULT_MAX_RECONNECT_ATTEMPTS, ge=0)

    model_config = ConfigDict(extra="ignore")


class DropperConfig(BaseModel):
    """Order dropper cycle settings."""

    order_command: str = constants.DEFAULT_ORDER_COMMAND
    take_slot: int = Field(default=constants.DEFAULT_TAKE_SLOT, ge=0)
    target_slots: list[int] = Field(default_factory=lambda: list(constants.DEFAULT_TARGET_SLOTS))
    cycle_delay_ms: int = Field(default=constants.DEFAULT_CYCLE_DELAY_MS, ge=0)
    max_cycles: int = Field(default=constants.DEFAULT_MAX_CYCLES, ge=1)
    drop_delay_ms: int = Field(default=constants.DEFAULT_DROP_DELAY_MS, ge=0)
    select_delay_ms: int = Field(default=constants.DEFAULT_SELECT_DELAY_MS, ge=0)
    gui_timeout_ms: int = Field(default=constants.DEFAULT_GUI_TIMEOUT_MS, gt=0)
    close_fallback_ms: int = Field(default=constants.DEFAULT_CLOSE_FALLBACK_MS, gt=0)

    model_config = ConfigDict(extra="ignore")

    @field_validator("target_slots")
    @classmethod
    def _hotbar_slots(cls, value: list[int]) -> list[int]:
        for slot in value:
            if not 0 <= slot < constants.HOTBAR_SIZE:
                raise ValueError(f"hotbar slot out of range 0-{constants.HOTBAR_SIZE - 1}: {slot}")
        return value

    @field_validator("order_command")
    @classmethod
    def _non_empty_command(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("order_command must not be empty")
        return value.strip()


class TargetConfig(BaseModel):
    """Item the AFK shop should hand out (informational for the server menu)."""

    item_id: int | None = Field(default=None, gt=0)
    item_name: str | None = None

    model_config = ConfigDict(extra="ignore")


class ClientConfig(BaseModel):
    """Protocol client selection and error filtering."""

    factory: str = constants.DEFAULT_CLIENT_FACTORY
    ignored_errors: list[str] = Field(default_factory=lambda: list(constants.DEFAULT_IGNORED_ERRORS))

    model_config = ConfigDict(extra="ignore")


class BotConfig(BaseModel):
    """Complete client configuration."""

    mode: Literal["headless", "interactive"] = "headless"
    server: ServerConfig = Field(default_factory=ServerConfig)
    heartbeat: HeartbeatConfig = Field(default_factory=HeartbeatConfig)
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)
    dropper: DropperConfig = Field(default_factory=DropperConfig)
    target: TargetConfig = Field(default_factory=TargetConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_yaml(cls, path: Path | str) -> BotConfig:
        path = Path(path)
        logger.info("config_loading", path=str(path))
        data = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(data)

    def to_yaml(self, path: Path | str) -> None:
        path = Path(path)
        logger.info("config_saving", path=str(path))
        data = self.model_dump(mode="json")
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))

    def with_dropper(self, **changes: object) -> BotConfig:
        """Return a copy with validated dropper changes.

        Raises:
            ConfigError: If the changed values do not validate
        """
        try:
            dropper = DropperConfig.model_validate({**self.dropper.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigError(_first_error(e)) from e
        return self.model_copy(update={"dropper": dropper})


def _first_error(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return str(error)
    first = errors[0]
    where = ".".join(str(part) for part in first.get("loc", ()))
    return f"{where}: {first.get('msg', 'invalid value')}" if where else str(first.get("msg"))


def load_config(path: Path | str) -> BotConfig:
    return BotConfig.from_yaml(path)
