# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = "WARNING"
    config_path: Path = Field(default=Path("config.yaml"))

    model_config = SettingsConfigDict(
        env_prefix="AFKBOT_",
        env_nested_delimiter="__",
        extra="ignore",
    )
