# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""afkbot: persistent game-server session with liveness checks and order automation."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
