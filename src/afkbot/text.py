# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Chat text helpers."""

from __future__ import annotations

import re

_FORMAT_CODE = re.compile(r"§.", re.DOTALL)


def strip_formatting(text: str | None) -> str:
    """Remove `§x` color/format codes from server text."""
    if not text:
        return ""
    return _FORMAT_CODE.sub("", text)
