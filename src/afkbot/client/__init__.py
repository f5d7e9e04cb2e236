# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Protocol client seam: abstract client, events, packets and test doubles."""

from __future__ import annotations

import importlib

from afkbot.client.base import ClientFactory, ProtocolClient
from afkbot.client.chaos import ChaosClient
from afkbot.client.events import ClientEvent, EventBus, EventKind
from afkbot.client.simulated import SimulatedClient


def load_client_factory(path: str) -> ClientFactory:
    """Import a client factory from "package.module:callable".

    Raises:
        ValueError: If the path is malformed or does not name a callable
        ModuleNotFoundError: If the module cannot be imported
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Client factory must look like 'module:callable', got {path!r}")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(f"{path} is not callable")
    return factory


__all__ = [
    "ChaosClient",
    "ClientEvent",
    "ClientFactory",
    "EventBus",
    "EventKind",
    "ProtocolClient",
    "SimulatedClient",
    "load_client_factory",
]
