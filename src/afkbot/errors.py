# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exception hierarchy for afkbot."""


class AfkBotError(Exception):
    """Base exception for afkbot."""

    pass


class ClientError(AfkBotError):
    """Protocol client could not perform an operation."""

    pass


class CommandSendError(AfkBotError):
    """A command could not be handed to the protocol client."""

    pass


class NotReadyError(AfkBotError):
    """Session is not ready to send commands."""

    pass


class ConfigError(AfkBotError):
    """Invalid configuration argument supplied by the user."""

    pass
