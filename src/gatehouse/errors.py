# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations


class GatehouseError(Exception):
    """Base class for application errors."""


class ConfigError(GatehouseError):
    pass


class RegistrationError(GatehouseError):
    pass


class DuplicateUserError(RegistrationError):
    pass


class SessionError(GatehouseError):
    pass


class EventLookupError(GatehouseError):
    """Raised when the event-search API call fails or returns an unusable body."""
