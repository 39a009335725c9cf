# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from gatehouse.auth.session import SessionStore
from gatehouse.config import Settings
from gatehouse.infra.users_repo import make_engine
from gatehouse.services.event_service import EventClient


@dataclass
class AppContext:
    """Everything a request handler needs, built once at startup."""

    settings: Settings
    engine: Engine
    sessions: SessionStore
    events: EventClient

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        return cls(
            settings=settings,
            engine=make_engine(settings.database_url),
            sessions=SessionStore(settings.session_secret, max_age=settings.session_max_age),
            events=EventClient(settings.events_url, settings.api_key, timeout=settings.http_timeout),
        )
