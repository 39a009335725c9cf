# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from gatehouse.errors import ConfigError, SessionError

DEFAULT_MAX_AGE_SECONDS = 28800  # 8 hours
SESSION_SALT = "gatehouse.session.v1"


@dataclass(frozen=True)
class SessionData:
    session_id: str
    username: str
    created_at: float = 0.0


class SessionStore:
    """In-process session table keyed by an opaque id.

    The cookie carries the id signed with the server secret; the user record
    itself never leaves the server.
    """

    def __init__(self, secret: str, *, max_age: int = DEFAULT_MAX_AGE_SECONDS):
        if not secret:
            raise ConfigError("Session secret is empty")
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=SESSION_SALT)
        self.max_age = max_age
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, username: str) -> str:
        """Bind a fresh session to username and return the signed cookie token."""
        sid = secrets.token_urlsafe(32)
        now = time.time()
        with self._lock:
            self._prune_locked(now)
            self._sessions[sid] = SessionData(session_id=sid, username=username, created_at=now)
        return self._serializer.dumps({"sid": sid})

    def _prune_locked(self, now: float) -> None:
        # Caller holds the lock.
        expired = [sid for sid, s in self._sessions.items() if now - s.created_at > self.max_age]
        for sid in expired:
            del self._sessions[sid]

    def lookup(self, token: str) -> Optional[SessionData]:
        with self._lock:
            self._prune_locked(time.time())
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        sid = str((data or {}).get("sid") or "").strip() if isinstance(data, dict) else ""
        if not sid:
            return None
        with self._lock:
            return self._sessions.get(sid)

    def destroy(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionError(f"Unknown session {session_id[:8]}...")
