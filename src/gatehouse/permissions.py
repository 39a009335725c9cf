# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.responses import RedirectResponse

from gatehouse.auth.session import SessionData, SessionStore

PUBLIC_PATHS = {"/", "/login", "/register"}
PUBLIC_PREFIXES = ("/static/",)


def is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def current_session(request: Request, sessions: SessionStore, cookie_name: str) -> Optional[SessionData]:
    return sessions.lookup(request.cookies.get(cookie_name, ""))


async def auth_gate(request: Request, call_next):
    """Redirect to /login when a protected path is requested without a session."""
    ctx = request.app.state.ctx
    sess = current_session(request, ctx.sessions, ctx.settings.cookie_name)
    request.state.session = sess
    if sess is None and not is_public(request.url.path):
        return RedirectResponse(url="/login", status_code=303)
    return await call_next(request)
