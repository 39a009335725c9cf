# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from gatehouse.auth.users import LoginStatus, login_user, register_user
from gatehouse.config import Settings
from gatehouse.context import AppContext
from gatehouse.errors import DuplicateUserError, EventLookupError, RegistrationError, SessionError
from gatehouse.infra.users_repo import check_connection, init_db
from gatehouse.logging_setup import configure_logging
from gatehouse.permissions import auth_gate
from gatehouse.services.event_service import summarize_event

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

MSG_BAD_CREDENTIALS = "Incorrect username or password."
MSG_LOGIN_ERROR = "An error occurred. Please try again."
MSG_DUPLICATE_USER = "That username is already taken."
MSG_REGISTER_ERROR = "Registration failed. Please try again."
MSG_EVENTS_ERROR = "Failed to load events. Please try again later."
MSG_LOGOUT_OK = "Logged out successfully!"
MSG_LOGOUT_ERROR = "There was an error logging you out. Please try again."


@asynccontextmanager
async def _lifespan(app: FastAPI):
    ctx: AppContext = app.state.ctx
    # A database that is down at startup is logged, not fatal.
    try:
        check_connection(ctx.engine)
        init_db(ctx.engine)
        logger.info("Database connection successful")
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
    yield
    ctx.engine.dispose()


def _ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def _render(request: Request, template_name: str, ctx: Optional[dict] = None):
    """TemplateResponse wrapper injecting the current session."""
    base_ctx = {"current_session": getattr(request.state, "session", None)}
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged)


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    if context is None:
        context = AppContext.from_settings(settings or Settings.from_env())
    configure_logging(context.settings.log_level)

    app = FastAPI(lifespan=_lifespan)
    app.state.ctx = context
    app.middleware("http")(auth_gate)
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    # ------------------ Public routes ------------------

    @app.get("/")
    def home():
        return RedirectResponse(url="/login", status_code=303)

    @app.get("/register", response_class=HTMLResponse)
    def register_get(request: Request):
        return _render(request, "pages/register.html", {"error": ""})

    @app.post("/register")
    def register_post(request: Request, username: str = Form(""), password: str = Form("")):
        try:
            register_user(_ctx(request).engine, username, password)
        except DuplicateUserError:
            logger.info("Registration rejected: username {} exists", username.strip())
            return _render(request, "pages/register.html", {"error": MSG_DUPLICATE_USER, "username": username})
        except RegistrationError as e:
            logger.warning(f"Registration failed: {e}")
            return _render(request, "pages/register.html", {"error": MSG_REGISTER_ERROR, "username": username})
        return RedirectResponse(url="/login", status_code=303)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request):
        return _render(request, "pages/login.html", {"message": ""})

    @app.post("/login")
    def login_post(request: Request, username: str = Form(""), password: str = Form("")):
        ctx = _ctx(request)
        outcome = login_user(ctx.engine, username, password)
        if outcome.status is LoginStatus.UNKNOWN_USER:
            return RedirectResponse(url="/register", status_code=303)
        if outcome.status is LoginStatus.BAD_PASSWORD:
            return _render(request, "pages/login.html", {"message": MSG_BAD_CREDENTIALS, "username": username})
        if outcome.status is LoginStatus.ERROR:
            return _render(request, "pages/login.html", {"message": MSG_LOGIN_ERROR, "username": username})

        token = ctx.sessions.create(outcome.user.username)
        resp = RedirectResponse(url="/discover", status_code=303)
        resp.set_cookie(
            ctx.settings.cookie_name,
            token,
            max_age=ctx.settings.session_max_age,
            **ctx.settings.cookie_settings(),
        )
        return resp

    # ------------------ Protected routes ------------------

    @app.get("/discover", response_class=HTMLResponse)
    async def discover(request: Request):
        ctx = _ctx(request)
        try:
            events = await ctx.events.search(ctx.settings.events_keyword, ctx.settings.events_size)
        except EventLookupError as e:
            logger.warning(f"Discover page rendered without events: {e}")
            return _render(request, "pages/discover.html", {"results": [], "message": MSG_EVENTS_ERROR})
        results = [summarize_event(ev) for ev in events]
        return _render(request, "pages/discover.html", {"results": results, "message": ""})

    @app.get("/logout", response_class=HTMLResponse)
    def logout(request: Request):
        ctx = _ctx(request)
        sess = request.state.session
        try:
            ctx.sessions.destroy(sess.session_id)
        except SessionError as e:
            logger.error(f"Error destroying session: {e}")
            message = MSG_LOGOUT_ERROR
        else:
            message = MSG_LOGOUT_OK
        request.state.session = None
        resp = _render(request, "pages/logout.html", {"message": message})
        resp.delete_cookie(ctx.settings.cookie_name)
        return resp

    return app
