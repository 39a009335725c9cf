import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from gatehouse.app import create_app
from gatehouse.auth.session import SessionStore
from gatehouse.context import AppContext
from gatehouse.services.event_service import EventClient

from conftest import login, register


def test_root_redirects_to_login(client):
    r = client.get("/", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_login_and_register_pages_render(client):
    assert "Login" in client.get("/login").text
    assert "Register" in client.get("/register").text


def test_register_then_login_reaches_discover(client, context):
    r = register(client)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"

    r = login(client)
    assert r.status_code == 303
    assert r.headers["location"] == "/discover"
    assert context.settings.cookie_name in r.cookies
    assert len(context.sessions) == 1

    r = client.get("/discover")
    assert r.status_code == 200
    assert "Concert 0" in r.text
    assert "alice" in r.text


def test_wrong_password_rerenders_login(client, context):
    register(client)
    r = login(client, password="nope")
    assert r.status_code == 200
    assert "Incorrect username or password." in r.text
    assert context.settings.cookie_name not in r.cookies
    assert len(context.sessions) == 0


def test_unknown_user_redirects_to_register(client):
    r = login(client, username="nobody")
    assert r.status_code == 303
    assert r.headers["location"] == "/register"


def test_duplicate_registration_is_reported(client):
    register(client)
    r = register(client, password="other")
    assert r.status_code == 200
    assert "already taken" in r.text


def test_empty_password_registration_is_reported(client):
    r = register(client, password="")
    assert r.status_code == 200
    assert "Registration failed" in r.text


@pytest.mark.parametrize("path", ["/discover", "/logout", "/somewhere/else"])
def test_protected_paths_redirect_without_session(client, path):
    r = client.get(path, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_tampered_cookie_is_not_a_session(client, context):
    register(client)
    login(client)
    name = context.settings.cookie_name
    tampered = client.cookies.get(name) + "x"
    client.cookies.clear()
    r = client.get("/discover", headers={"Cookie": f"{name}={tampered}"}, follow_redirects=False)
    assert r.status_code == 303


def test_logout_destroys_session(client, context):
    register(client)
    login(client)
    token = client.cookies.get(context.settings.cookie_name)

    r = client.get("/logout")
    assert r.status_code == 200
    assert "Logged out successfully!" in r.text
    assert len(context.sessions) == 0

    # Replaying the old cookie must not revive the session.
    client.cookies.clear()
    r = client.get(
        "/discover",
        headers={"Cookie": f"{context.settings.cookie_name}={token}"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_logout_reports_destroy_failure(client, context, monkeypatch):
    from gatehouse.errors import SessionError

    register(client)
    login(client)

    def boom(session_id):
        raise SessionError("gone")

    monkeypatch.setattr(context.sessions, "destroy", boom)
    r = client.get("/logout")
    assert r.status_code == 200
    assert "error logging you out" in r.text


def test_discover_upstream_failure_renders_empty(client, upstream):
    register(client)
    login(client)

    def fail(request):
        raise httpx.ConnectError("unreachable", request=request)

    upstream["handler"] = fail
    r = client.get("/discover")
    assert r.status_code == 200
    assert "Failed to load events. Please try again later." in r.text
    assert "Concert" not in r.text


def test_discover_sends_fixed_query(client, upstream, context):
    register(client)
    login(client)
    client.get("/discover")

    req = upstream["requests"][-1]
    assert req.url.params["apikey"] == "test-key"
    assert req.url.params["keyword"] == context.settings.events_keyword
    assert req.url.params["size"] == "10"


@pytest.mark.parametrize(
    "body",
    [
        {"_embedded": {"events": ["not-an-object"]}},
        {"events": [{"name": "x", "dates": "soon"}]},
    ],
    ids=["non-object-event", "no-embedded"],
)
def test_discover_malformed_upstream_renders_empty(client, upstream, body):
    register(client)
    login(client)
    upstream["handler"] = lambda request: httpx.Response(200, content=json.dumps(body))

    r = client.get("/discover")
    assert r.status_code == 200
    assert "Failed to load events. Please try again later." in r.text


def test_discover_tolerates_odd_event_fields(client, upstream):
    register(client)
    login(client)
    odd = {"name": "Odd Show", "dates": "soon", "images": "none", "_embedded": [1], "url": None}
    upstream["handler"] = lambda request: httpx.Response(200, content=json.dumps({"_embedded": {"events": [odd]}}))

    r = client.get("/discover")
    assert r.status_code == 200
    assert "Odd Show" in r.text
    assert "Failed to load events" not in r.text


def test_startup_survives_unreachable_database(settings, upstream, tmp_path):
    from loguru import logger

    # A regular file as the parent directory makes every connect fail.
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    broken = create_engine(f"sqlite:///{blocker / 'gatehouse.db'}")
    context = AppContext(
        settings=settings,
        engine=broken,
        sessions=SessionStore(settings.session_secret),
        events=EventClient(settings.events_url, settings.api_key, transport=upstream["transport"]),
    )
    app = create_app(context=context)
    errors = []
    sink = logger.add(lambda m: errors.append(str(m)), level="ERROR")
    try:
        with TestClient(app) as c:
            assert c.get("/login").status_code == 200
            r = login(c)
            assert r.status_code == 200
            assert "An error occurred. Please try again." in r.text
    finally:
        logger.remove(sink)
    assert any("Database connection failed" in e for e in errors)
