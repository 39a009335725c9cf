import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import json
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from gatehouse.app import create_app
from gatehouse.auth.session import SessionStore
from gatehouse.config import Settings
from gatehouse.context import AppContext
from gatehouse.infra.users_repo import init_db, make_engine
from gatehouse.services.event_service import EventClient

EVENTS_URL = "https://events.test/discovery/v2/events.json"


def sample_events(n: int = 3) -> list:
    return [
        {
            "name": f"Concert {i}",
            "url": f"https://events.test/e/{i}",
            "dates": {"start": {"localDate": "2026-11-0%d" % (i + 1)}},
            "_embedded": {"venues": [{"name": f"Venue {i}"}]},
        }
        for i in range(n)
    ]


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'data' / 'gatehouse.db'}",
        session_secret="test-secret",
        api_key="test-key",
        events_url=EVENTS_URL,
    )


@pytest.fixture()
def engine(settings):
    eng = make_engine(settings.database_url)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def upstream():
    """Mutable stub of the event-search API.

    Tests set ``upstream["handler"]`` to change behaviour; every request is
    appended to ``upstream["requests"]``.
    """
    state = {"requests": []}

    def ok(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=json.dumps({"_embedded": {"events": sample_events()}}))

    state["handler"] = ok

    def dispatch(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return state["handler"](request)

    state["transport"] = httpx.MockTransport(dispatch)
    return state


@pytest.fixture()
def context(settings, upstream) -> AppContext:
    return AppContext(
        settings=settings,
        engine=make_engine(settings.database_url),
        sessions=SessionStore(settings.session_secret, max_age=settings.session_max_age),
        events=EventClient(settings.events_url, settings.api_key, transport=upstream["transport"]),
    )


@pytest.fixture()
def client(context):
    app = create_app(context=context)
    with TestClient(app) as c:
        yield c


def register(client, username="alice", password="hunter2"):
    return client.post("/register", data={"username": username, "password": password}, follow_redirects=False)


def login(client, username="alice", password="hunter2"):
    return client.post("/login", data={"username": username, "password": password}, follow_redirects=False)
