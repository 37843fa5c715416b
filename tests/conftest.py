from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from wakeup_checkin.config import settings
from wakeup_checkin.db import init_db, make_engine
from wakeup_checkin.deps import get_clock, get_db, get_feed, get_now, get_session_factory
from wakeup_checkin.main import app
from wakeup_checkin.models import User
from wakeup_checkin.services.realtime import ChangeFeed

# 2024-01-02 → checksum 485 → QUOTES[485 % 8] == QUOTES[5]
FIXED_NOW = datetime(2024, 1, 2, 6, 15, 0, tzinfo=timezone.utc)
FIXED_QUOTE = "꿈을 이루기 위한 첫걸음을 내디뎌라."


@pytest.fixture(autouse=True)
def utc_today(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "DEFAULT_TZ", "UTC")


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_user(session):
    def _make(user_id: str = "x@example.com", name: str = "김민수") -> User:
        user = User(id=user_id, name=name, provider="kakao")
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed(queue_size=4)


@pytest.fixture
def clock():
    """Mutable "now" the API sees; tests move it forward with clock['now'] = ..."""
    return {"now": FIXED_NOW}


@pytest.fixture
def client(engine, feed, clock):
    def _db():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_session_factory] = lambda: (lambda: Session(engine))
    app.dependency_overrides[get_feed] = lambda: feed
    app.dependency_overrides[get_now] = lambda: clock["now"]
    app.dependency_overrides[get_clock] = lambda: (lambda: clock["now"])
    yield TestClient(app)
    app.dependency_overrides.clear()


def kakao_claims(email: str = "x@example.com", nickname: str = "김민수") -> dict:
    return {
        "email": email,
        "id": "a1b2c3",
        "user_metadata": {"nickname": nickname, "avatar_url": "https://img.example/p.png"},
        "app_metadata": {"provider": "kakao"},
    }


@pytest.fixture
def login(client):
    def _login(email: str = "x@example.com", nickname: str = "김민수") -> dict:
        resp = client.post("/api/v1/auth/login", json=kakao_claims(email, nickname))
        assert resp.status_code == 200
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login
