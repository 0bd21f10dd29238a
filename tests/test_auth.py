import asyncio
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from borrow_buddy.modules.auth import service as auth_service
from borrow_buddy.modules.requests import overdue_scheduler
from tests.conftest import make_group, make_tool


class FakeAuth:
    def __init__(self):
        self.users = {}
        self.tokens = {}
        self.get_user_calls = 0

    def sign_up(self, credentials):
        if credentials["email"] in self.users:
            raise Exception("User already registered")
        user = SimpleNamespace(
            id=f"user-{len(self.users) + 1}",
            email=credentials["email"],
            user_metadata=credentials["options"]["data"],
            created_at="2026-01-01T00:00:00+00:00"
        )
        self.users[credentials["email"]] = (user, credentials["password"])
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials):
        user, password = self.users.get(credentials["email"], (None, None))
        if user is None or password != credentials["password"]:
            raise Exception("Invalid login credentials")
        token = f"token-{user.id}"
        self.tokens[token] = user
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=token))

    def get_user(self, jwt):
        self.get_user_calls += 1
        if jwt not in self.tokens:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=self.tokens[jwt])

    def sign_out(self):
        pass


@pytest.fixture
def auth(db):
    auth_service._AUTH_USER_CACHE.clear()
    db.auth = FakeAuth()
    yield db.auth
    auth_service._AUTH_USER_CACHE.clear()


def register(client, email="dana@example.com", **extra):
    return client.post("/api/v1/auth/register", json={"email": email, "password": "hunter22", **extra})


def test_register_creates_profile(client, db, auth):
    response = register(client, display_name="Dana")
    assert response.status_code == 201
    assert response.json()["display_name"] == "Dana"
    profile = db.rows("profiles")[-1]
    assert (profile["id"], profile["display_name"]) == (response.json()["user_id"], "Dana")


def test_register_defaults_display_name_to_email_prefix(client, auth):
    assert register(client).json()["display_name"] == "dana"


def test_register_twice_is_rejected(client, auth):
    register(client)
    assert register(client).status_code == 400


def test_login_and_me(client, auth):
    register(client, display_name="Dana")
    login = client.post("/api/v1/auth/login", json={"email": "dana@example.com", "password": "hunter22"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    me = client.get("/api/v1/auth/me", headers=headers).json()
    assert me["email"] == "dana@example.com"
    assert me["display_name"] == "Dana"
    client.get("/api/v1/auth/me", headers=headers)
    assert auth.get_user_calls == 1


def test_bad_password_and_bad_token(client, auth):
    register(client)
    bad = client.post("/api/v1/auth/login", json={"email": "dana@example.com", "password": "wrong-one"})
    assert bad.status_code == 401
    me = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer forged"})
    assert me.status_code == 401


def test_logout_drops_cached_user(client, auth):
    register(client)
    token = client.post("/api/v1/auth/login", json={
        "email": "dana@example.com", "password": "hunter22"
    }).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}
    client.get("/api/v1/auth/me", headers=headers)

    assert client.post("/api/v1/auth/logout", headers=headers).status_code == 200
    assert auth_service._AUTH_USER_CACHE == {}


def test_overdue_sweep_uses_service_client(db, alice, bob, monkeypatch):
    make_group(db, alice, "Maple Street", bob)
    drill = make_tool(db, alice)
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    late = db.seed("tool_requests", tool_id=drill["id"], requester_id=bob["id"],
                   start_date="2020-01-01", end_date=yesterday, status="picked_up")
    monkeypatch.setattr(overdue_scheduler, "get_service_supabase", lambda: db)

    asyncio.run(overdue_scheduler.check_overdue_requests())

    assert db.rows("tool_requests")[0]["id"] == late["id"]
    assert db.rows("tool_requests")[0]["status"] == "overdue"


def test_overdue_sweep_logs_failures(db, monkeypatch):
    db.fail("tool_requests", "update")
    monkeypatch.setattr(overdue_scheduler, "get_service_supabase", lambda: db)
    asyncio.run(overdue_scheduler.check_overdue_requests())
