import copy
import uuid
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from borrow_buddy.main import app
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.core.dependencies import get_current_user_id


# Composite unique keys enforced by the fake, as in the hosted schema
UNIQUE_KEYS = {
    "group_members": ("group_id", "user_id"),
    "tool_categories": ("name",),
}

_clock = itertools.count()
_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _now() -> str:
    # Strictly increasing so ordering by created_at is deterministic
    return (_EPOCH + timedelta(seconds=next(_clock))).isoformat()


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Subset of the postgrest query builder used by the services"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload: Any = None
        self.filters: List = []
        self.orders: List = []
        self.limit_n: Optional[int] = None
        self.offset_n = 0
        self.single = False
        self.count_mode = None

    def select(self, *columns, count=None):
        self.action = "select"
        self.count_mode = count
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def upsert(self, payload, **kwargs):
        self.action, self.payload = "upsert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda r: r.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda r: r.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda r: r.get(column) in values)
        return self

    def lt(self, column, value):
        self.filters.append(lambda r: r.get(column) is not None and str(r.get(column)) < str(value))
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def offset(self, n):
        self.offset_n = n
        return self

    def maybe_single(self):
        self.single = True
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [r for r in self.db.rows(self.table_name) if all(f(r) for f in self.filters)]

    def execute(self):
        self.db.calls.append((self.table_name, self.action))
        failure = self.db.failures.get((self.table_name, self.action))
        if failure:
            raise failure

        if self.action in ("insert", "upsert"):
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([self.db.store(self.table_name, p, upsert=self.action == "upsert") for p in payloads])

        rows = self._matching()
        if self.action == "update":
            for r in rows:
                r.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(rows))
        if self.action == "delete":
            table = self.db.rows(self.table_name)
            table[:] = [r for r in table if r not in rows]
            return FakeResponse(copy.deepcopy(rows))

        for column, desc in reversed(self.orders):
            rows = sorted(rows, key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=desc)
        total = len(rows)
        rows = rows[self.offset_n:]
        if self.limit_n is not None:
            rows = rows[:self.limit_n]
        rows = copy.deepcopy(rows)
        if self.single:
            return FakeResponse(rows[0] if rows else None)
        return FakeResponse(rows, count=total if self.count_mode else None)


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path, file, file_options=None):
        files = self.storage.files.setdefault(self.name, {})
        upsert = (file_options or {}).get("upsert") == "true"
        if path in files and not upsert:
            raise Exception("The resource already exists")
        files[path] = file
        self.storage.options[(self.name, path)] = dict(file_options or {})
        return {"path": path}

    def download(self, path):
        try:
            return self.storage.files[self.name][path]
        except KeyError:
            raise Exception(f"Object not found: {path}")

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.files: Dict[str, Dict[str, bytes]] = {}
        self.options: Dict = {}

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeSupabase:
    """In-memory stand-in for the supabase Client"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.storage = FakeStorage()
        self.failures: Dict = {}
        self.calls: List = []

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name) -> List[Dict[str, Any]]:
        return self.tables.setdefault(name, [])

    def store(self, table_name, payload, upsert=False) -> Dict[str, Any]:
        table = self.rows(table_name)
        row = copy.deepcopy(payload)
        if upsert and "id" in row:
            for existing in table:
                if existing["id"] == row["id"]:
                    existing.update(row)
                    return copy.deepcopy(existing)
        keys = UNIQUE_KEYS.get(table_name)
        if keys and any(all(r.get(k) == row.get(k) for k in keys) for r in table):
            raise APIError({"code": "23505", "message": f"duplicate key value violates unique constraint on {table_name}"})
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", _now())
        table.append(row)
        return copy.deepcopy(row)

    def seed(self, table, /, **fields) -> Dict[str, Any]:
        return self.store(table, fields)

    def fail(self, table, action, error=None):
        self.failures[(table, action)] = error or Exception(f"{table} {action} failed")


@pytest.fixture
def db():
    return FakeSupabase()


def make_user(db: FakeSupabase, name: str) -> Dict[str, Any]:
    user_id = str(uuid.uuid4())
    email = f"{name.lower()}@example.com"
    db.seed("profiles", id=user_id, display_name=name)
    return {"id": user_id, "email": email, "user_metadata": {"display_name": name}}


def make_group(db: FakeSupabase, creator: Dict[str, Any], name: str = "Maple Street", *members) -> Dict[str, Any]:
    group = db.seed("groups", name=name, description=None, is_private=True, creator_id=creator["id"])
    db.seed("group_members", group_id=group["id"], user_id=creator["id"], role="admin")
    for member in members:
        db.seed("group_members", group_id=group["id"], user_id=member["id"], role="member")
    return group


def make_tool(db: FakeSupabase, owner: Dict[str, Any], name: str = "Cordless Drill", **fields) -> Dict[str, Any]:
    row = {
        "owner_id": owner["id"],
        "name": name,
        "description": None,
        "category_id": None,
        "condition": "good",
        "status": "available",
        "brand": None,
        "power_source": None,
        "image_url": None,
    }
    row.update(fields)
    return db.seed("tools", **row)


@pytest.fixture
def alice(db):
    return make_user(db, "Alice")


@pytest.fixture
def bob(db):
    return make_user(db, "Bob")


@pytest.fixture
def carol(db):
    return make_user(db, "Carol")


@pytest.fixture
def client(db):
    """TestClient on the real app with the fake database; call client.login(user) to switch users"""
    app.dependency_overrides[get_supabase] = lambda: db

    test_client = TestClient(app)

    def login(user):
        app.dependency_overrides[get_current_user_id] = lambda: user
        return test_client

    test_client.login = login
    yield test_client
    app.dependency_overrides.clear()
