"""Shared fixtures: in-memory Supabase double, fake OpenAI client and an API test client."""

import copy
import re
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from openai import OpenAIError
from postgrest.exceptions import APIError

from jewelcraft.config import settings
from jewelcraft.main import app
from jewelcraft.services import generation
from jewelcraft.services.database import get_db, get_optional_db

USER_ID = "11111111-1111-1111-1111-111111111111"
USER_TOKEN = "token-user-1"


# ----- Supabase double -----


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.search: Optional[str] = None
        self.order_by: Optional[tuple] = None
        self.window: Optional[tuple] = None
        self.max_rows: Optional[int] = None
        self.want_single = False

    # operations
    def select(self, columns: str = "*"):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    # modifiers
    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def or_(self, expression: str):
        match = re.search(r"title\.ilike\.%(.*?)%", expression)
        self.search = match.group(1).lower() if match else None
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def single(self):
        self.want_single = True
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        if not all(row.get(col) == val for col, val in self.filters):
            return False
        if self.search:
            text = f"{row.get('title', '')} {row.get('prompt', '')}".lower()
            return self.search in text
        return True

    def execute(self):
        self.db.calls.append((self.table, self.op))
        if self.table in self.db.failing_tables or (self.table, self.op) in self.db.failing_ops:
            raise RuntimeError(f"{self.table} unavailable")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return SimpleNamespace(data=inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=copy.deepcopy(matched))

        if self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matched]
            return SimpleNamespace(data=copy.deepcopy(matched))

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda r: r.get(column) or 0, reverse=desc)
        if self.window:
            start, end = self.window
            matched = matched[start:end + 1]
        if self.max_rows is not None:
            matched = matched[:self.max_rows]

        if self.want_single:
            if len(matched) != 1:
                raise APIError({
                    "code": "PGRST116",
                    "message": "JSON object requested, multiple (or no) rows returned",
                    "details": "The result contains 0 rows",
                    "hint": None,
                })
            return SimpleNamespace(data=copy.deepcopy(matched[0]))

        return SimpleNamespace(data=copy.deepcopy(matched))


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        if self.name in self.db.failing_rpcs:
            raise RuntimeError(f"{self.name} failed")
        return SimpleNamespace(data=self.db.rpc_results.get(self.name))


class FakeAuth:
    def __init__(self, users: Dict[str, Any]):
        self.users = users

    def get_user(self, token: str):
        if token not in self.users:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=self.users[token])


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path, data, file_options=None):
        self.storage.files[path] = data
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"

    def list(self, prefix):
        prefix = prefix.rstrip("/") + "/"
        return [{"name": p[len(prefix):]} for p in self.storage.files if p.startswith(prefix)]

    def remove(self, paths):
        for path in paths:
            self.storage.files.pop(path, None)
        return [{"name": p} for p in paths]


class FakeStorage:
    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.buckets: List[Any] = []

    def from_(self, bucket):
        return FakeBucket(self, bucket)

    def list_buckets(self):
        return self.buckets

    def create_bucket(self, name, options=None):
        self.buckets.append(SimpleNamespace(name=name, options=options))


class FakeSupabase:
    """Just enough of the supabase-py client for the routers and services."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.rpc_calls: List[tuple] = []
        self.rpc_results: Dict[str, Any] = {}
        self.failing_tables: set = set()
        self.failing_ops: set = set()
        self.failing_rpcs: set = set()
        self.auth = FakeAuth({USER_TOKEN: SimpleNamespace(id=USER_ID, email="owner@example.com")})
        self.storage = FakeStorage()

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        return FakeRpc(self, name, params or {})


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def client(fake_db, monkeypatch):
    monkeypatch.setattr(settings, "METALS_API_KEY", "")
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_optional_db] = lambda: fake_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {USER_TOKEN}"}


# ----- OpenAI double -----


class FakeImages:
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.revised: Dict[int, Optional[str]] = {}
        self.default_revised = "A polished yellow gold ring with a round diamond, engraved text on the band"
        self.failing_views: set = set()

    async def generate(self, **kwargs):
        self.calls.append(kwargs)
        view = int(re.search(r"View (\d+)/", kwargs["prompt"]).group(1))
        if view in self.failing_views:
            raise OpenAIError(f"content policy rejection for view {view}")
        revised = self.revised.get(view, self.default_revised)
        return SimpleNamespace(data=[SimpleNamespace(url=f"https://images.test/view{view}.png", revised_prompt=revised)])


class FakeCompletions:
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.content = "Materials: 14k yellow gold, 1.2ct round diamond.\n\nTimeline: 10 days."
        self.fail = False

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise OpenAIError("rate limited")
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


class FakeOpenAI:
    def __init__(self):
        self.images = FakeImages()
        self.chat = SimpleNamespace(completions=FakeCompletions())


@pytest.fixture
def fake_openai(monkeypatch):
    fake = FakeOpenAI()
    monkeypatch.setattr(generation, "client", fake)
    monkeypatch.setattr(generation, "IMAGE_REQUEST_DELAY", 0)
    return fake
