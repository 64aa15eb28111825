import copy
import os
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

# Désactive l'init fastapi-limiter (évite toute connexion Redis pendant les tests)
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from storefront import config
from storefront.app_setup.factory import create_app
from storefront.auth.service import hash_password
import storefront.infra.supabase_client as supabase_client

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct horse battery"
ADMIN_SECRET = "s" * 48


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


# --- Stockage simulé: sous-ensemble du query builder Supabase utilisé par les repositories ---

class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data


def _same(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return a is b
    if a is None or b is None:
        return a is b
    return a == b or str(a) == str(b)


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.columns: Optional[List[str]] = None
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[Any] = []
        self.ordering: Optional[tuple] = None
        self.max_rows: Optional[int] = None

    def select(self, columns: str = "*"):
        if self.op == "select":
            cols = [c.strip() for c in columns.split(",")]
            self.columns = None if cols == ["*"] else cols
        return self

    def insert(self, rows):
        self.op, self.payload = "insert", rows
        return self

    def upsert(self, rows, on_conflict: Optional[str] = None):
        self.op, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def update(self, changes):
        self.op, self.payload = "update", changes
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: _same(row.get(column), value))
        return self

    def in_(self, column: str, values):
        wanted = list(values)
        self.filters.append(lambda row: any(_same(row.get(column), v) for v in wanted))
        return self

    def order(self, column: str, desc: bool = False):
        self.ordering = (column, desc)
        return self

    def limit(self, n: int):
        self.max_rows = n
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self.db.rows(self.table_name) if all(f(row) for f in self.filters)]

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self.columns is None:
            return copy.deepcopy(row)
        return {c: copy.deepcopy(row.get(c)) for c in self.columns}

    def execute(self) -> FakeResponse:
        if self.table_name in self.db.failing:
            raise RuntimeError(f"storage unavailable: {self.table_name}")
        if self.op == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([copy.deepcopy(self.db.add(self.table_name, r)) for r in rows])
        if self.op == "upsert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = []
            for r in rows:
                existing = None
                if self.on_conflict:
                    existing = next(
                        (x for x in self.db.rows(self.table_name) if _same(x.get(self.on_conflict), r.get(self.on_conflict))),
                        None,
                    )
                if existing is not None:
                    existing.update(copy.deepcopy(r))
                    stored.append(copy.deepcopy(existing))
                else:
                    stored.append(copy.deepcopy(self.db.add(self.table_name, r)))
            return FakeResponse(stored)
        matching = self._matching()
        if self.op == "update":
            for row in matching:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse([copy.deepcopy(r) for r in matching])
        if self.op == "delete":
            self.db.tables[self.table_name] = [r for r in self.db.rows(self.table_name) if r not in matching]
            return FakeResponse([copy.deepcopy(r) for r in matching])
        if self.ordering:
            column, desc = self.ordering
            matching = sorted(matching, key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self.max_rows is not None:
            matching = matching[: self.max_rows]
        return FakeResponse([self._project(r) for r in matching])


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failing: set = set()
        self._seq = 0

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def add(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self._seq += 1
        stored = copy.deepcopy(row)
        stored.setdefault("id", f"{table}-{self._seq}")
        stored.setdefault("created_at", f"2024-01-01T00:00:00.{self._seq:06d}+00:00")
        self.rows(table).append(stored)
        return stored

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


# --- Fixtures ---

@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Chaque test démarre sans service externe: catalogue statique, panier mock, checkout mock."""
    for name in (
        "SUPABASE_URL",
        "SUPABASE_ANON",
        "SUPABASE_SERVICE_KEY",
        "SHOPIFY_STORE_DOMAIN",
        "SHOPIFY_STOREFRONT_ACCESS_TOKEN",
        "SHOPIFY_ADMIN_ACCESS_TOKEN",
        "SHOPIFY_WEBHOOK_SECRET",
        "STRIPE_SECRET_KEY",
        "STRIPE_WEBHOOK_SECRET",
        "REVIEW_ADMIN_EMAIL",
        "REVIEW_ADMIN_PASSWORD_HASH",
        "REVIEW_ADMIN_SECRET",
    ):
        monkeypatch.setattr(config, name, "")
    monkeypatch.setattr(config, "CART_LENIENT_QUANTITY", False)
    monkeypatch.setattr(config, "COOKIE_SECURE", False)
    monkeypatch.setattr(config, "RATE_LIMIT_BACKEND", "memory")
    monkeypatch.setattr(config, "ENFORCE_ENV_VALIDATION", False)
    monkeypatch.setattr(config, "CHECKOUT_MOCK_BASE_URL", "https://checkout.storefront.test")
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    supabase_client.reset_clients()
    yield
    supabase_client.reset_clients()


@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    db = FakeSupabase()
    monkeypatch.setattr(config, "SUPABASE_URL", "https://project.supabase.test")
    monkeypatch.setattr(config, "SUPABASE_ANON", "anon-key")
    monkeypatch.setattr(supabase_client, "get_supabase", lambda: db)
    monkeypatch.setattr(supabase_client, "get_service_supabase", lambda: db)
    return db


@pytest.fixture
def admin_env(monkeypatch):
    monkeypatch.setattr(config, "REVIEW_ADMIN_EMAIL", ADMIN_EMAIL)
    monkeypatch.setattr(config, "REVIEW_ADMIN_PASSWORD_HASH", hash_password(ADMIN_PASSWORD, salt="pepper"))
    monkeypatch.setattr(config, "REVIEW_ADMIN_SECRET", ADMIN_SECRET)
    return {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "secret": ADMIN_SECRET}


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(admin_env, client) -> TestClient:
    res = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 200, res.text
    return client
