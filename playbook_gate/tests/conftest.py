"""Shared fixtures for Playbook Gate tests.

Provides:
- store: SignupStore over an in-memory backend
- notifier: a recording notifier that never leaves the process
- client: sync TestClient wired to an app using both
- fake_db: patches supabase_client with an in-memory fake
- make_signup: factory for stored signup records
"""

import json
import os
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

# Set env vars before any playbook_gate imports
os.environ.setdefault("SUPABASE_URL", "https://fake.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "fake-key")
os.environ.setdefault("RESEND_API_KEY", "re_test_123")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("ADMIN_SECRET", "admin-secret-123")
os.environ.setdefault("PUBLIC_URL", "https://playbook.example.com")


# ---------------------------------------------------------------------------
# In-memory fake Supabase
# ---------------------------------------------------------------------------

class FakeQueryResult:
    def __init__(self, data=None):
        self.data = data or []


class FakeQueryBuilder:
    """Mimics the slice of the supabase-py query builder the backend uses."""

    def __init__(self, store, table_name):
        self._store = store
        self._table = table_name
        self._filters = []
        self._limit_val = None
        self._upsert_data = None
        self._upsert_conflict = None

    def select(self, columns="*"):
        return self

    def upsert(self, data, on_conflict=None):
        self._upsert_data = data
        self._upsert_conflict = on_conflict
        return self

    def eq(self, col, val):
        self._filters.append((col, val))
        return self

    def limit(self, n):
        self._limit_val = n
        return self

    def execute(self):
        table = self._store[self._table]

        if self._upsert_data is not None:
            row = dict(self._upsert_data)
            if self._upsert_conflict:
                cols = [c.strip() for c in self._upsert_conflict.split(",")]
                for existing in table:
                    if all(existing.get(c) == row.get(c) for c in cols):
                        existing.update(row)
                        return FakeQueryResult(data=[existing])
            table.append(row)
            return FakeQueryResult(data=[row])

        rows = [r for r in table if all(r.get(c) == v for c, v in self._filters)]
        if self._limit_val is not None:
            rows = rows[:self._limit_val]
        return FakeQueryResult(data=rows)


class FakeDB:
    """In-memory store keyed by table name."""

    def __init__(self):
        self.store = defaultdict(list)


@pytest.fixture
def fake_db():
    """Provides a clean in-memory DB and patches supabase_client._table."""
    db = FakeDB()

    def fake_table(name):
        return FakeQueryBuilder(db.store, name)

    with patch("playbook_gate.supabase_client._table", side_effect=fake_table):
        with patch("playbook_gate.supabase_client.get_client", return_value=MagicMock()):
            yield db


# ---------------------------------------------------------------------------
# Store, notifier, app
# ---------------------------------------------------------------------------

class RecordingNotifier:
    """Notifier double: records each send, optionally fails with an error."""

    mode = "recording"

    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def send(self, signup, access_link):
        self.sent.append({"signup": signup, "access_link": access_link})
        if self.error is not None:
            raise self.error
        return {"success": True, "email": signup["email"], "demo": False}


@pytest.fixture
def backend():
    from playbook_gate.services.storage import MemoryBackend
    return MemoryBackend()


@pytest.fixture
def store(backend):
    from playbook_gate.services.signup_store import SignupStore
    return SignupStore(backend, key="prism_signups", ttl_days=30)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(store, notifier):
    """Sync test client for the app with in-memory storage."""
    from fastapi.testclient import TestClient
    from playbook_gate.app import create_app

    app = create_app(store=store, notifier=notifier, admin_secret="admin-secret-123")
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Data factories
# ---------------------------------------------------------------------------

def make_signup(**overrides):
    now = datetime.now(timezone.utc)
    defaults = {
        "id": uuid.uuid4().hex,
        "name": "Test Visitor",
        "email": "visitor@example.com",
        "company": "Acme",
        "role": "CTO",
        "access_token": f"prism_{uuid.uuid4().hex}",
        "timestamp": now.isoformat(),
        "expires_at": (now + timedelta(days=30)).isoformat(),
        "revoked_at": None,
    }
    defaults.update(overrides)
    return defaults


def seed(store, *signups):
    """Write signups straight into a store's backend."""
    store.backend.write(store.key, json.dumps(list(signups)))


@pytest.fixture(autouse=True)
def resend_key():
    """Pretend Resend is configured regardless of the real environment."""
    with patch("playbook_gate.services.access_email.RESEND_API_KEY", "re_test_123"):
        yield
