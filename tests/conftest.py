import os
import tempfile
from datetime import datetime, timedelta
from types import SimpleNamespace

# Must be set before config/db are imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECURITY_CODE"] = "4321"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["BLOB_STORAGE_DIR"] = tempfile.mkdtemp(prefix="gold-tracker-blobs-")
os.environ["CLEANUP_ORPHANED_UPLOADS"] = "0"

import pytest
from fastapi.testclient import TestClient

from app.deps import dashboard_aggregator, get_blob_store
from app.errors import LoadError, PersistenceError
from app.services.blob_store import LocalBlobStore
from app.services.record_events import RecordSetEvents
from app.services.record_store import RecordStore
from db import Base, SessionLocal, engine
from main import app
from models import Investment

SECURITY_CODE = "4321"
BASE_TIME = datetime(2025, 1, 1, 9, 0, 0)


class FakeStore:
    """In-memory stand-in for RecordStore used by the pure view tests."""

    def __init__(self, records=None):
        self.records = list(records or [])
        self.fail_load = False
        self.fail_delete = False
        self.fail_insert = False
        self.inserted = []
        self.deleted = []
        self._next_id = max([r.id for r in self.records] or [0]) + 1

    def select_all(self):
        if self.fail_load:
            raise LoadError("Failed to load investments: connection refused")
        return sorted(self.records, key=lambda r: r.created_at, reverse=True)

    def insert(self, **fields):
        if self.fail_insert:
            raise PersistenceError("Failed to save investment: rejected")
        record = SimpleNamespace(
            id=self._next_id,
            created_at=BASE_TIME + timedelta(minutes=self._next_id),
            **fields,
        )
        self._next_id += 1
        self.records.append(record)
        self.inserted.append(record)
        return record

    def delete_by_id(self, record_id):
        if self.fail_delete:
            raise PersistenceError("Error deleting entry: rejected")
        self.records = [r for r in self.records if r.id != record_id]
        self.deleted.append(record_id)


def make_entry(
    id,
    amount,
    category="Gold",
    minutes=0,
    notes=None,
    grams=None,
    screenshot_path=None,
    receipt_url=None,
):
    return SimpleNamespace(
        id=id,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        amount=amount,
        grams=grams,
        category=category,
        screenshot_path=screenshot_path,
        receipt_url=receipt_url,
        notes=notes,
    )


@pytest.fixture
def entry():
    return make_entry


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def events():
    return RecordSetEvents()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"), "test-secret")


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    dashboard_aggregator.invalidate()

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session):
    return RecordStore(db_session)


@pytest.fixture
def add_investment(db_session):
    """Insert a row directly, with an explicit created_at for ordering tests."""

    def _add(amount, category="Gold", minutes=0, **fields):
        record = Investment(
            amount=amount,
            category=category,
            created_at=BASE_TIME + timedelta(minutes=minutes),
            **fields,
        )
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        dashboard_aggregator.invalidate()
        return record

    return _add


@pytest.fixture
def client(store, blob_store):
    store.ensure_security_code(SECURITY_CODE)
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client):
    response = client.post(
        "/login",
        data={"security_code": SECURITY_CODE},
        follow_redirects=False,
    )
    assert response.status_code == 303
    return client
