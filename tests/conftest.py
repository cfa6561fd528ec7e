import os
import uuid

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import ServerSelectionTimeoutError

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("STATIC_DIR", "__no_static_dir__")

from main import app  # noqa: E402
from routes import get_expenses_collection  # noqa: E402
from utils import rate_limit  # noqa: E402


@pytest.fixture()
def collection():
    # Fresh database per test; mock clients may share storage.
    return AsyncMongoMockClient()[f"expense_tracker_{uuid.uuid4().hex}"]["expenses"]


@pytest.fixture()
def client(collection):
    app.dependency_overrides[get_expenses_collection] = lambda: collection
    # Not used as a context manager so the lifespan never dials a real MongoDB.
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def expense_payload():
    return {
        "amount": 110.0,
        "category": "Food",
        "description": "Chicken + eggs",
        "date": "2024-03-05",
    }


class UnreachableCollection:
    """Collection double whose every query fails as if MongoDB were down."""

    name = "expenses"

    def _fail(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers available")

    find = find_one = insert_one = find_one_and_update = delete_one = delete_many = _fail


@pytest.fixture()
def unreachable_client():
    app.dependency_overrides[get_expenses_collection] = UnreachableCollection
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def bare_client():
    """Client with no collection override, as when MongoDB was unreachable at startup."""
    return TestClient(app)


@pytest.fixture()
def rate_limited(monkeypatch):
    monkeypatch.setattr(rate_limit.limiter, "enabled", True)
    monkeypatch.setattr(rate_limit, "DEFAULT_RATE_LIMIT", "2/minute")
    rate_limit.limiter.reset()
    yield
    rate_limit.limiter.reset()
