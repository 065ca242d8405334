"""
Shared fixtures: the app runs against an in-memory store, never a real MongoDB.
"""
import pytest
from fastapi.testclient import TestClient

from app.database.response_store import InMemoryResponseStore
from app.main import create_app


@pytest.fixture
def store():
    return InMemoryResponseStore()


@pytest.fixture
def client(store):
    app = create_app(store=store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def alice_answers():
    return {"name": "Alice", "email": "a@x.com", "rating": 5, "comments": ""}
