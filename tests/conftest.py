import mongomock
import pytest
from fastapi.testclient import TestClient

from database import Store
from main import create_app
from security import PasswordHasher


@pytest.fixture
def store():
    return Store(mongomock.MongoClient()["foodapp_test"])


@pytest.fixture
def hasher():
    # Lowest bcrypt work factor keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def client(store, hasher):
    app = create_app(store=store, hasher=hasher)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def registered_user(client):
    response = client.post("/api/register", json={"username": "alice", "password": "s3cret"})
    assert response.status_code == 201
    return response.json()
