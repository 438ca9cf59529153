import os
import uuid

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return os.path.join(str(tmp_path), "transactions.db")


@pytest.fixture
def settings(db_path):
    return Settings(database_path=db_path)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def unlimited_client(db_path):
    """Client whose rate limit never gets in the way of CRUD tests"""
    settings = Settings(database_path=db_path, rate_limit_capacity=10000)
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def client_id():
    return f"client-{uuid.uuid4()}"


@pytest.fixture
def sample_transaction():
    return {
        "amount": 10000,
        "businessName": "Supermarket",
        "name": "Jane Doe"
    }
