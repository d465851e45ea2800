import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "Adm1n!pass"

import pytest
from fastapi.testclient import TestClient

from kernelpanel.core import rate_limit
from kernelpanel.db.session import engine
from kernelpanel.main import app
from kernelpanel.models import Base

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "Adm1n!pass"


@pytest.fixture(autouse=True)
def fresh_counters() -> None:
    rate_limit.api_counter.memory_store = rate_limit.SlidingWindowStore()
    rate_limit.login_throttle.counter.memory_store = rate_limit.SlidingWindowStore()


@pytest.fixture()
def client() -> TestClient:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with TestClient(app) as test_client:
        yield test_client


def login(client: TestClient, username: str = ADMIN_USERNAME, password: str = ADMIN_PASSWORD) -> dict[str, str]:
    response = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


@pytest.fixture()
def admin_headers(client: TestClient) -> dict[str, str]:
    return login(client)
