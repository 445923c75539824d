"""
Shared fixtures: a freshly seeded store per test and an HTTP client bound to it.
"""
import pytest
from fastapi.testclient import TestClient

from core.config import AppSettings
from core.storage import Storage
from main import create_app


@pytest.fixture
def storage() -> Storage:
    """Store reset to the seed set: Alice, Bob, Charlie / Math, Physics, History."""
    store = Storage()
    store.reset()
    store.seed()
    return store


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        app_name="Student Course API",
        seed_data=False,
        rate_limit_max_requests=1000,
        rate_limit_window_seconds=60,
    )


@pytest.fixture
def client(settings: AppSettings, storage: Storage) -> TestClient:
    app = create_app(settings=settings, storage=storage)
    return TestClient(app)
