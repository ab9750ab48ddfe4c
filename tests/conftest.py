import pytest
from fastapi.testclient import TestClient

from core_oauth.api.fast_api import get_app
from core_oauth.store import MemoryStore, set_store

from .bootstrap import bootstrap_application


@pytest.fixture
def store():
    """A fresh in-memory store installed as the process-wide store."""
    memory = MemoryStore()
    set_store(memory)
    yield memory
    set_store(None)


@pytest.fixture
def ctx(store):
    return bootstrap_application(store)


@pytest.fixture
def api(store):
    """FastAPI test client; redirects are returned rather than followed."""
    with TestClient(get_app(), base_url="https://auth.example.com", follow_redirects=False) as client:
        yield client
