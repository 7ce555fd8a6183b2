"""
Common test fixtures

Provides an application wired to an in-memory store and an encrypted
secrets file, plus helpers to bootstrap the admin and register organizations.
"""

import pytest
from fastapi.testclient import TestClient

from roundup_api.core.config import Settings
from roundup_api.core.secrets import ADMIN_INIT_KEY_SECRET, EncryptedFileSecretsStore
from roundup_api.main import create_app
from roundup_api.repositories.memory import InMemoryStore

INIT_KEY = "test-init-key"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'unused.db'}",
        SECRETS_FILE=str(tmp_path / "secrets.json"),
        SECRET_KEY="test-secret-key",
        ADMIN_INIT_KEY=INIT_KEY,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def secrets_store(settings):
    return EncryptedFileSecretsStore(
        settings.SECRETS_FILE,
        settings.SECRET_KEY,
        seed={ADMIN_INIT_KEY_SECRET: INIT_KEY},
    )


@pytest.fixture
def app(settings, memory_store, secrets_store):
    return create_app(settings, store=memory_store, secrets_store=secrets_store)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_key(client):
    """Bootstrap the admin organization and return its API key"""
    resp = client.post("/api/organizations/init-admin", json={"initKey": INIT_KEY})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["organization"]["apiKey"]


@pytest.fixture
def register_org(client, admin_key):
    """Factory registering an organization; returns (id, api_key)"""

    def _register(name: str):
        resp = client.post(
            "/api/organizations/register",
            json={"name": name},
            headers={"x-api-key": admin_key},
        )
        assert resp.status_code == 201, resp.text
        organization = resp.json()["data"]["organization"]
        return organization["id"], organization["apiKey"]

    return _register


@pytest.fixture
def org_a(register_org):
    return register_org("Org A")


@pytest.fixture
def org_b(register_org):
    return register_org("Org B")
