import os
import pytest
from fastapi.testclient import TestClient

# Quiet, non-production logging for test runs
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from labcal.config import Settings, get_settings
from labcal.main import app
from labcal.models.tenant import Tenant
from labcal.store import TenantStore, get_store


@pytest.fixture
def store(tmp_path):
    """Empty store backed by a temporary file."""
    store = TenantStore(tmp_path / "tenant-data.json")
    store.load()
    return store


@pytest.fixture
def settings():
    return Settings(AUTO_CREATE_TENANTS=True, SEED_DEMO_TENANT=False)


@pytest.fixture
def client(store, settings):
    """TestClient wired to the temporary store (lifespan not run)."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tenant_record():
    """A fresh, unsaved tenant record with the default resources."""
    return Tenant.new("lab-a", "Lab A").to_record()


@pytest.fixture
def lab(store):
    """Tenant "lab-a" registered in the store."""
    return store.create_tenant("lab-a", "Lab A")
