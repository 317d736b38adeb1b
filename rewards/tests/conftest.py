import pytest
from fastapi.testclient import TestClient

from rewards.api import create_app
from rewards.service import RewardsService
from rewards.settings import Settings
from rewards.storage import InMemoryStorage, LedgerStore

ADMIN_KEY = "test-admin-key"


def build_settings(**overrides) -> Settings:
    values = {"storage_backend": "memory", "admin_api_key": ADMIN_KEY}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def make_service():
    def factory(**overrides) -> RewardsService:
        return RewardsService(LedgerStore(InMemoryStorage()), build_settings(**overrides))
    return factory


@pytest.fixture
def service(make_service) -> RewardsService:
    return make_service()


@pytest.fixture
def client(service) -> TestClient:
    return TestClient(create_app(service))


@pytest.fixture
def admin_headers() -> dict:
    return {"x-admin-key": ADMIN_KEY}


@pytest.fixture
def make_settings():
    return build_settings
