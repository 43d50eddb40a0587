# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from inventory_tracker.core.config import Settings
from inventory_tracker.database import build_engine, build_sessionmaker, init_models
from inventory_tracker.main import create_app
from inventory_tracker.services.change_bus import ChangeBus
from inventory_tracker.services.inventory_service import InventoryService
from inventory_tracker.services.product_store import ProductStore

TEST_USERNAME = "admin"
TEST_PASSWORD = "test-pass"


@pytest.fixture
def settings(tmp_path):
    """Provide test settings backed by a throwaway SQLite file"""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'inventory_test.db'}",
        BASIC_AUTH_USERNAME=TEST_USERNAME,
        BASIC_AUTH_PASSWORD=TEST_PASSWORD,
        SUBSCRIBER_QUEUE_SIZE=16,
        ENVIRONMENT="test",
    )


@pytest.fixture
async def test_engine(settings):
    """Create the test database engine and tables (function-scoped)."""
    engine = build_engine(settings)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_sessionmaker(test_engine)


@pytest.fixture
def store(session_factory):
    return ProductStore(session_factory)


@pytest.fixture
def bus():
    return ChangeBus(queue_size=16)


@pytest.fixture
def inventory_service(store, bus):
    return InventoryService(store, bus)


@pytest.fixture
def test_client(settings):
    """Provide an authenticated test client running the full app lifespan"""
    app = create_app(settings)
    with TestClient(app) as client:
        client.auth = (TEST_USERNAME, TEST_PASSWORD)
        yield client


@pytest.fixture
def sample_product_data():
    """Provide sample product data for tests"""
    return {
        "name": "Wireless Mouse",
        "category": "Electronics",
        "quantity": 50,
        "price": 29.99,
    }
