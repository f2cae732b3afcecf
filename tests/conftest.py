import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from inventory_sync.bootstrap import build_components
from inventory_sync.infra.memory import InMemoryDocumentStore, InMemoryRecordStore
from inventory_sync.main import create_app
from inventory_sync.settings import Settings
from tests.factories import ADMIN_TOKEN, build_synchronizer, make_item


@pytest.fixture
def test_settings():
	return Settings(
		environment=None,
		search_backend="memory",
		record_backend="memory",
		obs_enabled=False,
		obs_admin_token=ADMIN_TOKEN,
		retry_backoff_seconds=0.0,
		refresh_interval_seconds=None,
	)


@pytest.fixture
def document_store():
	return InMemoryDocumentStore()


@pytest.fixture
def record_store():
	return InMemoryRecordStore([make_item("VIN001"), make_item("VIN002"), make_item("VIN003")], page_size=2)


@pytest.fixture
def synchronizer(document_store, record_store):
	return build_synchronizer(document_store, record_store)


@pytest.fixture
def components(test_settings, document_store, record_store):
	return build_components(test_settings, document_store=document_store, record_store=record_store)


@pytest_asyncio.fixture
async def api_client(test_settings, components):
	app = create_app(test_settings)
	app.state.components = components
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


@pytest.fixture
def admin_headers():
	return {"X-Admin-Token": ADMIN_TOKEN}
