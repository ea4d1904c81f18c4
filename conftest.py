import pytest
import httpx
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.api.deps import get_diagnostics, get_dispatcher, get_location_index
from app.core.config import Settings
from app.services.diagnostics import DiagnosticsBuffer
from app.services.locations import LocationIndex, LRUCache
from app.services.webhook import WebhookDispatcher


LEAD_URL = "https://hooks.test/lead/"
ORDER_URL = "https://hooks.test/order/"
LEAD_RETRY_URL = "https://hooks.test/lead"
ATTRIBUTION_URL = "https://crm.test/api/crm/track-lead-source"


class FakeHooks:
    """Scripted responses per URL, with every request captured."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, list] = {}

    def script(self, url: str, *responses):
        self.responses.setdefault(url, []).extend(responses)

    def sent_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.responses.get(str(request.url))
        outcome = queue.pop(0) if queue else httpx.Response(200, json={"status": "success"})
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def hook_settings():
    return Settings(
        LEAD_WEBHOOK_URL=LEAD_URL,
        ORDER_WEBHOOK_URL=ORDER_URL,
        LEAD_WEBHOOK_RETRY_URL=LEAD_RETRY_URL,
        ATTRIBUTION_URL=ATTRIBUTION_URL,
        WEBHOOK_RETRY_DELAY=0,
    )


@pytest.fixture
def fake_hooks():
    return FakeHooks()


@pytest.fixture
def diagnostics():
    return DiagnosticsBuffer(capacity=20)


@pytest.fixture
async def dispatcher(diagnostics, hook_settings, fake_hooks):
    async with AsyncClient(transport=httpx.MockTransport(fake_hooks.handler)) as client:
        d = WebhookDispatcher(diagnostics, config=hook_settings, client=client)
        yield d
        await d.drain()


@pytest.fixture
def location_index():
    options = [
        {"value": "Miami, FL", "city": "Miami", "state": "FL",
         "zips": ["33101", "33102", "33109", "33125", "33126", "33127"], "population": 442241},
        {"value": "Miami Beach, FL", "city": "Miami Beach", "state": "FL",
         "zips": ["33139"], "population": 82890},
        {"value": "Los Angeles, CA", "city": "Los Angeles", "state": "CA",
         "zips": ["90001", "90002"], "population": 3898747},
        {"value": "Boston, MA", "city": "Boston", "state": "MA",
         "zips": ["02108"], "population": 675647},
    ]
    return LocationIndex(options, LRUCache(max_size=10))


@pytest.fixture
async def test_client(dispatcher, diagnostics, location_index):
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_diagnostics] = lambda: diagnostics
    app.dependency_overrides[get_location_index] = lambda: location_index
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def valid_lead_data():
    """A complete quote form as the frontend posts it"""
    return {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "555-123-4567",
        "pickupLocation": "Miami, FL 33101",
        "pickupZip": "33101",
        "dropoffLocation": "Boston, MA 02108",
        "dropoffZip": "02108",
        "vehicleType": "car/truck/suv",
        "year": 2020,
        "make": "Toyota",
        "model": "Camry",
        "shipmentDate": "2026-11-20",
        "distance": 1500,
        "transitTime": 5,
        "openTransportPrice": 1150,
        "enclosedTransportPrice": 1610,
        "eventType": "quote_submission",
        "utm_source": "google",
        "utm_campaign": "fall",
    }


@pytest.fixture
def valid_final_data(valid_lead_data):
    data = dict(valid_lead_data)
    data.update({
        "pickupAddress": "123 Ocean Dr, Miami, FL 33101",
        "pickupContactName": "Jane Doe",
        "pickupContactPhone": "555-123-4567",
        "dropoffAddress": "1 Beacon St, Boston, MA 02108",
        "dropoffContactName": "John Doe",
        "dropoffContactPhone": "555-987-6543",
        "selectedTransport": "open",
        "finalPrice": 1150,
    })
    data.pop("eventType")
    return data


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "pricing: marks tests related to pricing"
    )
    config.addinivalue_line(
        "markers", "webhooks: marks tests related to webhooks"
    )
    config.addinivalue_line(
        "markers", "locations: marks tests related to location search"
    )
    config.addinivalue_line(
        "markers", "rate_limit: marks tests related to rate limiting"
    )
