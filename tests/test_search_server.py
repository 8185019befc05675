import asyncio
import types

import pytest

from leadfinder.core.models import BusinessRecord, InvalidRequest
from leadfinder.jobs import search_server
from leadfinder.vendors import gemini
from leadfinder.vendors.gemini import GenerationError


class DummyOrchestrator:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = []

    def search_sync(self, query, location, filters, on_progress=None):
        self.calls.append((query, location, filters))
        if self.error is not None:
            raise self.error
        return self.records


@pytest.fixture
def dummy_orchestrator(monkeypatch):
    orchestrator = DummyOrchestrator(records=[BusinessRecord(name="Padaria A", phone="123")])
    monkeypatch.setattr(search_server, "get_orchestrator", lambda: orchestrator)
    return orchestrator


def _payload(**overrides):
    payload = {
        "query": "padaria",
        "location": {"latitude": -23.96, "longitude": -46.33},
        "filters": {"target_count": 60, "city": "Santos", "state": "sp", "radius_km": 0},
    }
    payload.update(overrides)
    return payload


def test_health_endpoint(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    search_server.get_settings.cache_clear()
    client = search_server.app.test_client()

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
    search_server.get_settings.cache_clear()


def test_search_validates_payload(dummy_orchestrator):
    client = search_server.app.test_client()

    assert client.post("/search", json={}).status_code == 400
    assert client.post("/search", json=_payload(query="   ")).status_code == 400
    assert client.post("/search", json=_payload(location=None)).status_code == 400
    assert client.post("/search", json=_payload(location={"latitude": "x", "longitude": 1})).status_code == 400
    assert client.post("/search", json=_payload(filters={"target_count": "bad"})).status_code == 400
    assert client.post("/search", json=_payload(filters={"target_count": 0})).status_code == 400
    assert client.post("/search", json=_payload(filters=[1, 2])).status_code == 400
    assert dummy_orchestrator.calls == []


def test_search_returns_records(dummy_orchestrator):
    client = search_server.app.test_client()

    response = client.post("/search", json=_payload())

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["count"] == 1
    assert data["items"][0]["nome"] == "Padaria A"
    assert data["items"][0]["telefone"] == "123"
    query, location, filters = dummy_orchestrator.calls[0]
    assert query == "padaria"
    assert location.longitude == -46.33
    assert filters.state == "SP"


def test_search_maps_invalid_request(monkeypatch):
    monkeypatch.setattr(
        search_server, "get_orchestrator", lambda: DummyOrchestrator(error=InvalidRequest("Query must not be empty"))
    )
    client = search_server.app.test_client()

    assert client.post("/search", json=_payload()).status_code == 400


def test_search_maps_backend_errors(monkeypatch):
    def fail():
        raise GenerationError("GEMINI_API_KEY is required")

    monkeypatch.setattr(search_server, "get_orchestrator", fail)
    client = search_server.app.test_client()

    assert client.post("/search", json=_payload()).status_code == 503


class LoopBoundClient:
    """Fake genai.Client whose async calls fail once its creating loop is gone."""

    def __init__(self, api_key):
        self.loop = asyncio.get_running_loop()
        self.aio = types.SimpleNamespace(models=self)

    async def generate_content(self, model, contents, config):
        if asyncio.get_running_loop() is not self.loop:
            raise RuntimeError("Event loop is closed")
        return types.SimpleNamespace(text='[{"nome": "Padaria A", "telefone": "123"}]')


@pytest.fixture
def real_orchestrator(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setattr(gemini.genai, "Client", LoopBoundClient)
    search_server.get_settings.cache_clear()
    monkeypatch.setattr(search_server, "_orchestrator", None)
    yield
    search_server.get_settings.cache_clear()


def test_search_consecutive_requests_use_shared_orchestrator(real_orchestrator):
    client = search_server.app.test_client()

    first = client.post("/search", json=_payload())
    orchestrator = search_server._orchestrator
    second = client.post("/search", json=_payload())
    third = client.post("/search", json=_payload())

    assert orchestrator is not None
    assert search_server._orchestrator is orchestrator
    for response in (first, second, third):
        assert response.status_code == 200
        assert response.get_json()["data"]["count"] == 1
        assert response.get_json()["data"]["items"][0]["nome"] == "Padaria A"
