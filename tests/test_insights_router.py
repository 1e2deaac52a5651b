"""
Tests for the /insights HTTP endpoints.

The app lifespan is not run; a facade over fake providers is injected with
app.dependency_overrides instead.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import FakeProvider

from device_insights.ai.providers.base import ErrorKind
from device_insights.deps import get_facade, get_monitor
from device_insights.main import app


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_facade(make_facade, monitor):
    """Install a facade built from the given fake providers: use_facade(A=FakeProvider(...))."""

    def install(**providers):
        facade = asyncio.run(make_facade(**providers))
        app.dependency_overrides[get_facade] = lambda: facade
        app.dependency_overrides[get_monitor] = lambda: monitor
        return facade

    return install


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_insights_unavailable_before_startup(self, client):
        """Test endpoints answer 503 when no orchestrator was built."""
        response = client.get("/insights")

        assert response.status_code == 503


class TestFixedEndpoints:
    """Tests for GET /insights, /insights/battery and /insights/performance."""

    def test_insights_from_provider(self, client, use_facade):
        use_facade(openai=FakeProvider("Everything looks healthy."))

        response = client.get("/insights")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["kind"] == "insights"
        assert data["provider_used"] == "openai"
        assert data["used_fallback"] is False
        assert data["attempts"][0]["outcome"] == "success"

    def test_battery_falls_back_to_template(self, client, use_facade):
        """Test every provider failing still yields 200 with template content."""
        use_facade(A=FakeProvider(ErrorKind.TIMEOUT))

        response = client.get("/insights/battery")

        assert response.status_code == 200
        data = response.json()
        assert data["provider_used"] is None
        assert data["used_fallback"] is True
        assert "moderate" in data["content"]
        assert data["attempts"][0]["outcome"] == "Timeout"

    def test_preferred_providers_query_param(self, client, use_facade):
        use_facade(A=FakeProvider("from A"), B=FakeProvider("from B"))

        response = client.get("/insights/performance", params={"providers": ["B", "A"]})

        assert response.json()["provider_used"] == "B"

    def test_collection_failure_is_503(self, client, use_facade, snapshot_provider):
        use_facade(openai=FakeProvider("unused"))
        snapshot_provider.error = RuntimeError("no sensors")

        response = client.get("/insights")

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "CollectionError"


class TestQueryEndpoint:
    """Tests for POST /insights/query."""

    def test_query(self, client, use_facade):
        use_facade(openai=FakeProvider("You have 42% battery."))

        response = client.post("/insights/query", json={"prompt": "How much battery do I have?"})

        assert response.status_code == 200
        data = response.json()
        assert data["content"] == "You have 42% battery."
        assert set(data["snapshot_excerpt"]) == {"battery", "power"}

    def test_missing_prompt_is_422(self, client, use_facade):
        use_facade()

        response = client.post("/insights/query", json={"prompt": ""})

        assert response.status_code == 422

    def test_whitespace_prompt_is_400(self, client, use_facade):
        use_facade(openai=FakeProvider("unused"))

        response = client.post("/insights/query", json={"prompt": "   "})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "EmptyPromptError"


class TestDataEndpoint:
    def test_no_sources_registered(self, client, use_facade):
        use_facade()

        response = client.post("/insights/data", json={})

        assert response.status_code == 200
        assert response.json()["data"] == {}

    def test_ai_provider_name_rejected(self, client, use_facade):
        use_facade(openai=FakeProvider("ok"))

        response = client.post("/insights/data", json={"sources": ["openai"]})

        assert response.status_code == 400
        assert response.json()["detail"]["error_type"] == "InvalidDescriptorError"


class TestStatusAndStats:
    def test_status(self, client, use_facade):
        use_facade(openai=FakeProvider("ok"))

        data = client.get("/insights/status").json()

        assert data["initialized"] is True
        assert data["providers"][0]["name"] == "openai"
        assert "auth" not in data["providers"][0]
        assert "fallback-mode" in data["features"]

    def test_stats_count_fallbacks(self, client, use_facade):
        use_facade(A=FakeProvider(ErrorKind.RATE_LIMITED))
        client.get("/insights")

        data = client.get("/insights/stats").json()

        assert data["template_fallbacks"] == 1
        assert data["failures_by_kind"] == {"RateLimited": 1}
        assert data["total_dispatches"] == 1
