import pytest

from app.settings import settings


@pytest.mark.asyncio
async def test_health_live(api_client):
    response = await api_client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-Id"]


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client):
    response = await api_client.get("/health/live", headers={"X-Request-Id": "req-123"})
    assert response.headers["X-Request-Id"] == "req-123"


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
    monkeypatch.setattr(settings, "obs_metrics_public", False)
    monkeypatch.setattr(settings, "obs_admin_token", "ops-token")

    denied = await api_client.get("/metrics")
    assert denied.status_code == 403
    assert denied.json()["error"] == "forbidden"

    allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-token"})
    assert allowed.status_code == 200
    assert "connectsphere_http_requests_total" in allowed.text


@pytest.mark.asyncio
async def test_metrics_public_when_enabled(api_client, monkeypatch):
    monkeypatch.setattr(settings, "obs_metrics_public", True)
    response = await api_client.get("/metrics")
    assert response.status_code == 200
