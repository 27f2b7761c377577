"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.main import app
from app.services.redis_client import fast_redis

client = TestClient(app)


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_readyz_endpoint_all_services_healthy(report_settings):
    """Test readiness endpoint when Redis answers and email is configured."""
    report_settings.RESEND_API_KEY = "re_test"
    report_settings.REPORT_TOKEN = "secret"
    with patch.object(fast_redis, "ping", new=AsyncMock(return_value=True)):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["redis"]["ok"] is True
    assert isinstance(data["checks"]["redis"]["latency_ms"], (int, float))


def test_readyz_endpoint_redis_unhealthy(report_settings):
    """Test readiness endpoint when Redis is down."""
    report_settings.RESEND_API_KEY = "re_test"
    report_settings.REPORT_TOKEN = "secret"
    with patch.object(fast_redis, "ping", new=AsyncMock(side_effect=ConnectionError("down"))):
        response = client.get("/readyz")

    # Should still return 200, but overall_ok should be False
    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["redis"]["ok"] is False


def test_readyz_reports_missing_configuration(report_settings):
    report_settings.RESEND_API_KEY = None
    with patch.object(fast_redis, "ping", new=AsyncMock(return_value=True)):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert "RESEND_API_KEY not set" in data["checks"]["configuration"]["issues"]
