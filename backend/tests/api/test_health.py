"""
Tests for root, liveness and readiness endpoints
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError


class TestHealth:

    @pytest.mark.api
    def test_root(self, client):
        data = client.get("/").json()
        assert data["message"] == "FactoryFlow API"
        assert data["status"] == "online"

    @pytest.mark.api
    def test_liveness(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    @pytest.mark.api
    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    @pytest.mark.api
    def test_not_ready_without_database(self, client):
        with patch("app.db.session.engine") as engine:
            engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
            response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "SERVICE_UNAVAILABLE"
        assert body["details"]["retry_after_seconds"] == 30

    @pytest.mark.api
    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
