#!/usr/bin/env python3
"""
Test suite for api/routes/system.py - alerts, circuit breakers, info and status
"""

from agrimon.storage.circuit_breaker import CircuitBreaker


class TestAlertEndpoints:
    """Test suite for alert listing and resolution"""

    def test_low_traffic_route_raises_alert(self, client):
        """Test a new route under the throughput floor is alerted as degraded"""
        client.get("/health/live")

        alerts = client.get("/alerts", params={"service": "api_health_live"}).json()["data"]["active"]

        assert len(alerts) == 1
        assert alerts[0]["severity"] == "warning"
        assert alerts[0]["status"] == "degraded"

    def test_resolve(self, client):
        """Test resolving an alert once and then again"""
        client.get("/health/live")
        alert_id = client.get("/alerts").json()["data"]["active"][0]["id"]

        first = client.post(f"/alerts/{alert_id}/resolve")
        second = client.post(f"/alerts/{alert_id}/resolve")

        assert first.status_code == 200
        assert first.json()["data"]["resolved"] is True
        assert first.json()["data"]["alert"]["resolved"] is True
        assert second.status_code == 200
        assert second.json()["data"]["resolved"] is False

        listed = client.get("/alerts", params={"include_resolved": True}).json()["data"]
        assert alert_id in [a["id"] for a in listed["resolved"]]

    def test_resolve_unknown(self, client):
        """Test resolving an unknown alert is a 404"""
        response = client.post("/alerts/nothing_1/resolve")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ALERT_NOT_FOUND"


class TestSystemEndpoints:
    """Test suite for circuit breakers, info and status"""

    def test_circuit_breakers(self, client, service):
        """Test breaker summary and per-service states"""
        service.circuit_breakers.get("weather")
        breaker = service.circuit_breakers.register(CircuitBreaker("payments", failure_threshold=1))
        breaker.record_failure()

        data = client.get("/circuit-breakers").json()["data"]

        assert data["summary"]["open"] == 1
        assert data["summary"]["status"] == "degraded"
        states = {entry["name"]: entry["state"] for entry in data["services"]}
        assert states == {"weather": "CLOSED", "payments": "OPEN"}

    def test_info(self, client, settings):
        """Test build and runtime information"""
        data = client.get("/info").json()["data"]

        assert data["name"] == settings.app_name
        assert data["version"] == settings.app_version
        assert data["features"]["health_checks"] is True
        assert data["pid"] > 0

    def test_status(self, client, settings):
        """Test the trivial status endpoint"""
        body = client.get("/status").json()

        assert body["status"] == "ok"
        assert body["service"] == settings.app_name
