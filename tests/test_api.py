"""Tests for the HTTP API in front of the dispatcher."""

import pytest
from fastapi.testclient import TestClient

from api.main_api import BridgeAPI
from bridge_errors import NetworkError
from dispatch import CommandDispatcher


@pytest.fixture
def make_client(config):
    def _make(probe=lambda: True):
        dispatcher = CommandDispatcher(config, network_probe=probe)
        return TestClient(BridgeAPI(config, dispatcher).app)
    return _make


class TestCommandRoutes:
    def test_list_commands(self, make_client):
        response = make_client().get("/api/commands")
        assert response.status_code == 200
        assert "status-govee" in response.json()
        assert len(response.json()) == 17

    def test_run_command_without_body(self, make_client):
        response = make_client().post("/api/commands/check-wifi")
        assert response.status_code == 200
        assert response.json() == {"ok": True, "command": "check-wifi", "result": True, "error": None, "error_kind": None}

    def test_argument_errors_are_reported_in_body(self, make_client):
        response = make_client().post("/api/commands/send-govee", json={"host": "192.168.1.50"})
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is False
        assert body["error"] == "Missing argument: payload"
        assert body["error_kind"] == "invalid_input"

    def test_unknown_command(self, make_client):
        body = make_client().post("/api/commands/format-disk", json={}).json()
        assert body["ok"] is False
        assert body["error"] == "Unknown command: format-disk"

    def test_cors_headers(self, make_client):
        response = make_client().get("/api/commands", headers={"Origin": "http://localhost:3000"})
        assert response.headers["access-control-allow-origin"] == "*"


class TestSystemRoutes:
    def test_health_on_lan(self, make_client):
        body = make_client().get("/api/system/health").json()
        assert body["status"] == "healthy"
        assert body["local_network"] is True
        assert body["commands"] == 17

    def test_health_off_lan(self, make_client):
        body = make_client(probe=lambda: False).get("/api/system/health").json()
        assert body["status"] == "degraded"
        assert body["local_network"] is False

    def test_health_probe_failure(self, make_client):
        def probe():
            raise NetworkError("Failed to check network: no sockets")

        body = make_client(probe=probe).get("/api/system/health").json()
        assert body["status"] == "degraded"
        assert body["local_network"] is None
        assert body["error"] == "Failed to check network: no sockets"
