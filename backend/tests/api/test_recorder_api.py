"""
Tests for the Recorder API.

Exercises the HTTP control surface and the notification WebSocket.
"""

import pytest
from pathlib import Path
from unittest.mock import Mock
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from fastapi.testclient import TestClient

import recorder_api
from main import app
from recorder_api import get_broadcaster, get_service
from replay_engine.config import EngineConfig
from replay_engine.errors import ReplayBusyError
from replay_engine.replay.actuator import LoggingActuator
from replay_engine.service import RecordingService


@pytest.fixture
def service(recordings_dir):
    service = RecordingService(
        config=EngineConfig(recordings_dir=str(recordings_dir), own_identity="com.example.recorder"),
        actuator=LoggingActuator(),
        sink=get_broadcaster(),
    )
    yield service
    service.shutdown()


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


class TestCaptureEndpoints:
    """Test start, pause, stop and raw event pushes."""

    def test_start_and_status(self, client):
        response = client.post("/api/recorder/start")

        assert response.status_code == 200
        assert response.json()["status"]["isRecording"] is True
        assert client.get("/api/recorder/status").json()["actionCount"] == 1

    def test_push_action(self, client, click_event):
        client.post("/api/recorder/start")

        response = client.post("/api/recorder/actions", json=click_event)

        data = response.json()
        assert data["recorded"] is True
        assert data["action"]["type"] == "click"
        assert data["action"]["widget"]["text"] == "Login"
        assert data["actionCount"] == 2

    def test_excluded_action_not_recorded(self, client, click_event):
        client.post("/api/recorder/start")

        response = client.post("/api/recorder/actions", json=dict(click_event, sourceIdentity="com.android.systemui"))

        assert response.json()["recorded"] is False

    def test_malformed_action_not_an_error(self, client):
        client.post("/api/recorder/start")

        response = client.post("/api/recorder/actions", json={"eventKind": "teleport"})

        assert response.status_code == 200
        assert response.json()["recorded"] is False

    def test_pause(self, client):
        client.post("/api/recorder/start")

        response = client.post("/api/recorder/pause")

        assert response.json()["status"]["isPaused"] is True

    def test_stop_persists(self, client, click_event, recordings_dir):
        client.post("/api/recorder/start")
        client.post("/api/recorder/actions", json=click_event)

        response = client.post("/api/recorder/stop")

        data = response.json()
        assert data["success"] is True
        assert (recordings_dir / data["filename"]).exists()
        assert [a["type"] for a in client.get("/api/recorder/actions").json()] == ["session_start", "click", "session_end"]

    def test_stop_while_idle(self, client):
        response = client.post("/api/recorder/stop")

        assert response.json()["success"] is False
        assert response.json()["filename"] is None


class TestRecordingEndpoints:
    """Test save, list, load and delete."""

    def test_save_and_list(self, client):
        client.post("/api/recorder/start")

        response = client.post("/api/recorder/save", json={"filename": "login"})

        assert response.json() == {"success": True, "filename": "login.json"}
        assert client.get("/api/recorder/recordings").json() == {"recordings": ["login.json"]}

    def test_save_empty_buffer(self, client):
        assert client.post("/api/recorder/save", json={}).status_code == 400

    def test_get_recording(self, client):
        client.post("/api/recorder/start")
        client.post("/api/recorder/save", json={"filename": "login"})

        document = client.get("/api/recorder/recordings/login.json").json()

        assert document["version"] == "1.0"
        assert document["totalActions"] == 1
        assert document["actions"][0]["type"] == "session_start"

    def test_get_missing_recording(self, client):
        assert client.get("/api/recorder/recordings/missing.json").status_code == 404

    def test_get_malformed_recording(self, client, recordings_dir):
        (recordings_dir / "broken.json").write_text("{", encoding="utf-8")

        assert client.get("/api/recorder/recordings/broken.json").status_code == 422

    def test_delete(self, client):
        client.post("/api/recorder/start")
        client.post("/api/recorder/save", json={"filename": "old"})

        assert client.delete("/api/recorder/recordings/old.json").status_code == 200
        assert client.delete("/api/recorder/recordings/old.json").status_code == 404


class TestExecuteEndpoints:
    """Test starting and cancelling replays."""

    def test_execute_buffer(self, client):
        client.post("/api/recorder/start")

        response = client.post("/api/recorder/execute", json={})

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_execute_missing(self, client):
        response = client.post("/api/recorder/execute", json={"filename": "missing"})

        assert response.status_code == 404

    def test_execute_busy(self, client, service):
        service.start_execution = Mock(side_effect=ReplayBusyError("A replay is already running"))

        response = client.post("/api/recorder/execute", json={})

        assert response.status_code == 409

    def test_cancel_without_replay(self, client):
        assert client.post("/api/recorder/execute/cancel").json()["success"] is False


class TestExclusionEndpoints:
    """Test exclusion admin endpoints."""

    def test_toggle_self(self, client):
        data = client.put("/api/recorder/exclusions/self", json={"exclude": False}).json()

        assert data["excludeOwnApp"] is False
        assert data["excludedPackages"] == []

    def test_add_and_remove(self, client):
        data = client.post("/api/recorder/exclusions", json={"identity": "com.example.chat"}).json()
        assert "com.example.chat" in data["excludedPackages"]

        data = client.delete("/api/recorder/exclusions/com.example.chat").json()
        assert "com.example.chat" not in data["excludedPackages"]

    def test_add_empty_identity(self, client):
        assert client.post("/api/recorder/exclusions", json={"identity": " "}).status_code == 422


class TestEventsWebSocket:
    """Test notification streaming."""

    def test_receives_lifecycle_events(self, client):
        with client.websocket_connect("/api/recorder/ws/events") as websocket:
            client.post("/api/recorder/start")

            message = websocket.receive_json()

        assert message["event"] == "recording_started"
        assert "timestamp" in message["payload"]


class TestHealth:

    def test_health(self, client):
        data = client.get("/api/health").json()

        assert data["status"] == "healthy"


class TestLifespan:

    def test_shutdown_releases_service(self, monkeypatch):
        """Test leaving the app lifespan shuts the service down."""
        running = Mock()
        monkeypatch.setattr(recorder_api, "_service", running)

        with TestClient(app):
            running.shutdown.assert_not_called()

        running.shutdown.assert_called_once()
        assert recorder_api._service is None
