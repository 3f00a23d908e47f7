"""Tests for FastAPI REST endpoints using FakeSerial (no hardware).

Tests verify:
- Connection lifecycle (connect, disconnect, status)
- Read mode switching and validation
- Batch acquisition in passive and active mode
- Error mapping (InvalidArgument→400, ParseError→502,
  DeviceUnavailable/TransportError→503, ReadTimeout→504)
"""

import threading
import time
from types import SimpleNamespace

import pytest
import serial.tools.list_ports
from fastapi.testclient import TestClient

from acuity_lib import controller
from acuity_lib.transport import Transport
from api import main as api_module
from fakes.fake_serial import FakeSerial


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the global handle before and after each test."""
    api_module._handle = None
    yield
    if api_module._handle is not None and api_module._handle.is_alive:
        controller.disconnect(api_module._handle)
    api_module._handle = None


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(api_module.app)


@pytest.fixture
def fake_serial():
    """Create a FakeSerial instance configured for testing."""
    return FakeSerial()


@pytest.fixture
def monkeypatch_transport(monkeypatch, fake_serial):
    """Monkeypatch Transport.open to use FakeSerial."""
    def mock_open(port: str, baud: int = 9600, timeout_s: float = 0.2):
        """Return Transport wrapping FakeSerial."""
        return Transport(fake_serial, name=port)

    monkeypatch.setattr(Transport, "open", mock_open)


# =============================================================================
# Health Check & Devices
# =============================================================================

def test_root_health_check(client):
    """Test GET / returns service info."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "Acuity Gauge API"
    assert data["status"] == "online"


def test_devices_listed(client, monkeypatch):
    """Test GET /devices returns enumerated ports."""
    ports = [
        SimpleNamespace(
            device="/dev/ttyUSB0", description="Acuity", manufacturer="FTDI", pid=1, vid=2
        )
    ]
    monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: ports)

    response = client.get("/devices")
    assert response.status_code == 200
    assert response.json() == [{
        "name": "/dev/ttyUSB0",
        "description": "Acuity",
        "manufacturer": "FTDI",
        "product_id": 1,
        "vendor_id": 2,
    }]


def test_devices_none_found(client, monkeypatch):
    """Test GET /devices maps DeviceUnavailable to 503."""
    monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: [])

    response = client.get("/devices")
    assert response.status_code == 503


# =============================================================================
# Connection Lifecycle
# =============================================================================

def test_connect_success(client, monkeypatch_transport):
    """Test POST /connect succeeds with FakeSerial."""
    response = client.post("/connect?port=/dev/fake")
    assert response.status_code == 200
    assert response.json() == {"status": "connected", "device": "/dev/fake", "mode": "passive"}

    status = client.get("/status").json()
    assert status == {"connected": True, "device": "/dev/fake", "mode": "passive"}


def test_connect_twice_fails(client, monkeypatch_transport):
    """Test connecting twice without disconnect fails."""
    client.post("/connect?port=/dev/fake")
    response = client.post("/connect?port=/dev/fake")
    assert response.status_code == 400
    assert "Already connected" in response.json()["detail"]


def test_connect_invalid_mode(client, monkeypatch_transport):
    """Test POST /connect with a bad mode returns 400 and stays disconnected."""
    response = client.post("/connect?port=/dev/fake&mode=polled")
    assert response.status_code == 400
    assert api_module._handle is None


def test_disconnect_success(client, monkeypatch_transport, fake_serial):
    """Test POST /disconnect closes the port."""
    client.post("/connect?port=/dev/fake")
    response = client.post("/disconnect")
    assert response.status_code == 200
    assert response.json()["status"] == "disconnected"
    assert api_module._handle is None
    assert not fake_serial.is_open

    assert client.get("/status").json()["connected"] is False


def test_config(client, monkeypatch_transport):
    """Test GET /config returns device and settings."""
    client.post("/connect?port=/dev/fake")

    response = client.get("/config")
    assert response.status_code == 200
    data = response.json()
    assert data["device"] == "/dev/fake"
    assert data["settings"]["framing"] == {"separator": "\r\n"}


def test_config_not_connected(client):
    """Test GET /config fails when not connected."""
    response = client.get("/config")
    assert response.status_code == 503
    assert "Not connected" in response.json()["detail"]


# =============================================================================
# Read Mode
# =============================================================================

def test_set_mode(client, monkeypatch_transport):
    """Test POST /mode switches to active and back."""
    client.post("/connect?port=/dev/fake")

    response = client.post("/mode", json={"mode": "active"})
    assert response.status_code == 200
    assert response.json() == {"mode": "active"}
    assert client.get("/status").json()["mode"] == "active"

    response = client.post("/mode", json={"mode": "passive"})
    assert response.json() == {"mode": "passive"}


@pytest.mark.parametrize("mode", ["sideways", True, 1, None, ["active"]])
def test_set_mode_invalid(client, monkeypatch_transport, mode):
    """Test POST /mode rejects anything but passive/active with 400."""
    client.post("/connect?port=/dev/fake")

    response = client.post("/mode", json={"mode": mode})
    assert response.status_code == 400


# =============================================================================
# Acquisition
# =============================================================================

def test_acquire_passive(client, monkeypatch_transport, fake_serial):
    """Test POST /acquire returns ten records in order."""
    lines = fake_serial.queue_readings(10)
    client.post("/connect?port=/dev/fake")

    response = client.post("/acquire")
    assert response.status_code == 200
    data = response.json()
    assert data["complete"] is True
    assert data["count"] == 10
    first = [float(v) for v in lines[0].split("\t")]
    assert data["records"][0] == {"west": first[0], "center": first[1], "east": first[2]}


def test_acquire_active(client, monkeypatch_transport, fake_serial):
    """Test POST /acquire in active mode with a streaming gauge."""
    client.post("/connect?port=/dev/fake&mode=active")
    fake_serial.start_streaming(period_s=0.01)

    response = client.post("/acquire")
    assert response.status_code == 200
    assert response.json()["count"] == 10


def test_acquire_parse_error(client, monkeypatch_transport, fake_serial):
    """Test malformed gauge output maps to 502."""
    fake_serial.queue_line("abc\t0.2\t0.3")
    client.post("/connect?port=/dev/fake")

    response = client.post("/acquire")
    assert response.status_code == 502


def test_acquire_active_timeout_fail_policy(client, monkeypatch_transport):
    """Test an active timeout under the fail policy maps to 504."""
    client.post("/connect?port=/dev/fake&mode=active")

    response = client.post("/acquire?policy=fail")
    assert response.status_code == 504


def test_acquire_not_connected(client):
    """Test POST /acquire fails when not connected."""
    response = client.post("/acquire")
    assert response.status_code == 503


def test_acquire_invalid_policy(client, monkeypatch_transport):
    """Test an unknown timeout policy maps to 400."""
    client.post("/connect?port=/dev/fake&mode=active")

    response = client.post("/acquire?policy=bogus")
    assert response.status_code == 400


def test_status_and_disconnect_during_active_acquire(client, monkeypatch_transport):
    """Test a blocked active batch does not stall other requests."""
    client.post("/connect?port=/dev/fake&mode=active")

    results = {}

    def run_acquire():
        with TestClient(api_module.app) as acquire_client:
            results["acquire"] = acquire_client.post("/acquire")

    worker = threading.Thread(target=run_acquire, daemon=True)
    worker.start()
    time.sleep(0.5)

    start = time.monotonic()
    status = client.get("/status")
    assert status.status_code == 200
    assert status.json()["connected"] is True

    response = client.post("/disconnect")
    assert response.status_code == 200
    assert time.monotonic() - start < 2.0
    assert client.get("/status").json()["connected"] is False

    worker.join(timeout=5.0)
    assert not worker.is_alive()
    assert results["acquire"].status_code == 503
