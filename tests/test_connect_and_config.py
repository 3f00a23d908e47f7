"""Tests for connection lifecycle, configuration and device listing."""

from types import SimpleNamespace

import pytest
import serial
import serial.tools.list_ports

from acuity_lib import controller
from acuity_lib.errors import DeviceUnavailable, InvalidArgument, TransportError
from acuity_lib.models import DeviceInfo, ReadMode
from acuity_lib.transport import Transport
from fakes.fake_serial import FakeSerial


def test_connect_returns_live_passive_handle() -> None:
    """connect() opens a session in passive mode with CRLF framing."""
    fake_serial = FakeSerial()

    handle = controller.connect("/dev/fake", serial_port=fake_serial)

    assert controller.is_alive(handle)
    assert handle.mode is ReadMode.PASSIVE
    assert handle.transport.separator == "\r\n"

    controller.disconnect(handle)


def test_is_alive_is_stable_until_disconnect() -> None:
    """is_alive() keeps answering True on an untouched handle, False after."""
    fake_serial = FakeSerial()
    handle = controller.connect("/dev/fake", serial_port=fake_serial)

    assert all(controller.is_alive(handle) for _ in range(5))

    controller.disconnect(handle)

    assert not controller.is_alive(handle)
    assert not controller.is_alive(handle)
    assert not fake_serial.is_open


def test_disconnect_twice_raises() -> None:
    """A released handle cannot be released again."""
    handle = controller.connect("/dev/fake", serial_port=FakeSerial())
    controller.disconnect(handle)

    with pytest.raises(TransportError):
        controller.disconnect(handle)


@pytest.mark.parametrize("name", [123, None, b"/dev/ttyUSB0", ["/dev/ttyUSB0"], ""])
def test_connect_rejects_non_text_name(name) -> None:
    """Device names must be text; the port is never touched otherwise."""
    fake_serial = FakeSerial()

    with pytest.raises(InvalidArgument):
        controller.connect(name, serial_port=fake_serial)

    assert fake_serial.is_open
    assert fake_serial.reads == 0


@pytest.mark.parametrize("mode", ["polled", True, 1, None])
def test_connect_rejects_bad_mode(mode) -> None:
    """Invalid modes fail before the transport is contacted."""
    fake_serial = FakeSerial()

    with pytest.raises(InvalidArgument):
        controller.connect("/dev/fake", mode=mode, serial_port=fake_serial)

    assert fake_serial.reads == 0


def test_connect_rejects_bad_baud() -> None:
    """Unsupported baud rates are caller errors."""
    with pytest.raises(InvalidArgument):
        controller.connect("/dev/fake", baud=12345, serial_port=FakeSerial())


def test_connect_open_failure(monkeypatch) -> None:
    """A port that cannot be opened surfaces as DeviceUnavailable."""
    def refuse(*args, **kwargs):
        raise serial.SerialException("could not open port /dev/missing")

    monkeypatch.setattr(serial, "Serial", refuse)

    with pytest.raises(DeviceUnavailable):
        controller.connect("/dev/missing")


def test_connect_closes_port_when_setup_fails(monkeypatch) -> None:
    """A failure after the port opens closes it before the error propagates."""
    def refuse(self, sink):
        raise TransportError("reader could not start")

    monkeypatch.setattr(Transport, "start_notifications", refuse)
    fake_serial = FakeSerial()

    with pytest.raises(TransportError):
        controller.connect("/dev/fake", mode="active", serial_port=fake_serial)

    assert not fake_serial.is_open


def test_get_config_reports_name_and_settings() -> None:
    """get_config() returns (device name, settings mapping)."""
    handle = controller.connect("/dev/fake", serial_port=FakeSerial())

    name, settings = controller.get_config(handle)

    assert name == "/dev/fake"
    assert settings["baud"] == 9600
    assert settings["framing"] == {"separator": "\r\n"}
    assert settings["active"] is False

    controller.set_read_mode(handle, "active")
    assert controller.get_config(handle)[1]["active"] is True

    controller.disconnect(handle)


def test_operations_on_released_handle_fail() -> None:
    """Everything but connect fails on a released handle."""
    handle = controller.connect("/dev/fake", serial_port=FakeSerial())
    controller.disconnect(handle)

    with pytest.raises(TransportError):
        controller.get_config(handle)
    with pytest.raises(TransportError):
        controller.set_read_mode(handle, "active")
    with pytest.raises(TransportError):
        controller.acquire_batch(handle)
    with pytest.raises(TransportError):
        controller.configure_separator(handle, "\n")


def test_set_read_mode_toggles_active_delivery() -> None:
    """Active mode runs the transport's reader thread; passive stops it."""
    handle = controller.connect("/dev/fake", serial_port=FakeSerial())

    assert controller.set_read_mode(handle, "active") is ReadMode.ACTIVE
    assert handle.transport.delivering

    assert controller.set_read_mode(handle, ReadMode.PASSIVE) is ReadMode.PASSIVE
    assert not handle.transport.delivering

    controller.disconnect(handle)


@pytest.mark.parametrize("mode", ["sideways", True, False, 3.0, ("active",)])
def test_set_read_mode_rejects_invalid(mode) -> None:
    """Bad mode tokens raise InvalidArgument and keep the current mode."""
    handle = controller.connect("/dev/fake", serial_port=FakeSerial())

    with pytest.raises(InvalidArgument):
        controller.set_read_mode(handle, mode)

    assert handle.mode is ReadMode.PASSIVE
    controller.disconnect(handle)


def test_configure_separator() -> None:
    """The separator can be changed after connect and is reported."""
    handle = controller.connect("/dev/fake", serial_port=FakeSerial())

    controller.configure_separator(handle, "\n")

    assert handle.transport.separator == "\n"
    assert controller.get_config(handle)[1]["framing"] == {"separator": "\n"}

    with pytest.raises(InvalidArgument):
        controller.configure_separator(handle, "")

    controller.disconnect(handle)


def test_list_devices(monkeypatch) -> None:
    """Enumerated ports are returned with their USB metadata."""
    ports = [
        SimpleNamespace(
            device="/dev/ttyUSB1", description="Acuity AR700", manufacturer="FTDI",
            pid=0x6001, vid=0x0403,
        ),
        SimpleNamespace(
            device="/dev/ttyS0", description="n/a", manufacturer=None, pid=None, vid=None,
        ),
    ]
    monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: ports)

    devices = controller.list_devices()

    assert list(devices) == ["/dev/ttyS0", "/dev/ttyUSB1"]
    assert devices["/dev/ttyUSB1"] == DeviceInfo(
        description="Acuity AR700", manufacturer="FTDI", product_id=0x6001, vendor_id=0x0403
    )
    assert devices["/dev/ttyS0"].manufacturer == ""


def test_list_devices_none_found(monkeypatch) -> None:
    """An empty enumeration is DeviceUnavailable, not an empty result."""
    monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: [])

    with pytest.raises(DeviceUnavailable):
        controller.list_devices()
