"""Caller-facing operations for Acuity gauge acquisition.

Every operation takes the ConnectionHandle returned by connect() explicitly;
there is no module-level session state.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from acuity_lib import protocol
from acuity_lib.acquisition import AcquisitionLoop
from acuity_lib.connection import ConnectionHandle
from acuity_lib.errors import DeviceUnavailable, InvalidArgument
from acuity_lib.mode import validate_mode
from acuity_lib.models import Batch, DeviceInfo, ReadMode, SerialSettings, TimeoutPolicy
from acuity_lib.transport import SerialLike, Transport, enumerate_ports

logger = logging.getLogger(__name__)


def list_devices() -> Dict[str, DeviceInfo]:
    """Enumerate serial ports a gauge could be attached to.

    Returns:
        Mapping of port name to DeviceInfo

    Raises:
        DeviceUnavailable: If no ports are present
    """
    devices = enumerate_ports()
    if not devices:
        raise DeviceUnavailable("No serial devices found")
    return devices


def connect(
    name: str,
    mode: Any = ReadMode.PASSIVE,
    baud: int = protocol.DEFAULT_BAUD,
    serial_port: Optional[SerialLike] = None,
) -> ConnectionHandle:
    """Open a session on a gauge and configure CRLF line framing.

    Args:
        name: Serial port name (e.g., "/dev/ttyUSB0")
        mode: Initial read mode, ReadMode or "passive"/"active"
        baud: Baud rate
        serial_port: Pre-configured serial port object (for testing). If
                    provided, nothing is opened and baud is only recorded.

    Returns:
        Handle owning the session

    Raises:
        InvalidArgument: If name is not a string or mode is not a read mode
        DeviceUnavailable: If the port cannot be opened
    """
    if not isinstance(name, str) or not name:
        raise InvalidArgument(f"Device name must be a non-empty string, got {name!r}")
    read_mode = validate_mode(mode)

    try:
        settings = SerialSettings(baud=baud)
    except ValueError as e:
        raise InvalidArgument(str(e)) from e

    logger.info(f"Connecting to {name} in {read_mode.value} mode...")
    if serial_port is not None:
        transport = Transport(serial_port, name=name)
    else:
        transport = Transport.open(name, baud=settings.baud, timeout_s=settings.read_timeout_s)

    try:
        handle = ConnectionHandle(name, transport, settings, mode=read_mode)
        configure_separator(handle, protocol.DEFAULT_SEPARATOR)
        handle.start()
    except Exception:
        logger.error(f"Setup of {name} failed, closing port")
        transport.close()
        raise

    logger.info(f"Connected to {name}")
    return handle


def disconnect(handle: ConnectionHandle) -> None:
    """Terminate the session owned by handle.

    Raises:
        TransportError: If the handle was already released
    """
    logger.info(f"Disconnecting from {handle.name}...")
    handle.release()


def is_alive(handle: ConnectionHandle) -> bool:
    """Check whether handle still owns an open session."""
    return handle.is_alive


def set_read_mode(handle: ConnectionHandle, mode: Any) -> ReadMode:
    """Switch the read mode used by subsequent acquisitions.

    Raises:
        InvalidArgument: If mode is not "passive"/"active" or a ReadMode
        TransportError: If the handle was released
    """
    read_mode = validate_mode(mode)
    handle.ensure_alive()
    with handle.lock:
        return handle.mode_controller.set_mode(read_mode)


def configure_separator(
    handle: ConnectionHandle, separator: str = protocol.DEFAULT_SEPARATOR
) -> None:
    """Set the line separator framing messages on this session.

    Raises:
        InvalidArgument: If separator is empty or not a string
        TransportError: If the handle was released
    """
    if not isinstance(separator, str) or not separator:
        raise InvalidArgument(f"Separator must be a non-empty string, got {separator!r}")

    with handle.lock:
        handle.transport.configure(separator)
        handle.settings.separator = separator


def get_config(handle: ConnectionHandle) -> Tuple[str, Dict[str, Any]]:
    """Report the device name and settings of a session.

    Returns:
        Tuple of (device_name, settings mapping)

    Raises:
        TransportError: If the handle was released
    """
    handle.ensure_alive()
    return handle.name, handle.settings.as_dict()


def acquire_batch(
    handle: ConnectionHandle,
    timeout_policy: Any = TimeoutPolicy.SKIP,
    active_timeout_s: float = protocol.ACTIVE_READ_TIMEOUT,
) -> Batch:
    """Collect BATCH_SIZE records using the handle's current read mode.

    Args:
        handle: Open connection
        timeout_policy: Active-mode timeout handling, a TimeoutPolicy or
                       "skip"/"fail"
        active_timeout_s: Wait per active-mode attempt

    Returns:
        Complete Batch

    Raises:
        InvalidArgument: If timeout_policy is not a known policy
        ParseError: If a message is malformed
        ReadTimeout: On an active timeout under TimeoutPolicy.FAIL
        TransportError: If the session fails or is released
    """
    loop = AcquisitionLoop(
        handle, timeout_policy=timeout_policy, active_timeout_s=active_timeout_s
    )
    return loop.run()
