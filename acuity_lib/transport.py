"""Serial transport layer for Acuity gauge communication."""

import logging
import queue
import threading
import time
from collections import deque
from typing import Deque, Dict, NamedTuple, Optional, Protocol

import serial
import serial.tools.list_ports

from acuity_lib import protocol
from acuity_lib.errors import DeviceUnavailable, TransportError
from acuity_lib.framing import LineFramer
from acuity_lib.models import DeviceInfo

logger = logging.getLogger(__name__)


class SerialLike(Protocol):
    """Protocol for serial port interface (allows test doubles)."""

    def read(self, size: int = 1) -> bytes:
        """Read up to size bytes, returning early on port timeout."""
        ...

    def close(self) -> None:
        """Close serial port."""
        ...

    @property
    def in_waiting(self) -> int:
        """Number of bytes ready to read."""
        ...

    @property
    def is_open(self) -> bool:
        """Check if port is open."""
        ...


class Notification(NamedTuple):
    """One pushed event from the active reader, tagged with its port name.

    Exactly one of message/error is set.
    """

    port: str
    message: Optional[str] = None
    error: Optional[TransportError] = None


def enumerate_ports() -> Dict[str, DeviceInfo]:
    """List serial ports visible to the host.

    Returns:
        Mapping of port name (e.g. "/dev/ttyUSB0") to its metadata
    """
    devices = {}
    for port_info in serial.tools.list_ports.comports():
        devices[port_info.device] = DeviceInfo(
            description=port_info.description or "",
            manufacturer=port_info.manufacturer or "",
            product_id=port_info.pid,
            vendor_id=port_info.vid,
        )
    logger.debug(f"Enumerated {len(devices)} serial ports")
    return dict(sorted(devices.items()))


class Transport:
    """Wrapper around pyserial with line framing and active delivery.

    Passive callers pull one framed message per read_message() call. In
    active mode a daemon reader thread pulls messages instead and pushes
    them as Notification tuples onto a queue owned by the caller.
    """

    def __init__(
        self,
        serial_port: SerialLike,
        name: str = "",
        separator: str = protocol.DEFAULT_SEPARATOR,
    ) -> None:
        """Initialize transport with a serial port instance.

        Args:
            serial_port: Object implementing SerialLike protocol
                        (e.g., serial.Serial or FakeSerial for testing)
            name: Port name used to tag notifications
            separator: Initial framing separator
        """
        self._port = serial_port
        self._name = name
        self._framer = LineFramer(separator)
        self._ready: Deque[str] = deque()
        self._read_lock = threading.Lock()

        self._reader_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @classmethod
    def open(
        cls,
        port: str,
        baud: int = protocol.DEFAULT_BAUD,
        timeout_s: float = protocol.READ_POLL_INTERVAL,
    ) -> "Transport":
        """Open a real serial port.

        Args:
            port: Serial port device name (e.g., "/dev/ttyUSB0")
            baud: Baud rate
            timeout_s: pyserial read timeout in seconds

        Returns:
            Transport instance wrapping opened serial port

        Raises:
            DeviceUnavailable: If port cannot be opened
        """
        try:
            ser = serial.Serial(
                port=port,
                baudrate=baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=timeout_s,
                rtscts=False,
                dsrdtr=False,
                xonxoff=False,
            )
        except (serial.SerialException, ValueError) as e:
            raise DeviceUnavailable(f"Failed to open {port} at {baud} baud: {e}") from e

        logger.info(f"Opened serial port {port} at {baud} baud, timeout={timeout_s}s")
        return cls(ser, name=port)

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_open(self) -> bool:
        """Check if port is currently open."""
        return self._port.is_open

    @property
    def separator(self) -> str:
        return self._framer.separator

    def configure(self, separator: str = protocol.DEFAULT_SEPARATOR) -> None:
        """Set the framing separator, dropping any partially framed input.

        Raises:
            InvalidArgument: If separator is empty
        """
        with self._read_lock:
            self._framer.separator = separator
            self._ready.clear()
        logger.debug(f"Configured line framing separator {separator!r} on {self._name}")

    def close(self) -> None:
        """Stop active delivery and close the serial port."""
        self.stop_notifications()
        try:
            if self._port.is_open:
                self._port.close()
                logger.info(f"Closed serial port {self._name}")
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Failed to close {self._name}: {e}") from e

    def read_message(self, timeout: Optional[float] = None) -> Optional[str]:
        """Read one framed message from the device.

        Args:
            timeout: Seconds to wait for a complete message. None blocks
                    until one arrives.

        Returns:
            Message with separator stripped, or None if timeout expired

        Raises:
            TransportError: If port is closed or read fails
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._read_lock:
            while not self._ready:
                self._ensure_open()
                chunk = self._read_chunk()
                if chunk:
                    self._ready.extend(self._framer.feed(chunk))
                    continue
                if deadline is not None and time.monotonic() >= deadline:
                    return None

            message = self._ready.popleft()

        logger.debug(f"Received message: {message!r}")
        return message

    def _read_chunk(self) -> bytes:
        try:
            return self._port.read(self._port.in_waiting or 1)
        except (serial.SerialException, OSError, TypeError) as e:
            raise TransportError(f"Failed to read from {self._name}: {e}") from e

    def _ensure_open(self) -> None:
        if not self._port.is_open:
            raise TransportError(f"Serial port {self._name} is not open")

    # ========================================================================
    # Active Delivery
    # ========================================================================

    @property
    def delivering(self) -> bool:
        """True while the active reader thread is running."""
        return self._reader_thread is not None and self._reader_thread.is_alive()

    def start_notifications(self, sink: "queue.Queue[Notification]") -> None:
        """Start pushing received messages onto sink.

        Raises:
            TransportError: If port is closed
        """
        self._ensure_open()
        if self.delivering:
            return

        self._stop_event.clear()
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            args=(sink,),
            name=f"ActiveReader-{self._name}",
            daemon=True,
        )
        self._reader_thread.start()
        logger.debug(f"Started active reader thread for {self._name}")

    def stop_notifications(self) -> None:
        """Stop and join the active reader thread if running."""
        if self._reader_thread is None:
            return

        self._stop_event.set()
        if self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=protocol.READER_JOIN_TIMEOUT)
            if self._reader_thread.is_alive():
                logger.warning("Active reader thread did not stop cleanly")
        self._reader_thread = None

    def _reader_loop(self, sink: "queue.Queue[Notification]") -> None:
        """Background loop for active mode.

        Pulls framed messages and pushes them to sink until stopped. A
        transport failure is pushed once as an error notification and ends
        the loop.
        """
        logger.info(f"Active reader loop started for {self._name}")

        while not self._stop_event.is_set():
            try:
                message = self.read_message(timeout=protocol.READ_POLL_INTERVAL)
            except TransportError as e:
                if not self._stop_event.is_set():
                    logger.error(f"Active reader stopped on transport error: {e}")
                    sink.put(Notification(self._name, error=e))
                break

            if message is not None:
                sink.put(Notification(self._name, message=message))

        logger.info(f"Active reader loop stopped for {self._name}")
