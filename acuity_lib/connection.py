"""Connection handle owning one serial session."""

import logging
import queue
import threading
from typing import Any

from acuity_lib.errors import TransportError
from acuity_lib.models import ReadMode, SerialSettings
from acuity_lib.mode import ReadModeController
from acuity_lib.transport import Notification, Transport

logger = logging.getLogger(__name__)


class ConnectionHandle:
    """Owner of one open transport session.

    The handle is created by controller.connect() and must be released with
    controller.disconnect(). It carries the session's read mode, the queue
    that active-mode messages are pushed onto, and the lock that keeps one
    acquisition in flight at a time.
    """

    def __init__(
        self,
        name: str,
        transport: Transport,
        settings: SerialSettings,
        mode: Any = ReadMode.PASSIVE,
    ) -> None:
        """Initialize handle around an already opened transport.

        Args:
            name: Device name the session was opened on
            transport: Opened Transport
            settings: Session settings reported by get_config
            mode: Initial read mode
        """
        self._name = name
        self._transport = transport
        self._settings = settings
        self._released = False

        self.notifications: "queue.Queue[Notification]" = queue.Queue()
        self.lock = threading.RLock()

        self._mode = ReadModeController(mode)
        self._mode.on_change(self._apply_mode)
        self._settings.active = self._mode.is_active

    @property
    def name(self) -> str:
        return self._name

    @property
    def transport(self) -> Transport:
        """Underlying transport. Raises TransportError once released."""
        self.ensure_alive()
        return self._transport

    @property
    def settings(self) -> SerialSettings:
        return self._settings

    @property
    def mode_controller(self) -> ReadModeController:
        return self._mode

    @property
    def mode(self) -> ReadMode:
        return self._mode.mode

    @property
    def is_alive(self) -> bool:
        """True while the session is open and not released."""
        return not self._released and self._transport.is_open

    def ensure_alive(self) -> None:
        """Raise if the handle was released or its port has closed.

        Raises:
            TransportError: If the session is not usable
        """
        if self._released:
            raise TransportError(f"Connection to {self._name} has been released")
        if not self._transport.is_open:
            raise TransportError(f"Serial port {self._name} is not open")

    def start(self) -> None:
        """Begin active delivery if the session starts in active mode."""
        if self._mode.is_active:
            self._transport.start_notifications(self.notifications)

    def release(self) -> None:
        """Stop delivery and close the transport.

        Raises:
            TransportError: If the handle was already released
        """
        if self._released:
            raise TransportError(f"Connection to {self._name} already released")

        self._released = True
        try:
            self._transport.close()
        finally:
            # Wake an active batch waiting on the queue
            self.notifications.put(
                Notification(
                    self._name,
                    error=TransportError(f"Connection to {self._name} has been released"),
                )
            )
        logger.info(f"Released connection to {self._name}")

    def _apply_mode(self, old: ReadMode, new: ReadMode) -> None:
        self._settings.active = new is ReadMode.ACTIVE
        if new is ReadMode.ACTIVE:
            self._transport.start_notifications(self.notifications)
        else:
            self._transport.stop_notifications()
            self._drain_notifications()

    def _drain_notifications(self) -> None:
        dropped = 0
        while True:
            try:
                self.notifications.get_nowait()
            except queue.Empty:
                break
            dropped += 1
        if dropped:
            logger.debug(f"Dropped {dropped} undelivered active messages on {self._name}")

    def __repr__(self) -> str:
        state = "alive" if self.is_alive else "released"
        return f"ConnectionHandle({self._name!r}, mode={self.mode.value}, {state})"
