"""Fake serial port that simulates an Acuity 3-channel laser gauge.

The simulator emits tab-separated west/center/east distance lines the same
way the bench test-signal generator does, either from a scripted list of
lines or from a background streaming thread.
"""

import logging
import random
import threading
import time
from typing import Iterable, List, Optional

import serial

logger = logging.getLogger(__name__)


def make_gauge_line(west: float, center: float, east: float) -> str:
    """Format one reading the way the gauge prints it (no separator)."""
    return f"{west:.3f}\t{center:.3f}\t{east:.3f}"


def random_gauge_line(base: float = 0.38, spread: float = 0.03) -> str:
    """Generate a plausible reading around base."""
    return make_gauge_line(
        base + random.uniform(-spread, spread),
        base + random.uniform(-spread, spread),
        base + random.uniform(-spread, spread),
    )


class FakeSerial:
    """Deterministic stand-in for a serial port attached to the gauge.

    Bytes queued with queue_line()/queue_raw() become readable through
    read(); read() waits up to `timeout` seconds for data like pyserial does.
    """

    def __init__(
        self,
        lines: Optional[Iterable[str]] = None,
        separator: str = "\r\n",
        timeout: float = 0.05,
        chunk_size: Optional[int] = None,
    ) -> None:
        """Initialize fake gauge.

        Args:
            lines: Messages to make readable immediately, separator appended
            separator: Terminator appended by queue_line()
            timeout: Read timeout in seconds (pyserial semantics)
            chunk_size: If set, read() never returns more than this many
                       bytes, to exercise framing across chunk boundaries
        """
        self.separator = separator
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.is_open = True

        self.reads = 0

        self._output = bytearray()
        self._cond = threading.Condition()

        self._stream_thread: Optional[threading.Thread] = None
        self._stop_streaming = threading.Event()

        for line in lines or []:
            self.queue_line(line)

    # ========================================================================
    # SerialLike interface
    # ========================================================================

    @property
    def in_waiting(self) -> int:
        with self._cond:
            return len(self._output)

    def read(self, size: int = 1) -> bytes:
        """Read up to size bytes, or b"" if nothing arrives within timeout."""
        if not self.is_open:
            raise serial.SerialException("Attempting to use a port that is not open")

        with self._cond:
            if not self._output:
                self._cond.wait(timeout=self.timeout)
            if not self.is_open:
                raise serial.SerialException("Port closed during read")

            if self.chunk_size is not None:
                size = min(size, self.chunk_size)
            data = bytes(self._output[:size])
            del self._output[:size]

        self.reads += 1
        return data

    def close(self) -> None:
        """Close the fake port, waking any blocked reader."""
        self.stop_streaming()
        with self._cond:
            self.is_open = False
            self._cond.notify_all()
        logger.debug("FakeSerial closed")

    # ========================================================================
    # Test controls
    # ========================================================================

    def queue_raw(self, data: bytes) -> None:
        """Make raw bytes readable."""
        with self._cond:
            self._output.extend(data)
            self._cond.notify_all()

    def queue_line(self, text: str) -> None:
        """Make one message plus separator readable."""
        self.queue_raw((text + self.separator).encode("ascii"))

    def queue_readings(self, count: int) -> List[str]:
        """Queue count random readings and return the lines queued."""
        lines = [random_gauge_line() for _ in range(count)]
        for line in lines:
            self.queue_line(line)
        return lines

    def start_streaming(self, period_s: float = 0.01, count: Optional[int] = None) -> None:
        """Start emitting random readings every period_s seconds.

        Args:
            period_s: Delay between lines
            count: Stop after this many lines (None streams until stopped)
        """
        self._stop_streaming.clear()
        self._stream_thread = threading.Thread(
            target=self._streaming_loop,
            args=(period_s, count),
            name="FakeGaugeStream",
            daemon=True,
        )
        self._stream_thread.start()
        logger.debug("Started gauge streaming thread")

    def stop_streaming(self) -> None:
        if self._stream_thread and self._stream_thread.is_alive():
            self._stop_streaming.set()
            self._stream_thread.join(timeout=2.0)
            logger.debug("Stopped gauge streaming thread")
        self._stream_thread = None

    def _streaming_loop(self, period_s: float, count: Optional[int]) -> None:
        sent = 0
        while not self._stop_streaming.is_set():
            if count is not None and sent >= count:
                break
            self.queue_line(random_gauge_line())
            sent += 1
            time.sleep(period_s)
