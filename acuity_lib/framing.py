"""Line framing for the gauge byte stream."""

import logging
from typing import List, Union

from acuity_lib import protocol
from acuity_lib.errors import InvalidArgument

logger = logging.getLogger(__name__)


class LineFramer:
    """Split a raw byte/character stream into separator-delimited messages.

    Incoming chunks are buffered until a full separator is seen. Each
    complete message is returned with the separator stripped; a trailing
    partial message stays buffered for the next feed.
    """

    def __init__(self, separator: str = protocol.DEFAULT_SEPARATOR) -> None:
        """Initialize framer.

        Args:
            separator: Message boundary. Defaults to CRLF.

        Raises:
            InvalidArgument: If separator is empty or not a string
        """
        self._separator = self._check_separator(separator)
        self._buffer = ""

    @staticmethod
    def _check_separator(separator: str) -> str:
        if not isinstance(separator, str) or not separator:
            raise InvalidArgument(f"separator must be a non-empty string, got {separator!r}")
        return separator

    @property
    def separator(self) -> str:
        """Current message boundary."""
        return self._separator

    @separator.setter
    def separator(self, value: str) -> None:
        self._separator = self._check_separator(value)
        # Old buffer was framed against the old boundary
        self.reset()

    @property
    def pending(self) -> str:
        """Buffered text not yet terminated by a separator."""
        return self._buffer

    def reset(self) -> None:
        """Discard any buffered partial message."""
        if self._buffer:
            logger.debug(f"Discarding {len(self._buffer)} buffered chars")
        self._buffer = ""

    def feed(self, data: Union[bytes, str]) -> List[str]:
        """Append a chunk and return every message it completes.

        Args:
            data: Raw bytes from the port, or already-decoded text

        Returns:
            Complete messages in arrival order (possibly empty)
        """
        if isinstance(data, bytes):
            data = data.decode(protocol.ENCODING, errors="replace")

        self._buffer += data
        messages = []
        while self._separator in self._buffer:
            message, self._buffer = self._buffer.split(self._separator, 1)
            messages.append(message)

        return messages
