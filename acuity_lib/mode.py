"""Read mode state for one connection."""

import logging
import threading
from typing import Any, Callable, List

from acuity_lib.errors import InvalidArgument
from acuity_lib.models import ReadMode

logger = logging.getLogger(__name__)

ModeListener = Callable[[ReadMode, ReadMode], None]


def validate_mode(value: Any) -> ReadMode:
    """Convert a caller-supplied mode into a ReadMode.

    Accepts a ReadMode member or the tokens "passive"/"active" in any case.

    Args:
        value: Mode requested by the caller

    Returns:
        Matching ReadMode

    Raises:
        InvalidArgument: For any other value, including booleans and containers
    """
    if isinstance(value, ReadMode):
        return value

    if not isinstance(value, str):
        raise InvalidArgument(
            f"Read mode must be 'passive' or 'active', got {type(value).__name__} {value!r}"
        )

    try:
        return ReadMode(value.strip().lower())
    except ValueError as e:
        raise InvalidArgument(f"Read mode must be 'passive' or 'active', got {value!r}") from e


class ReadModeController:
    """Holds the effective read mode of a connection.

    Passive is the initial mode. A change takes effect for the next read;
    reads already in progress are not affected.
    """

    def __init__(self, initial: Any = ReadMode.PASSIVE) -> None:
        self._mode = validate_mode(initial)
        self._listeners: List[ModeListener] = []
        self._lock = threading.Lock()

    @property
    def mode(self) -> ReadMode:
        """Currently effective read mode."""
        return self._mode

    @property
    def is_active(self) -> bool:
        return self._mode is ReadMode.ACTIVE

    def on_change(self, listener: ModeListener) -> None:
        """Register a callback invoked as listener(old, new) on each transition."""
        self._listeners.append(listener)

    def set_mode(self, value: Any) -> ReadMode:
        """Validate and apply a new read mode.

        Args:
            value: ReadMode or "passive"/"active"

        Returns:
            The mode now in effect

        Raises:
            InvalidArgument: If value is not an allowed mode
        """
        new_mode = validate_mode(value)

        with self._lock:
            old_mode = self._mode
            if new_mode is old_mode:
                logger.debug(f"Read mode already {new_mode.value}")
                return new_mode
            self._mode = new_mode

        logger.info(f"Read mode changed: {old_mode.value} -> {new_mode.value}")
        for listener in self._listeners:
            listener(old_mode, new_mode)

        return new_mode
