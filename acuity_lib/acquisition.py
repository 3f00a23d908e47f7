"""Batch acquisition loop for passive and active read modes."""

import logging
import queue
from typing import Any, List, Optional

from acuity_lib import parsing, protocol
from acuity_lib.connection import ConnectionHandle
from acuity_lib.errors import InvalidArgument, ReadTimeout
from acuity_lib.models import Batch, ReadMode, Record, TimeoutPolicy

logger = logging.getLogger(__name__)


def validate_timeout_policy(value: Any) -> TimeoutPolicy:
    """Convert a caller-supplied policy into a TimeoutPolicy.

    Accepts a TimeoutPolicy member or the tokens "skip"/"fail" in any case.

    Raises:
        InvalidArgument: For any other value
    """
    if isinstance(value, TimeoutPolicy):
        return value

    if not isinstance(value, str):
        raise InvalidArgument(
            f"Timeout policy must be 'skip' or 'fail', got {type(value).__name__} {value!r}"
        )

    try:
        return TimeoutPolicy(value.strip().lower())
    except ValueError as e:
        raise InvalidArgument(f"Timeout policy must be 'skip' or 'fail', got {value!r}") from e


class AcquisitionLoop:
    """Collect one batch of records from a connection.

    The read strategy follows the handle's mode at each attempt:

    - Passive: one blocking transport read per record. Any failure, parse
      or transport, aborts the batch.
    - Active: wait on the handle's notification queue for up to
      active_timeout_s. What a timeout does is set by timeout_policy;
      parse and transport failures abort the batch as in passive mode.

    No partial batch is ever returned.
    """

    def __init__(
        self,
        handle: ConnectionHandle,
        timeout_policy: Any = TimeoutPolicy.SKIP,
        active_timeout_s: float = protocol.ACTIVE_READ_TIMEOUT,
        passive_timeout_s: Optional[float] = None,
    ) -> None:
        """Initialize loop.

        Args:
            handle: Open connection to read from
            timeout_policy: SKIP logs an active-mode timeout and waits again,
                           FAIL raises ReadTimeout
            active_timeout_s: Wait per active-mode attempt. Default 1.5s.
            passive_timeout_s: Optional bound on each passive read. None
                              blocks until a message arrives.
        """
        self._handle = handle
        self._policy = validate_timeout_policy(timeout_policy)
        self._active_timeout_s = active_timeout_s
        self._passive_timeout_s = passive_timeout_s
        self.timeouts = 0

    @property
    def timeout_policy(self) -> TimeoutPolicy:
        return self._policy

    def run(self) -> Batch:
        """Read until BATCH_SIZE records are accumulated.

        Returns:
            Complete Batch in arrival order

        Raises:
            ParseError: If a message is malformed
            TransportError: If the session fails or is released mid-batch
            ReadTimeout: On an active timeout under FAIL policy, or a passive
                        read exceeding passive_timeout_s
        """
        records: List[Record] = []

        with self._handle.lock:
            logger.info(
                f"Acquiring batch of {protocol.BATCH_SIZE} from {self._handle.name} "
                f"({self._handle.mode.value} mode)"
            )
            while len(records) < protocol.BATCH_SIZE:
                self._handle.ensure_alive()

                if self._handle.mode is ReadMode.ACTIVE:
                    line = self._next_active()
                    if line is None:
                        continue
                else:
                    line = self._next_passive()

                record = parsing.parse_record(line)
                records.append(record)
                logger.debug(f"Record {len(records)}/{protocol.BATCH_SIZE}: {record}")

        logger.info(
            f"Batch complete from {self._handle.name} ({self.timeouts} skipped timeouts)"
        )
        return Batch(tuple(records), complete=True)

    def _next_passive(self) -> str:
        line = self._handle.transport.read_message(timeout=self._passive_timeout_s)
        if line is None:
            raise ReadTimeout(
                f"No message from {self._handle.name} within {self._passive_timeout_s}s"
            )
        return line

    def _next_active(self) -> Optional[str]:
        """Wait for one pushed message.

        Returns:
            The message, or None when a timeout was skipped under SKIP policy
        """
        try:
            notification = self._handle.notifications.get(timeout=self._active_timeout_s)
        except queue.Empty:
            return self._on_timeout()

        if notification.error is not None:
            raise notification.error

        if notification.port != self._handle.name:
            logger.debug(
                f"Ignoring message tagged {notification.port!r} on {self._handle.name}"
            )
            return None

        return notification.message

    def _on_timeout(self) -> None:
        error = ReadTimeout(
            f"No message from {self._handle.name} within {self._active_timeout_s}s"
        )
        if self._policy is TimeoutPolicy.FAIL:
            raise error

        if self.timeouts == 0:
            logger.warning(
                "Active read timed out; skip policy keeps waiting for the batch, "
                "unlike passive mode where failures abort it"
            )
        self.timeouts += 1
        logger.warning(f"{error} (attempt skipped, {self.timeouts} so far)")
        return None
