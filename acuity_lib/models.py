"""Data models for the Acuity gauge acquisition library."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from acuity_lib import protocol


class ReadMode(Enum):
    """How messages reach the acquisition loop.

    PASSIVE: the caller requests each message with a blocking read.
    ACTIVE: the transport pushes messages to a waiting receiver.
    """

    PASSIVE = protocol.MODE_PASSIVE
    ACTIVE = protocol.MODE_ACTIVE


class TimeoutPolicy(Enum):
    """What an active-mode read timeout does to the batch in flight.

    SKIP keeps the legacy behavior: the timeout is logged and the loop waits
    again. FAIL raises ReadTimeout and aborts the batch, which matches how
    passive-mode failures are handled.
    """

    SKIP = "skip"
    FAIL = "fail"


@dataclass(frozen=True)
class Record:
    """One 3-channel gauge reading taken at a single sampling instant.

    Attributes:
        west: Distance reported by the west channel.
        center: Distance reported by the center channel.
        east: Distance reported by the east channel.
    """

    west: float
    center: float
    east: float

    def as_dict(self) -> Dict[str, float]:
        """Return the reading keyed by channel name."""
        return {name: getattr(self, name) for name in protocol.CHANNELS}


@dataclass(frozen=True)
class Batch:
    """Fixed-size ordered collection of records from one acquisition call.

    Attributes:
        records: Records in arrival order. Always BATCH_SIZE long.
        complete: Completion marker; True for every batch handed to a caller.
    """

    records: Tuple[Record, ...]
    complete: bool = True

    def __post_init__(self) -> None:
        """Validate batch length."""
        if len(self.records) != protocol.BATCH_SIZE:
            raise ValueError(
                f"batch must hold {protocol.BATCH_SIZE} records, got {len(self.records)}"
            )

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __getitem__(self, index: int) -> Record:
        return self.records[index]


@dataclass(frozen=True)
class DeviceInfo:
    """Metadata for one enumerated serial port."""

    description: str = ""
    manufacturer: str = ""
    product_id: Optional[int] = None
    vendor_id: Optional[int] = None


@dataclass
class SerialSettings:
    """Serial session parameters for one connection.

    Attributes:
        baud: Baud rate of the gauge link.
        read_timeout_s: pyserial read timeout per chunk.
        separator: Line separator used for framing.
        active: True when messages are pushed rather than polled.
    """

    baud: int = protocol.DEFAULT_BAUD
    read_timeout_s: float = protocol.READ_POLL_INTERVAL
    separator: str = protocol.DEFAULT_SEPARATOR
    active: bool = False

    def __post_init__(self) -> None:
        """Validate settings values."""
        if self.baud not in protocol.VALID_BAUD_RATES:
            raise ValueError(
                f"baud must be one of {sorted(protocol.VALID_BAUD_RATES)}, got {self.baud}"
            )
        if self.read_timeout_s <= 0:
            raise ValueError(f"read_timeout_s must be positive, got {self.read_timeout_s}")
        if not self.separator:
            raise ValueError("separator must not be empty")

    def as_dict(self) -> Dict[str, Any]:
        """Settings mapping reported by get_config."""
        return {
            "baud": self.baud,
            "read_timeout_s": self.read_timeout_s,
            "framing": {"separator": self.separator},
            "active": self.active,
        }
