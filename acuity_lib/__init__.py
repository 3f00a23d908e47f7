"""
acuity_lib - Acquisition library for Acuity 3-channel laser gauges.

Reads tab-separated west/center/east distance lines over a serial link in
passive (polled) or active (pushed) mode and returns them in fixed batches.
"""

from acuity_lib.controller import (
    acquire_batch,
    configure_separator,
    connect,
    disconnect,
    get_config,
    is_alive,
    list_devices,
    set_read_mode,
)
from acuity_lib.errors import (
    AcuityError,
    DeviceUnavailable,
    InvalidArgument,
    ParseError,
    ReadTimeout,
    TransportError,
)
from acuity_lib.models import Batch, DeviceInfo, ReadMode, Record, TimeoutPolicy
from acuity_lib.parsing import parse_record

__version__ = "0.1.0"

__all__ = [
    "list_devices",
    "connect",
    "disconnect",
    "is_alive",
    "set_read_mode",
    "configure_separator",
    "get_config",
    "acquire_batch",
    "parse_record",
    "Batch",
    "Record",
    "ReadMode",
    "TimeoutPolicy",
    "DeviceInfo",
    "AcuityError",
    "InvalidArgument",
    "DeviceUnavailable",
    "ParseError",
    "ReadTimeout",
    "TransportError",
]
