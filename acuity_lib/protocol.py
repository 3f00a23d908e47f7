"""Wire protocol constants for the Acuity laser gauge line output.

Each reading is one line of three tab-separated decimal literals, one per
gauge channel, terminated by the configured separator.
"""

import re
from typing import Final, Tuple

# ============================================================================
# Framing
# ============================================================================

# Default line separator configured on every new connection
DEFAULT_SEPARATOR: Final[str] = "\r\n"

# Delimiter between the fields of one message
FIELD_DELIMITER: Final[str] = "\t"

# One field: optional sign, digits with optional fraction, optional exponent
RE_DECIMAL: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?",
    re.ASCII,
)

# Encoding of the gauge output
ENCODING: Final[str] = "ascii"

# ============================================================================
# Record Layout
# ============================================================================

# Positional channel names: first token is west, second center, third east
CHANNELS: Final[Tuple[str, str, str]] = ("west", "center", "east")

CHANNEL_COUNT: Final[int] = len(CHANNELS)

# Records returned by one acquisition call
BATCH_SIZE: Final[int] = 10

# ============================================================================
# Read Modes
# ============================================================================

MODE_PASSIVE: Final[str] = "passive"
MODE_ACTIVE: Final[str] = "active"

# ============================================================================
# Timing Constants (seconds)
# ============================================================================

# Wait for one pushed message in active mode
ACTIVE_READ_TIMEOUT: Final[float] = 1.5

# pyserial read timeout; bounds how long the reader thread blocks per chunk
READ_POLL_INTERVAL: Final[float] = 0.2

# Join timeout for the active reader thread
READER_JOIN_TIMEOUT: Final[float] = 2.0

# ============================================================================
# Serial Defaults
# ============================================================================

# Circuits-style default speed of the gauge link
DEFAULT_BAUD: Final[int] = 9600

VALID_BAUD_RATES: Final[frozenset[int]] = frozenset(
    {1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200, 230400}
)
