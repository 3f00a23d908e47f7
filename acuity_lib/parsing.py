"""Pure functions for parsing gauge data lines."""

import logging
import math
from typing import List

from acuity_lib import protocol
from acuity_lib.errors import ParseError
from acuity_lib.models import Record

logger = logging.getLogger(__name__)


def split_fields(line: str) -> List[str]:
    """Split one message into its raw field tokens.

    Surrounding whitespace other than the tab delimiter is dropped, so a
    stray CR left by a mismatched separator does not corrupt the last field.
    """
    return line.strip(" \r\n").split(protocol.FIELD_DELIMITER)


def parse_float(token: str, line: str) -> float:
    """Parse one field token as a decimal literal.

    Only plain decimal notation is accepted. Padding, digit separators and
    special values such as nan or inf are format errors.

    Raises:
        ParseError: If the token is not a decimal literal
    """
    if protocol.RE_DECIMAL.fullmatch(token) is None:
        raise ParseError(
            f"Non-numeric token {token!r} in line: {line!r}", line=line, reason="format"
        )
    value = float(token)
    if not math.isfinite(value):
        raise ParseError(
            f"Out-of-range token {token!r} in line: {line!r}", line=line, reason="format"
        )
    return value


def parse_record(line: str) -> Record:
    """Parse a gauge data line into a 3-channel record.

    Expected format: <west>\\t<center>\\t<east>
    Example: "0.369\\t0.398\\t0.392"

    Args:
        line: One framed message (separator already stripped)

    Returns:
        Record with fields mapped positionally to west, center, east

    Raises:
        ParseError: If a token is not numeric or there are not exactly 3 tokens
    """
    tokens = split_fields(line)
    values = [parse_float(token, line) for token in tokens]

    if len(values) != protocol.CHANNEL_COUNT:
        raise ParseError(
            f"Expected {protocol.CHANNEL_COUNT} fields, got {len(values)} in line: {line!r}",
            line=line,
            reason="arity",
        )

    return Record(*values)
