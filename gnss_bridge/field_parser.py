"""Decoders for the receiver's free-text status fields.

    gpsinfo/bdinfo/glinfo: "<used>/<seen>"          e.g. "8/12"
    lat/long:              "<N|S|E|W> <DDDMM.fff>"  e.g. "N 4915.12345"
    alt:                   "<metres>[ m]"           e.g. "200.5 m"

The used/seen and coordinate decoders raise MalformedFieldError; the altitude
decoder returns None instead, since a missing altitude is routine on receivers
without a 3D fix.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Optional

from gnss_bridge.exceptions import MalformedFieldError
from gnss_bridge.models import COUNT_MAX, COUNT_MIN, CoordinateFormat

logger = logging.getLogger(__name__)

ALTITUDE_SUFFIX = " m"

_USED_SEEN_RE = re.compile(r"\s*(-?\d+)/(-?\d+)\s*", re.ASCII)

# Integer part is degrees followed by exactly two minute digits
_COORDINATE_RE = re.compile(r"(\d+)(\d{2})\.(\d*)", re.ASCII)

_HEMISPHERE_SIGN: dict[str, float] = {
    "N": 1.0,
    "E": 1.0,
    "S": -1.0,
    "W": -1.0,
}


# ---------------------------------------------------------------------------
# Satellites used/seen
# ---------------------------------------------------------------------------

def parse_used_seen(raw: str, field: str = "used/seen") -> tuple[int, int]:
    """Parse a ``"<used>/<seen>"`` satellite count pair.

    Values are only checked against the signed 64-bit range; the receiver
    is trusted for plausibility, not for syntax.

    Args:
        raw: Field text as sent by the receiver.
        field: Field name used in the error message.

    Returns:
        Tuple of (used, seen).

    Raises:
        MalformedFieldError: If the separator is missing or either side is
            not a base-10 integer in the signed 64-bit range.
    """
    if "/" not in raw:
        raise MalformedFieldError(field, raw, "missing '/' separator")

    match = _USED_SEEN_RE.fullmatch(raw)
    if match is None:
        raise MalformedFieldError(field, raw, "used and seen must be integers")

    return _count(match.group(1), raw, field), _count(match.group(2), raw, field)


def _count(digits: str, raw: str, field: str) -> int:
    # Longer than any 64-bit value; also keeps int() under its digit limit
    if len(digits.lstrip("-").lstrip("0")) > 19:
        raise MalformedFieldError(field, raw, "count out of 64-bit range")

    value = int(digits)
    if not COUNT_MIN <= value <= COUNT_MAX:
        raise MalformedFieldError(field, raw, "count out of 64-bit range")
    return value


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------

def hemisphere_sign(token: str, field: str = "coordinate") -> float:
    """Return +1.0 for N/E and -1.0 for S/W.

    Raises:
        MalformedFieldError: For any other token.
    """
    try:
        return _HEMISPHERE_SIGN[token]
    except KeyError:
        raise MalformedFieldError(field, token, "unknown hemisphere") from None


def _split_hemisphere(raw: str, field: str) -> tuple[str, str]:
    text = raw.strip()
    hemisphere, sep, value = text.partition(" ")
    if sep:
        return hemisphere, value.strip()

    # Some firmware drops the space: "N4915.12345"
    if len(text) > 1 and text[0].isalpha() and text[1].isdigit():
        return text[0], text[1:]

    raise MalformedFieldError(field, raw, "missing hemisphere separator")


def parse_coordinate(
    raw: str,
    fmt: CoordinateFormat = CoordinateFormat.MINUTES,
    field: str = "coordinate",
) -> float:
    """Convert a hemisphere-prefixed DDMM coordinate to signed decimal degrees.

    With ``CoordinateFormat.MINUTES`` the fraction belongs to the minutes
    (``4915.12345`` is 49 deg 15.12345 min). With ``CoordinateFormat.SECONDS``
    the first two fractional digits are whole seconds and the remainder their
    decimals (``4915.12345`` is 49 deg 15 min 12.345 s).

    Args:
        raw: Field text, e.g. ``"S 3352.10000"``.
        fmt: Fraction encoding used by the receiver.
        field: Field name used in the error message.

    Returns:
        Decimal degrees, negative for S and W.

    Raises:
        MalformedFieldError: On a missing separator, unknown hemisphere,
            missing decimal point or non-numeric digits.
    """
    hemisphere, value = _split_hemisphere(raw, field)
    sign = hemisphere_sign(hemisphere, field)

    if "." not in value:
        raise MalformedFieldError(field, raw, "missing decimal point")

    match = _COORDINATE_RE.fullmatch(value)
    if match is None:
        raise MalformedFieldError(field, raw, "expected DDDMM.fff digits")

    degree_digits, minute_digits, fraction_digits = match.groups()
    degrees = float(degree_digits)

    if fmt is CoordinateFormat.SECONDS:
        minutes = float(minute_digits)
        second_digits = fraction_digits.ljust(2, "0")
        seconds = float(f"{second_digits[:2]}.{second_digits[2:]}")
        return sign * (degrees + minutes / 60.0 + seconds / 3600.0)

    minutes = float(f"{minute_digits}.{fraction_digits}")
    return sign * (degrees + minutes / 60.0)


# ---------------------------------------------------------------------------
# Altitude
# ---------------------------------------------------------------------------

def parse_altitude(raw: str) -> Optional[float]:
    """Parse an altitude in metres, with or without the ``" m"`` suffix.

    Returns:
        Altitude in metres, or None if the text is not a finite number.
    """
    value = raw.strip()
    if value.endswith(ALTITUDE_SUFFIX):
        value = value[: -len(ALTITUDE_SUFFIX)]

    try:
        altitude = float(value)
    except ValueError:
        logger.debug("Ignoring unparseable altitude: %r", raw)
        return None

    if not math.isfinite(altitude):
        logger.debug("Ignoring non-finite altitude: %r", raw)
        return None
    return altitude
