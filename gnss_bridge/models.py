"""Data models for the receiver status document and its decoded values.

The receiver protocol is fixed per firmware; this build targets the variant
that reports per-constellation counts plus an optional combined ``svused``.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Satellite counts are signed 64-bit on the receiver side
COUNT_MIN = -(2**63)
COUNT_MAX = 2**63 - 1


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AntennaStatus(IntEnum):
    """Antenna health as reported in the ``ant`` element."""

    OPEN = 0
    OK = 1
    UNKNOWN = 2

    @classmethod
    def from_raw(cls, raw: str) -> "AntennaStatus":
        """Map the receiver's antenna text to a status. Never fails."""
        if raw == "OPEN":
            return cls.OPEN
        if raw == "OK":
            return cls.OK
        return cls.UNKNOWN


class Constellation(str, Enum):
    """Satellite constellations exported as the ``constellation`` label."""

    GPS = "GPS"
    BEIDOU = "BeiDou"
    GLONASS = "GLONASS"

    @property
    def status_attr(self) -> str:
        """Name of the ReceiverStatus attribute holding this used/seen text."""
        return _STATUS_ATTRS[self]


_STATUS_ATTRS = {
    Constellation.GPS: "gps_info",
    Constellation.BEIDOU: "beidou_info",
    Constellation.GLONASS: "glonass_info",
}


class CoordinateFormat(str, Enum):
    """How the receiver encodes the fractional part of a coordinate."""

    MINUTES = "minutes"  # DDMM.mmmm
    SECONDS = "seconds"  # DDMM.SSsss


# ---------------------------------------------------------------------------
# Status document
# ---------------------------------------------------------------------------

class ReceiverStatus(BaseModel):
    """Raw receiver status, one instance per scrape.

    Field values are kept as the strings the receiver sent; decoding happens
    in the field parsers so that one bad field cannot reject the document.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    antenna: str = Field(alias="ant")
    satellites_used_total: Optional[int] = Field(
        default=None, alias="svused", ge=COUNT_MIN, le=COUNT_MAX
    )
    gps_info: str = Field(alias="gpsinfo")
    beidou_info: str = Field(alias="bdinfo")
    glonass_info: str = Field(alias="glinfo")
    latitude: str = Field(alias="lat")
    longitude: str = Field(alias="long")
    altitude: str = Field(alias="alt")

    def constellation_info(self, constellation: Constellation) -> str:
        """Return the raw used/seen text for a constellation."""
        return getattr(self, constellation.status_attr)
