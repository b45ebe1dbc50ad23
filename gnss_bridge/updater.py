"""Apply a decoded ReceiverStatus to the MetricSnapshot.

Each field group has an explicit failure policy:

    FAIL_OPEN    the group is decoded on its own; if it fails only its
                 gauges are left unchanged.
    FAIL_CLOSED  the group's members are decoded together; if any member
                 fails none of them are written.

Latitude and longitude form the only multi-field group, so that the two
gauges always describe the same fix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from gnss_bridge.exceptions import MalformedFieldError
from gnss_bridge.field_parser import parse_altitude, parse_coordinate, parse_used_seen
from gnss_bridge.metrics import MetricSnapshot
from gnss_bridge.models import AntennaStatus, Constellation, CoordinateFormat, ReceiverStatus

logger = logging.getLogger(__name__)

_counters: dict[str, int] = {
    "fields_updated": 0,
    "field_parse_errors": 0,
    "altitude_parse_misses": 0,
}


def get_field_counters() -> dict[str, int]:
    """Return a copy of field diagnostic counters."""
    return dict(_counters)


# ---------------------------------------------------------------------------
# Policies and outcomes
# ---------------------------------------------------------------------------

class FailurePolicy(str, Enum):
    """How a field group reacts to a decode failure."""

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


class FieldOutcome(str, Enum):
    """Result of decoding one status field."""

    UPDATED = "updated"
    FAILED = "failed"
    ABSENT = "absent"


# Field group -> policy. Groups: antenna (ant), gps (gpsinfo), beidou (bdinfo),
# glonass (glinfo), position (lat + long), altitude (alt). svused is typed and
# range checked during deserialization, so it never fails here.
FIELD_POLICIES: dict[str, FailurePolicy] = {
    "antenna": FailurePolicy.FAIL_OPEN,
    "gps": FailurePolicy.FAIL_OPEN,
    "beidou": FailurePolicy.FAIL_OPEN,
    "glonass": FailurePolicy.FAIL_OPEN,
    "position": FailurePolicy.FAIL_CLOSED,
    "altitude": FailurePolicy.FAIL_OPEN,
}

_CONSTELLATION_FIELDS: tuple[tuple[Constellation, str], ...] = (
    (Constellation.GPS, "gpsinfo"),
    (Constellation.BEIDOU, "bdinfo"),
    (Constellation.GLONASS, "glinfo"),
)


@dataclass
class UpdateReport:
    """Per-field outcome of one MetricUpdater.apply call."""

    outcomes: dict[str, FieldOutcome] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    def mark(self, name: str, outcome: FieldOutcome, error: Optional[str] = None) -> None:
        self.outcomes[name] = outcome
        if error is not None:
            self.errors[name] = error

    @property
    def updated(self) -> list[str]:
        return [n for n, o in self.outcomes.items() if o is FieldOutcome.UPDATED]

    @property
    def failed(self) -> list[str]:
        return [n for n, o in self.outcomes.items() if o is FieldOutcome.FAILED]

    @property
    def complete(self) -> bool:
        """True when no field failed."""
        return not self.failed


# ---------------------------------------------------------------------------
# Updater
# ---------------------------------------------------------------------------

class MetricUpdater:
    """Decodes status fields and writes them to a MetricSnapshot.

    Attributes:
        coordinate_format: Fraction encoding for lat/long.
        pair_position: If True, position is FAIL_CLOSED (the default policy);
            if False, latitude and longitude fail open independently.
    """

    def __init__(
        self,
        snapshot: MetricSnapshot,
        coordinate_format: CoordinateFormat = CoordinateFormat.MINUTES,
        pair_position: bool = True,
    ) -> None:
        self._snapshot = snapshot
        self.coordinate_format = coordinate_format
        self.pair_position = pair_position

    def policy_for(self, group: str) -> FailurePolicy:
        """Return the failure policy in effect for a field group."""
        if group == "position" and not self.pair_position:
            return FailurePolicy.FAIL_OPEN
        return FIELD_POLICIES[group]

    def apply(self, status: ReceiverStatus) -> UpdateReport:
        """Decode every field of ``status`` and update the snapshot.

        Never raises for field-level problems; those are logged and recorded
        in the returned report.

        Args:
            status: The deserialized receiver status.

        Returns:
            UpdateReport with one outcome per status element.
        """
        report = UpdateReport()

        self._snapshot.set_antenna(AntennaStatus.from_raw(status.antenna))
        self._updated(report, "ant")

        if status.satellites_used_total is None:
            report.mark("svused", FieldOutcome.ABSENT)
        else:
            self._snapshot.set_used_total(status.satellites_used_total)
            self._updated(report, "svused")

        for constellation, name in _CONSTELLATION_FIELDS:
            try:
                used, seen = parse_used_seen(status.constellation_info(constellation), name)
            except MalformedFieldError as err:
                self._failed(report, name, err)
                continue
            self._snapshot.set_satellites(constellation, used, seen)
            self._updated(report, name)

        if self.policy_for("position") is FailurePolicy.FAIL_CLOSED:
            self._apply_position_paired(status, report)
        else:
            self._apply_position_independent(status, report)

        altitude = parse_altitude(status.altitude)
        if altitude is None:
            _counters["altitude_parse_misses"] += 1
            report.mark("alt", FieldOutcome.FAILED, f"unparseable altitude {status.altitude!r}")
        else:
            self._snapshot.set_altitude(altitude)
            self._updated(report, "alt")

        return report

    # -- position ----------------------------------------------------------

    def _decode_coordinate(self, raw: str, name: str) -> float:
        return parse_coordinate(raw, self.coordinate_format, name)

    def _apply_position_paired(self, status: ReceiverStatus, report: UpdateReport) -> None:
        decoded: dict[str, float] = {}
        errors: dict[str, MalformedFieldError] = {}

        for name, raw in (("lat", status.latitude), ("long", status.longitude)):
            try:
                decoded[name] = self._decode_coordinate(raw, name)
            except MalformedFieldError as err:
                errors[name] = err

        if not errors:
            self._snapshot.set_position(decoded["lat"], decoded["long"])
            self._updated(report, "lat")
            self._updated(report, "long")
            return

        for name in ("lat", "long"):
            if name in errors:
                self._failed(report, name, errors[name])
            else:
                bad = next(iter(errors))
                report.mark(name, FieldOutcome.FAILED, f"discarded: paired field {bad} is malformed")

    def _apply_position_independent(self, status: ReceiverStatus, report: UpdateReport) -> None:
        try:
            latitude = self._decode_coordinate(status.latitude, "lat")
        except MalformedFieldError as err:
            self._failed(report, "lat", err)
        else:
            self._snapshot.set_latitude(latitude)
            self._updated(report, "lat")

        try:
            longitude = self._decode_coordinate(status.longitude, "long")
        except MalformedFieldError as err:
            self._failed(report, "long", err)
        else:
            self._snapshot.set_longitude(longitude)
            self._updated(report, "long")

    # -- bookkeeping -------------------------------------------------------

    @staticmethod
    def _updated(report: UpdateReport, name: str) -> None:
        _counters["fields_updated"] += 1
        report.mark(name, FieldOutcome.UPDATED)

    @staticmethod
    def _failed(report: UpdateReport, name: str, err: MalformedFieldError) -> None:
        _counters["field_parse_errors"] += 1
        logger.warning("Skipping %s: %s", name, err.message)
        report.mark(name, FieldOutcome.FAILED, err.message)
