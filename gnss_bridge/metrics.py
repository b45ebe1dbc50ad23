"""Process-wide gauge set for decoded receiver values.

One MetricSnapshot is created at startup and shared by every scrape. Gauges
keep their last written value; a field that fails to decode simply leaves its
gauge untouched.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from gnss_bridge.models import AntennaStatus, Constellation

logger = logging.getLogger(__name__)

NAMESPACE = "gnss"

# Re-exported for the HTTP layer
CONTENT_TYPE = CONTENT_TYPE_LATEST


class MetricSnapshot:
    """Named gauges for one receiver, held in a dedicated registry.

    Individual gauge writes are atomic. Latitude and longitude are written
    under ``_position_lock``, which exposition also holds, so a scrape never
    sees one half of a position update.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._position_lock = threading.Lock()

        self.antenna = Gauge(
            "ant",
            "Antenna status (0 = OPEN, 1 = OK, 2 = unknown)",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.svs_used = Gauge(
            "svs_used",
            "Satellites used",
            ["constellation"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.svs_seen = Gauge(
            "svs_seen",
            "Satellites seen",
            ["constellation"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.svs_used_total = Gauge(
            "svs_used_total",
            "Satellites used across all constellations",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.latitude = Gauge(
            "lat",
            "Latitude in decimal degrees",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.longitude = Gauge(
            "lon",
            "Longitude in decimal degrees",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.altitude = Gauge(
            "alt",
            "Altitude in meters",
            namespace=NAMESPACE,
            registry=self.registry,
        )

    # -- writers -----------------------------------------------------------

    def set_antenna(self, status: AntennaStatus) -> None:
        self.antenna.set(int(status))

    def set_satellites(self, constellation: Constellation, used: int, seen: int) -> None:
        """Set used and seen counts for one constellation."""
        self.svs_used.labels(constellation=constellation.value).set(used)
        self.svs_seen.labels(constellation=constellation.value).set(seen)

    def set_used_total(self, used: int) -> None:
        self.svs_used_total.set(used)

    def set_position(self, latitude: float, longitude: float) -> None:
        """Set latitude and longitude as one update."""
        with self._position_lock:
            self.latitude.set(latitude)
            self.longitude.set(longitude)

    def set_latitude(self, latitude: float) -> None:
        with self._position_lock:
            self.latitude.set(latitude)

    def set_longitude(self, longitude: float) -> None:
        with self._position_lock:
            self.longitude.set(longitude)

    def set_altitude(self, altitude: float) -> None:
        self.altitude.set(altitude)

    # -- readers -----------------------------------------------------------

    def value(self, name: str, **labels: str) -> Optional[float]:
        """Return the current sample value, or None if it was never set.

        Args:
            name: Full metric name, e.g. ``"gnss_svs_used"``.
            **labels: Label values for labelled gauges.
        """
        return self.registry.get_sample_value(name, labels or None)

    def render(self) -> bytes:
        """Serialize all gauges in the Prometheus text format."""
        with self._position_lock:
            return generate_latest(self.registry)
