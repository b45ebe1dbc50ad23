"""Bridge service configuration.

Uses pydantic-settings to load from environment variables with sensible defaults.
"""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from gnss_bridge.models import CoordinateFormat


class BridgeSettings(BaseSettings):
    """Configuration for the GNSS metrics bridge."""

    # HTTP listener, "host:port"
    listen: str = "0.0.0.0:9123"

    # Outbound fetch deadline; None waits on the receiver indefinitely
    fetch_timeout_s: Optional[float] = 10.0

    # Receiver coordinate encoding
    coordinate_format: CoordinateFormat = CoordinateFormat.MINUTES

    # If True, latitude and longitude are updated together or not at all
    pair_position: bool = True

    # If True, a failed fetch/decode serves the last snapshot instead of 502
    serve_stale_on_error: bool = False

    log_level: str = "INFO"

    model_config = {"env_prefix": "GNSS_BRIDGE_"}

    @field_validator("listen")
    @classmethod
    def _check_listen(cls, value: str) -> str:
        host, sep, port = value.rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"listen address must be host:port, got {value!r}")
        return value

    @property
    def listen_host(self) -> str:
        """Host part of the listen address (IPv6 brackets stripped)."""
        return self.listen.rpartition(":")[0].strip("[]")

    @property
    def listen_port(self) -> int:
        """Port part of the listen address."""
        return int(self.listen.rpartition(":")[2])


def get_settings() -> BridgeSettings:
    """Return a settings instance built from the environment."""
    return BridgeSettings()
