#!/usr/bin/env python3
"""Mock GNSS receiver for bridge development.

Serves a synthetic XML status document in the same shape as the real
receiver, optionally behind HTTP Basic auth.

Usage:
    python -m gnss_bridge.mock_receiver                       # Open access on :8080
    python -m gnss_bridge.mock_receiver --username admin --password secret
    python -m gnss_bridge.mock_receiver --fault               # Malformed fields
"""

from __future__ import annotations

import argparse
import logging
import random
import secrets
import time
from typing import Optional
from xml.etree import ElementTree as ET

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

logger = logging.getLogger(__name__)

# Reference fix (Saarland)
BASE_LAT = 49.25
BASE_LON = 7.25
BASE_ALT_M = 200.0


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------

def format_coordinate(value: float, positive: str, negative: str, degree_digits: int) -> str:
    """Encode decimal degrees as the receiver's ``"<H> DDMM.mmmmm"`` text."""
    hemisphere = positive if value >= 0 else negative
    # Round before splitting so minutes never print as 60.00000
    total_minutes = round(abs(value) * 60.0, 5)
    degrees = int(total_minutes // 60)
    minutes = total_minutes - degrees * 60
    return f"{hemisphere} {degrees:0{degree_digits}d}{minutes:08.5f}"


def build_status_document(fields: dict[str, str]) -> bytes:
    """Serialize status fields into the receiver's XML document."""
    root = ET.Element("gnss")
    for tag, text in fields.items():
        ET.SubElement(root, tag).text = text
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


# ---------------------------------------------------------------------------
# Synthetic data generator
# ---------------------------------------------------------------------------

class SyntheticReceiver:
    """Generates a slowly wandering fix and plausible satellite counts."""

    def __init__(self, fault: bool = False) -> None:
        self._t0 = time.time()
        self._fault = fault

    def _used_seen(self, max_seen: int) -> str:
        seen = random.randint(0, max_seen)
        used = random.randint(0, seen)
        return f"{used}/{seen}"

    def status_fields(self) -> dict[str, str]:
        elapsed_s = time.time() - self._t0
        lat = BASE_LAT + random.uniform(-0.00002, 0.00002)
        lon = BASE_LON + random.uniform(-0.00002, 0.00002)
        alt = BASE_ALT_M + 0.5 * random.uniform(-1, 1) + 0.001 * elapsed_s

        gps = self._used_seen(14)
        beidou = self._used_seen(12)
        glonass = self._used_seen(10)
        total = sum(int(v.split("/")[0]) for v in (gps, beidou, glonass))

        fields = {
            "ant": random.choice(["OK", "OK", "OK", "OPEN"]),
            "const": "GPS+BDS+GLO",
            "svused": str(total),
            "gpsinfo": gps,
            "bdinfo": beidou,
            "glinfo": glonass,
            "lat": format_coordinate(lat, "N", "S", 2),
            "long": format_coordinate(lon, "E", "W", 3),
            "alt": f"{alt:.1f} m",
        }

        if self._fault:
            fields["ant"] = "SHORT"
            fields["gpsinfo"] = "--"
            fields["long"] = "X 00715.00000"
            fields["alt"] = "n/a"

        return fields


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

def create_app(
    username: Optional[str] = None,
    password: Optional[str] = None,
    fault: bool = False,
) -> FastAPI:
    """Build the mock receiver app.

    Args:
        username: Required Basic auth user, or None for open access.
        password: Required Basic auth password.
        fault: If True, serve malformed field values.
    """
    app = FastAPI(title="Mock GNSS Receiver")
    generator = SyntheticReceiver(fault=fault)
    security = HTTPBasic(auto_error=False)

    def check_auth(credentials: Optional[HTTPBasicCredentials] = Depends(security)) -> None:
        if username is None:
            return
        ok = (
            credentials is not None
            and secrets.compare_digest(credentials.username, username)
            and secrets.compare_digest(credentials.password, password or "")
        )
        if not ok:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                headers={"WWW-Authenticate": "Basic"},
            )

    @app.get("/status.xml", dependencies=[Depends(check_auth)])
    async def status_xml() -> Response:
        return Response(
            content=build_status_document(generator.status_fields()),
            media_type="application/xml",
        )

    return app


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Mock GNSS receiver status server")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--username", type=str, default=None, help="Require Basic auth")
    parser.add_argument("--password", type=str, default=None)
    parser.add_argument("--fault", action="store_true", help="Serve malformed fields")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")
    logger.info(
        "Mock receiver on http://%s:%d/status.xml (auth=%s, fault=%s)",
        args.host,
        args.port,
        "on" if args.username else "off",
        args.fault,
    )

    app = create_app(args.username, args.password, args.fault)
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
