"""FastAPI entry point for the GNSS metrics bridge.

Each scrape of /metrics fetches the receiver's XML status document from the
``target`` URL, decodes it into the shared gauge set and returns the gauges in
the Prometheus text format.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncGenerator, Optional

import httpx
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from gnss_bridge import __version__
from gnss_bridge.config import BridgeSettings, get_settings
from gnss_bridge.exceptions import DeserializeError, FetchError
from gnss_bridge.fetcher import ReceiverFetcher
from gnss_bridge.metrics import CONTENT_TYPE, MetricSnapshot
from gnss_bridge.status_document import get_document_counters, parse_status_document
from gnss_bridge.updater import MetricUpdater, get_field_counters

logger = logging.getLogger(__name__)

basic_auth = HTTPBasic(auto_error=False)


async def optional_credentials(request: Request) -> Optional[HTTPBasicCredentials]:
    """Basic credentials to forward, or None if absent or undecodable."""
    try:
        return await basic_auth(request)
    except HTTPException:
        logger.warning("Ignoring malformed Basic Authorization header")
        return None


# ---------------------------------------------------------------------------
# Shared state
# ---------------------------------------------------------------------------

@dataclass
class BridgeState:
    """Everything a scrape handler needs, shared across requests."""

    settings: BridgeSettings
    snapshot: MetricSnapshot
    updater: MetricUpdater
    fetcher: Optional[ReceiverFetcher] = None
    start_time: float = field(default_factory=time.time)
    scrapes_total: int = 0
    fatal_errors: dict[str, int] = field(
        default_factory=lambda: {FetchError.kind: 0, DeserializeError.kind: 0}
    )


def _bridge(request: Request) -> BridgeState:
    return request.app.state.bridge


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[BridgeSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the bridge application.

    Args:
        settings: Bridge settings; read from the environment if omitted.
        transport: Optional transport for the outbound client (tests).

    Returns:
        The FastAPI app. Its gauges live in ``app.state.bridge.snapshot``.
    """
    settings = settings or get_settings()
    snapshot = MetricSnapshot()
    state = BridgeState(
        settings=settings,
        snapshot=snapshot,
        updater=MetricUpdater(
            snapshot,
            coordinate_format=settings.coordinate_format,
            pair_position=settings.pair_position,
        ),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """Open the shared outbound client for the app's lifetime."""
        logger.info("GNSS bridge starting...")
        async with httpx.AsyncClient(transport=transport) as client:
            state.fetcher = ReceiverFetcher(client, settings.fetch_timeout_s)
            logger.info(
                "GNSS bridge ready (coordinates=%s, paired position=%s, stale on error=%s)",
                settings.coordinate_format.value,
                settings.pair_position,
                settings.serve_stale_on_error,
            )
            yield
            state.fetcher = None
        logger.info("GNSS bridge shut down")

    app = FastAPI(title="GNSS Metrics Bridge", version=__version__, lifespan=lifespan)
    app.state.bridge = state

    app.add_api_route("/metrics", scrape, methods=["GET"])
    app.add_api_route("/api/health", health, methods=["GET"])
    return app


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

async def scrape(
    request: Request,
    target: str = Query(..., description="URL of the receiver's status document"),
    credentials: Optional[HTTPBasicCredentials] = Depends(optional_credentials),
) -> Response:
    """Fetch, decode and expose one receiver's status."""
    bridge = _bridge(request)
    bridge.scrapes_total += 1
    auth = (credentials.username, credentials.password) if credentials else None

    try:
        body = await bridge.fetcher.fetch(target, auth)
        status = parse_status_document(body)
    except (FetchError, DeserializeError) as err:
        bridge.fatal_errors[err.kind] += 1
        logger.error("Scrape of %s failed: %s", target, err.message)
        if not bridge.settings.serve_stale_on_error:
            return PlainTextResponse(str(err), status_code=502)
        logger.info("Serving last snapshot for %s", target)
    else:
        report = bridge.updater.apply(status)
        if not report.complete:
            logger.info("Partial update from %s, failed fields: %s", target, ", ".join(report.failed))

    return Response(content=bridge.snapshot.render(), media_type=CONTENT_TYPE)


async def health(request: Request) -> dict:
    """Bridge health and decode diagnostics."""
    bridge = _bridge(request)
    return {
        "status": "healthy",
        "uptime_s": int(time.time() - bridge.start_time),
        "scrapes_total": bridge.scrapes_total,
        "fatal_errors": dict(bridge.fatal_errors),
        "parser_counters": {**get_document_counters(), **get_field_counters()},
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

app = create_app(settings)


def run() -> None:
    """Console entry point: serve the bridge on the configured address."""
    uvicorn.run(
        "gnss_bridge.main:app",
        host=settings.listen_host,
        port=settings.listen_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
