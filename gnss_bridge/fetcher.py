"""Outbound client for the receiver's status document."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from gnss_bridge.exceptions import FetchError

logger = logging.getLogger(__name__)


class ReceiverFetcher:
    """Fetches the status document with one GET per scrape.

    Redirects are followed. No retries are made; a failed fetch fails the
    scrape.
    """

    def __init__(self, client: httpx.AsyncClient, timeout_s: Optional[float] = 10.0) -> None:
        """Initialize the fetcher.

        Args:
            client: Shared HTTP client, owned by the caller.
            timeout_s: Per-request deadline in seconds, or None for no deadline.
        """
        self._client = client
        self._timeout = httpx.Timeout(timeout_s)

    async def fetch(self, target: str, auth: Optional[tuple[str, str]] = None) -> str:
        """GET ``target`` and return the body decoded as UTF-8.

        Args:
            target: Status document URL.
            auth: Optional (username, password) for HTTP Basic auth.

        Raises:
            FetchError: On network errors, timeouts, invalid URLs and non-2xx
                responses.
        """
        try:
            resp = await self._client.get(
                target, auth=auth, timeout=self._timeout, follow_redirects=True
            )
        except httpx.TimeoutException as err:
            raise FetchError(f"timed out fetching {target}") from err
        except (httpx.HTTPError, httpx.InvalidURL) as err:
            raise FetchError(f"error fetching {target}: {err}") from err

        if not resp.is_success:
            raise FetchError(f"{target} returned HTTP {resp.status_code}")

        body = resp.content.decode("utf-8", errors="replace")
        logger.debug("Fetched %d bytes from %s", len(body), target)
        return body
