"""USGS Feed Client - Imperative Shell.

This module handles HTTP communication with the USGS GeoJSON summary feeds.
All I/O is contained here; parsing and business logic are in the core module.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any

import requests

from src.core.config import DEFAULT_FEED_ENDPOINTS
from src.core.event import SeismicEvent, parse_events


logger = logging.getLogger(__name__)


# Default timeout for feed requests (seconds)
DEFAULT_TIMEOUT = 15

# Extra time allowed on top of the request timeout before a fetch is abandoned
DEADLINE_GRACE_SECONDS = 2.0

REQUEST_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "SeismicAlertBot/1.0",
}


@dataclass
class FetchResult:
    """Outcome of fetching one feed endpoint.

    Attributes:
        endpoint: URL that was fetched
        success: Whether a valid document was received
        events: Parsed events (empty on failure)
        status_code: HTTP status code (0 if no response)
        error: Error message if failed
    """
    endpoint: str
    success: bool
    events: list[SeismicEvent] = field(default_factory=list)
    status_code: int = 0
    error: str | None = None


class USGSFeedClient:
    """Client for fetching event snapshots from USGS GeoJSON feeds.

    This is part of the imperative shell - it handles HTTP I/O. Failures
    are returned as FetchResult markers and never raised, so one bad
    endpoint cannot block the others.
    """

    def __init__(
        self,
        endpoints: list[str] | tuple[str, ...] = DEFAULT_FEED_ENDPOINTS,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize feed client.

        Args:
            endpoints: Feed URLs polled by fetch_all()
            timeout: Per-request timeout in seconds
        """
        self.endpoints = list(endpoints)
        self.timeout = timeout

    def fetch_document(self, endpoint: str, timeout: float | None = None) -> dict[str, Any]:
        """Fetch a raw GeoJSON document.

        This method performs HTTP I/O.

        Raises:
            requests.RequestException: If the request fails or returns non-2xx
            ValueError: If the body is not a JSON object with a features list
        """
        response = requests.get(
            endpoint,
            headers=REQUEST_HEADERS,
            timeout=timeout or self.timeout,
        )
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Feed document is not a JSON object")
        if not isinstance(data.get("features"), list):
            raise ValueError("Feed document has no features list")
        return data

    def fetch(self, endpoint: str, timeout: float | None = None) -> FetchResult:
        """Fetch and parse one endpoint.

        This method performs HTTP I/O.

        Args:
            endpoint: Feed URL
            timeout: Override for the client's timeout

        Returns:
            FetchResult; success is False on timeout, non-2xx or bad payload
        """
        try:
            data = self.fetch_document(endpoint, timeout)
        except requests.Timeout:
            logger.error("Feed request timed out: %s", endpoint)
            return FetchResult(endpoint=endpoint, success=False, error="Request timed out")
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else 0
            logger.error("Feed returned HTTP %d: %s", status, endpoint)
            return FetchResult(
                endpoint=endpoint,
                success=False,
                status_code=status,
                error=f"HTTP error {status}",
            )
        except requests.RequestException as e:
            logger.error("Feed request failed for %s: %s", endpoint, str(e))
            return FetchResult(endpoint=endpoint, success=False, error=str(e))
        except ValueError as e:
            logger.error("Feed returned invalid JSON from %s: %s", endpoint, str(e))
            return FetchResult(endpoint=endpoint, success=False, status_code=200, error=str(e))

        try:
            events = parse_events(data)
        except (AttributeError, TypeError, ValueError) as e:
            logger.error("Feed returned a malformed document from %s: %s", endpoint, str(e))
            return FetchResult(endpoint=endpoint, success=False, status_code=200, error=str(e))

        logger.info("Fetched %d events from %s", len(events), endpoint)

        return FetchResult(
            endpoint=endpoint,
            success=True,
            events=events,
            status_code=200,
        )

    def fetch_all(
        self,
        endpoints: list[str] | None = None,
        timeout: float | None = None,
    ) -> list[FetchResult]:
        """Fetch several endpoints concurrently.

        Each endpoint is independent; results are returned in endpoint
        order whether or not they succeeded.

        Args:
            endpoints: URLs to fetch (defaults to the configured endpoints)
            timeout: Override for the client's timeout

        Returns:
            One FetchResult per endpoint
        """
        endpoints = list(endpoints) if endpoints is not None else self.endpoints
        if not endpoints:
            return []

        deadline = (timeout or self.timeout) + DEADLINE_GRACE_SECONDS
        executor = ThreadPoolExecutor(
            max_workers=len(endpoints),
            thread_name_prefix="feed-fetch",
        )
        try:
            futures = [executor.submit(self.fetch, url, timeout) for url in endpoints]
            wait(futures, timeout=deadline)
        finally:
            # Stragglers are abandoned, not joined
            executor.shutdown(wait=False, cancel_futures=True)

        results = []
        for url, future in zip(endpoints, futures):
            if future.done() and not future.cancelled():
                results.append(future.result())
            else:
                logger.error("Feed request exceeded %.1fs deadline: %s", deadline, url)
                results.append(FetchResult(
                    endpoint=url,
                    success=False,
                    error="Deadline exceeded",
                ))
        return results
