"""
Elevation Fetcher

Retrieves elevations for an ordered list of coordinates from the Open-Topo-Data
API. The API accepts at most 100 locations per request and rate limits
clients, so coordinates are sent in contiguous batches, one request at a time,
with a fixed pause between consecutive requests.

A failed batch fails the whole fetch: there are no retries and no partial
results.

Data Source: Open-Topo-Data (https://www.opentopodata.org/)
"""

import math
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from terrain_api import config
from terrain_api.services.errors import UpstreamError
from terrain_api.services.telemetry import PipelineObserver

logger = logging.getLogger(__name__)


def normalize_elevation(value: Any) -> Optional[float]:
    """Return the value as a float, or None for absent and non-numeric samples."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value


def make_batches(coordinates: List[Tuple[float, float]],
                 batch_size: int) -> List[List[Tuple[float, float]]]:
    """Split coordinates into contiguous batches of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    return [coordinates[i:i + batch_size] for i in range(0, len(coordinates), batch_size)]


class ElevationFetcher:
    """
    Sequential, paced Open-Topo-Data client.

    Use as an async context manager so the HTTP session is always closed.
    """

    def __init__(self, base_url: str = None, dataset: str = None,
                 batch_size: int = None, batch_delay: float = None,
                 observer: PipelineObserver = None):
        """
        Args:
            base_url: Open-Topo-Data API root
            dataset: Dataset name appended to the API root (e.g. ``srtm90m``)
            batch_size: Maximum coordinates per request
            batch_delay: Seconds to wait between consecutive requests
            observer: Telemetry observer notified around each request
        """
        self.base_url = (base_url or config.ELEVATION_API_URL).rstrip("/")
        self.dataset = dataset or config.ELEVATION_DATASET
        self.batch_size = batch_size or config.ELEVATION_BATCH_SIZE
        self.batch_delay = config.ELEVATION_BATCH_DELAY if batch_delay is None else batch_delay
        self.observer = observer or PipelineObserver()
        self.session = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.dataset}"

    def _build_url(self, batch: List[Tuple[float, float]]) -> str:
        locations = "|".join(f"{lat:.6f},{lon:.6f}" for lat, lon in batch)
        return f"{self.endpoint}?locations={locations}"

    async def fetch_elevations(self, coordinates: List[Tuple[float, float]]) -> List[Optional[float]]:
        """
        Fetch elevations for every coordinate, preserving input order.

        Args:
            coordinates: Ordered (latitude, longitude) tuples

        Returns:
            Elevations in metres aligned 1:1 with ``coordinates``; None where
            the dataset has no value

        Raises:
            UpstreamError: If any batch request fails or returns malformed data
        """
        batches = make_batches(coordinates, self.batch_size)
        total_batches = len(batches)
        logger.info(f"Fetching elevation for {len(coordinates)} coordinates "
                    f"in {total_batches} batches of up to {self.batch_size}")

        elevations = []
        with self.observer.span("http.client", "Open-Topo-Data Elevation Fetch") as span:
            span.set_data("total_locations", len(coordinates))
            span.set_data("total_batches", total_batches)
            self.observer.set_tag("api_service", "opentopodata")

            for batch_num, batch in enumerate(batches, start=1):
                with self.observer.span("http.client", f"Elevation Batch {batch_num}/{total_batches}") as batch_span:
                    batch_span.set_data("batch_size", len(batch))
                    elevations.extend(await self._fetch_batch(batch))

                logger.debug(f"Fetched batch {batch_num}/{total_batches}")

                # Pace requests, but not after the last batch
                if batch_num < total_batches:
                    await asyncio.sleep(self.batch_delay)

        return elevations

    async def _fetch_batch(self, batch: List[Tuple[float, float]]) -> List[Optional[float]]:
        """Fetch a single batch in one API call."""
        if not self.session:
            raise UpstreamError("Elevation session not initialized. Use async context manager.")

        url = self._build_url(batch)
        try:
            async with self.session.get(url) as response:
                if response.status != 200:
                    error_text = await response.text()
                    self.observer.set_tag("elevation_api_status", response.status)
                    logger.error(f"Elevation API HTTP error {response.status}")
                    raise UpstreamError(
                        f"Elevation API failed: {response.status} - {error_text[:200]}"
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Elevation request error: {e}")
            raise UpstreamError("Elevation API failed", details=str(e)) from e

        return self._parse_batch(data, len(batch))

    def _parse_batch(self, data: Dict[str, Any], expected: int) -> List[Optional[float]]:
        if not isinstance(data, dict) or data.get("status") != "OK" or not data.get("results"):
            error = data.get("error") if isinstance(data, dict) else None
            self.observer.set_context("elevation_error", {
                "status": data.get("status") if isinstance(data, dict) else None,
                "error": error,
            })
            raise UpstreamError(f"Elevation API error: {error or 'Unknown error'}")

        results = data["results"]
        if len(results) != expected:
            raise UpstreamError(
                f"Elevation API error: expected {expected} results, got {len(results)}"
            )

        elevations = []
        for result in results:
            if not isinstance(result, dict):
                raise UpstreamError("Elevation API error: malformed result")
            elevations.append(normalize_elevation(result.get("elevation")))
        return elevations
