"""
Terrain Pipeline

Orchestrates one terrain request: cache lookup, center resolution, grid
generation, elevation fetch, aggregation and cache store. Each call owns its
own center, grid and result; the cache is the only shared state.

Text queries are cached under two keys: one derived from the normalised query
text, so repeat queries skip the geocoder, and one derived from the resolved
center, shared with explicit-coordinate requests for the same place.
"""

import logging
from typing import Any, Dict, List, Optional

from terrain_api.services.aggregator import build_terrain_result, elevation_stats
from terrain_api.services.elevation_fetcher import ElevationFetcher
from terrain_api.services.errors import ValidationError
from terrain_api.services.geocoder import Geocoder, has_coordinates, parse_coordinates, resolve_center
from terrain_api.services.grid_generator import generate_grid
from terrain_api.services.telemetry import PipelineObserver
from terrain_api.services.terrain_cache import TerrainCache, make_cache_key, make_query_cache_key

logger = logging.getLogger(__name__)


async def _cache_lookup(cache: Optional[TerrainCache], key: str,
                        observer: PipelineObserver) -> Optional[Dict[str, Any]]:
    if cache is None:
        return None
    with observer.span("cache.get", "Cache Lookup"):
        return await cache.get(key)


async def _cache_store(cache: Optional[TerrainCache], keys: List[str],
                       result: Dict[str, Any], observer: PipelineObserver) -> None:
    if cache is None:
        return
    with observer.span("cache.put", "Cache Store"):
        for key in keys:
            await cache.put(key, result)


def _cached_response(result: Dict[str, Any], observer: PipelineObserver) -> Dict[str, Any]:
    observer.set_tag("cache_hit", "true")
    return {**result, "cached": True}


async def build_terrain(query: Optional[str], lat: Optional[str], lon: Optional[str],
                        size: float, grid: int,
                        cache: Optional[TerrainCache] = None,
                        observer: Optional[PipelineObserver] = None) -> Dict[str, Any]:
    """
    Produce the terrain result for a location request.

    Args:
        query: Free-text place name; takes precedence over ``lat``/``lon``
        lat: Latitude as supplied by the caller
        lon: Longitude as supplied by the caller
        size: Side length of the area in kilometres
        grid: Samples per side
        cache: Result cache, or None to always recompute
        observer: Telemetry observer

    Returns:
        Terrain result dictionary; includes ``"cached": True`` on a cache hit

    Raises:
        ValidationError: Missing or invalid location parameters
        NotFoundError: The query has no geocoding candidates
        UpstreamError: A geocoding or elevation call failed
        EmptyDataError: No valid elevation in the area
    """
    observer = observer or PipelineObserver()
    observer.set_tag("request_type", "query" if query else "coordinates")
    observer.set_tag("grid_size", grid)
    observer.set_tag("area_size_km", size)
    if query:
        observer.set_tag("location_query", query[:100])

    center = None
    if query:
        lookup_key = make_query_cache_key(query, size, grid)
    elif has_coordinates(lat, lon):
        center = parse_coordinates(lat, lon)
        lookup_key = make_cache_key(center.latitude, center.longitude, size, grid)
    else:
        observer.set_tag("error_type", "missing_params")
        raise ValidationError("Provide ?q=location or ?lat=X&lon=Y")

    cached = await _cache_lookup(cache, lookup_key, observer)
    if cached is not None:
        logger.info(f"Cache hit for {lookup_key}")
        return _cached_response(cached, observer)

    store_keys = [lookup_key]
    if center is None:
        with observer.span("http.client", "Nominatim Geocoding"):
            observer.set_tag("api_service", "nominatim")
            async with Geocoder() as geocoder:
                center = await resolve_center(query, lat, lon, geocoder)
        observer.set_tag("geocoding_result", "found")

        center_key = make_cache_key(center.latitude, center.longitude, size, grid)
        cached = await _cache_lookup(cache, center_key, observer)
        if cached is not None:
            logger.info(f"Cache hit for {center_key} (resolved from query)")
            await _cache_store(cache, [lookup_key], cached, observer)
            return _cached_response(cached, observer)
        store_keys.append(center_key)

    observer.set_tag("cache_hit", "false")
    observer.set_context("coordinates", {
        "centerLat": center.latitude,
        "centerLon": center.longitude,
        "name": center.name,
    })

    points = generate_grid(center.latitude, center.longitude, size, grid)
    logger.info(f"Generated {len(points)} sample points around {center.name}")

    async with ElevationFetcher(observer=observer) as fetcher:
        elevations = await fetcher.fetch_elevations(points)

    stats = elevation_stats(elevations)
    observer.set_context("elevation_stats", stats)
    if stats["validPoints"] == 0:
        observer.set_tag("error_type", "no_elevation_data")

    result = build_terrain_result(center, elevations, grid)
    await _cache_store(cache, store_keys, result, observer)
    return result
