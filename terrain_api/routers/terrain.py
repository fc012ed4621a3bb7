"""
Terrain Router
==============

The single public endpoint of the service: a grid of elevation samples around
a place.

Usage Example::

    # By place name, 10 km square, 40 x 40 samples
    GET /?q=Grand%20Canyon

    # By coordinates, 20 km square, 20 x 20 samples
    GET /?lat=36.0544&lon=-112.1401&size=20&grid=20

Responses:
    - 200: ``{name, center, elevations, minElev, maxElev, grid}`` plus
      ``cached: true`` when served from the cache
    - 400: Missing or invalid parameters
    - 404: Location not found
    - 500: Upstream or aggregation failure

All errors use the body ``{"error": str, "details"?: str}``.
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Query, Response
from fastapi.responses import JSONResponse

from terrain_api import config
from terrain_api.services.errors import NotFoundError, TerrainError, ValidationError
from terrain_api.services.telemetry import get_observer
from terrain_api.services.terrain_cache import get_terrain_cache
from terrain_api.services.terrain_service import build_terrain

logger = logging.getLogger(__name__)
router = APIRouter()


def parse_size(size: Optional[str]) -> float:
    """Parse the area size in km, applying the default when absent."""
    if size is None or size == "":
        return config.DEFAULT_SIZE_KM
    try:
        value = float(size)
    except ValueError:
        raise ValidationError("Invalid size")
    if not math.isfinite(value) or value <= 0 or value > config.MAX_SIZE_KM:
        raise ValidationError(f"Size must be greater than 0 and at most {config.MAX_SIZE_KM:g} km")
    return value


def parse_grid(grid: Optional[str]) -> int:
    """Parse the grid resolution, applying the default when absent."""
    if grid is None or grid == "":
        return config.DEFAULT_GRID
    try:
        value = int(grid)
    except ValueError:
        raise ValidationError("Invalid grid")
    if value < 2 or value > config.MAX_GRID:
        raise ValidationError(f"Grid must be between 2 and {config.MAX_GRID}")
    return value


def error_response(error: TerrainError) -> JSONResponse:
    body = {"error": error.message}
    if error.status_code >= 500:
        body["details"] = error.details or f"{type(error).__name__}: {error.message}"
    return JSONResponse(status_code=error.status_code, content=body)


@router.options("/", include_in_schema=False)
async def terrain_options():
    return Response(status_code=204)


@router.get(
    "/",
    summary="Elevation Grid",
    description="Return a grid of elevation samples around a place name or coordinates.",
)
async def get_terrain(
    q: Optional[str] = Query(None, description="Free-text location, e.g. 'Mount Fuji'"),
    lat: Optional[str] = Query(None, description="Center latitude in decimal degrees"),
    lon: Optional[str] = Query(None, description="Center longitude in decimal degrees"),
    size: Optional[str] = Query(None, description="Area side length in km (default 10)"),
    grid: Optional[str] = Query(None, description="Samples per side as a whole number, e.g. 20, 30 or 40"),
):
    """
    Resolve the location, sample a ``grid x grid`` lattice over the area and
    return the elevations with their min/max.
    """
    observer = get_observer()
    try:
        area_size = parse_size(size)
        resolution = parse_grid(grid)
        result = await build_terrain(
            q, lat, lon, area_size, resolution,
            cache=get_terrain_cache(),
            observer=observer,
        )
    except (ValidationError, NotFoundError) as e:
        logger.info(f"Terrain request rejected ({e.status_code}): {e.message}")
        return error_response(e)
    except TerrainError as e:
        logger.error(f"Terrain request failed: {e.message}")
        observer.set_tag("error_type", type(e).__name__)
        observer.capture_exception(e)
        return error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error building terrain: {e}")
        observer.set_tag("error_type", "unhandled")
        observer.capture_exception(e)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(e)},
        )

    return result
