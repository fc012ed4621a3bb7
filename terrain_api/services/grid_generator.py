"""
Sample Grid Generator

Builds the regular lattice of coordinates covering a square area around a
center point. The output order is row-major: latitude index ``i`` is the
outer loop and longitude index ``j`` the inner loop, and every downstream
stage keeps that order.

The longitude span is widened by ``1 / cos(latitude)`` to compensate for
meridian convergence. Near the poles this diverges; that is a known
limitation of the flat approximation and is not corrected.
"""

import math
from typing import List, Tuple

import numpy as np

from terrain_api.services.errors import ValidationError

KM_PER_DEG_LAT = 111.0
COORDINATE_DECIMALS = 6


def grid_fractions(grid: int) -> np.ndarray:
    """Offset fractions ``i / (grid - 1) - 0.5`` for ``i`` in ``[0, grid)``."""
    if grid < 2:
        raise ValidationError("Grid resolution must be at least 2")
    return np.arange(grid) / (grid - 1) - 0.5


def generate_grid(center_lat: float, center_lon: float,
                  size_km: float, grid: int) -> List[Tuple[float, float]]:
    """
    Generate ``grid * grid`` sample coordinates around a center point.

    Args:
        center_lat: Center latitude in decimal degrees
        center_lon: Center longitude in decimal degrees
        size_km: Side length of the sampled square in kilometres
        grid: Number of samples along each side (at least 2)

    Returns:
        List of (latitude, longitude) tuples rounded to 6 decimals, row-major
    """
    fractions = grid_fractions(grid)

    km_per_deg_lon = KM_PER_DEG_LAT * math.cos(math.radians(center_lat))
    lat_offsets = fractions * size_km / KM_PER_DEG_LAT
    lon_offsets = fractions * size_km / km_per_deg_lon

    points = []
    for lat_offset in lat_offsets:
        lat = round(float(center_lat + lat_offset), COORDINATE_DECIMALS)
        for lon_offset in lon_offsets:
            lon = round(float(center_lon + lon_offset), COORDINATE_DECIMALS)
            points.append((lat, lon))
    return points
