"""
Elevation aggregation and terrain result assembly.

Invalid samples (None, NaN, non-numeric) keep their position in the output
array but are excluded from the min/max statistics.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from terrain_api.services.errors import EmptyDataError
from terrain_api.services.geocoder import CenterPoint


def is_valid_elevation(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def valid_elevations(samples: List[Any]) -> np.ndarray:
    return np.array([s for s in samples if is_valid_elevation(s)], dtype=float)


def elevation_range(samples: List[Any]) -> Tuple[float, float]:
    """
    Compute (min, max) over the valid samples.

    Raises:
        EmptyDataError: If no sample is valid
    """
    valid = valid_elevations(samples)
    if valid.size == 0:
        raise EmptyDataError("No valid elevation data for this location")
    return float(valid.min()), float(valid.max())


def elevation_stats(samples: List[Any]) -> Dict[str, Optional[float]]:
    """Diagnostic counters describing a sample set."""
    valid = valid_elevations(samples)
    stats = {
        "totalPoints": len(samples),
        "validPoints": int(valid.size),
        "invalidPoints": len(samples) - int(valid.size),
        "minElevation": None,
        "maxElevation": None,
        "elevationRange": None,
    }
    if valid.size:
        stats["minElevation"] = float(valid.min())
        stats["maxElevation"] = float(valid.max())
        stats["elevationRange"] = stats["maxElevation"] - stats["minElevation"]
    return stats


def build_terrain_result(center: CenterPoint, elevations: List[Optional[float]],
                         grid: int) -> Dict[str, Any]:
    """
    Assemble the terrain result returned to clients and stored in the cache.

    Raises:
        EmptyDataError: If no elevation sample is valid
    """
    if len(elevations) != grid * grid:
        raise ValueError(f"Expected {grid * grid} elevations, got {len(elevations)}")

    min_elev, max_elev = elevation_range(elevations)
    return {
        "name": center.name,
        "center": [center.latitude, center.longitude],
        "elevations": list(elevations),
        "minElev": min_elev,
        "maxElev": max_elev,
        "grid": grid,
    }
