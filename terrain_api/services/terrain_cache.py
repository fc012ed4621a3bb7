"""
Terrain Result Cache

Cache keys are derived from the center rounded to 4 decimals (about 11 m) and
the two area parameters, so repeated requests for nearly the same place share
an entry. Entries hold the JSON text of the terrain result and expire after a
fixed TTL.

The store is best-effort: any MongoDB failure is logged and treated as a miss
(on read) or a dropped write (on store).
"""

import json
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pymongo.errors import PyMongoError

from terrain_api import config
from terrain_api.services.database import get_cache_collection

logger = logging.getLogger(__name__)

KEY_PREFIX = "terrain"


def _format_param(value: float) -> str:
    """Format an area parameter without a trailing ``.0`` for whole numbers."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def make_cache_key(latitude: float, longitude: float, size: float, grid: int) -> str:
    """Deterministic cache key for a resolved center and area parameters."""
    return f"{KEY_PREFIX}:{latitude:.4f}:{longitude:.4f}:{_format_param(size)}:{int(grid)}"


def make_query_cache_key(query: str, size: float, grid: int) -> str:
    """Cache key for a free-text query, normalised for case and whitespace."""
    normalised = " ".join(query.lower().split())
    return f"{KEY_PREFIX}:q:{normalised}:{_format_param(size)}:{int(grid)}"


class TerrainCache:
    """MongoDB-backed key-value store with per-entry expiry."""

    def __init__(self, collection, ttl_seconds: int = None):
        self.collection = collection
        self.ttl_seconds = ttl_seconds or config.CACHE_TTL_SECONDS

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the cached terrain result for ``key``, or None."""
        try:
            document = await asyncio.to_thread(self.collection.find_one, {"_id": key})
        except PyMongoError as e:
            logger.warning(f"Cache lookup failed for {key}: {e}")
            return None

        if not document:
            return None

        expires_at = document.get("expires_at")
        if expires_at is not None:
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= datetime.now(timezone.utc):
                logger.debug(f"Cache entry {key} expired")
                return None

        try:
            return json.loads(document["value"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

    async def put(self, key: str, result: Dict[str, Any], ttl_seconds: int = None) -> bool:
        """
        Store a terrain result under ``key``.

        Returns:
            True if the write succeeded
        """
        now = datetime.now(timezone.utc)
        document = {
            "_id": key,
            "value": json.dumps(result),
            "created_at": now,
            "expires_at": now + timedelta(seconds=ttl_seconds or self.ttl_seconds),
        }
        try:
            await asyncio.to_thread(self.collection.replace_one, {"_id": key}, document, upsert=True)
        except PyMongoError as e:
            logger.warning(f"Cache store failed for {key}: {e}")
            return False
        return True


def get_terrain_cache() -> Optional[TerrainCache]:
    """Return the configured cache, or None when caching is disabled."""
    collection = get_cache_collection()
    if collection is None:
        return None
    return TerrainCache(collection)
