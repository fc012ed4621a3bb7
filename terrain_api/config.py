"""
Terrain API Configuration
=========================

Environment-driven settings for the terrain grid service. Values are read once
at import time from the process environment (and from a ``.env`` file when one
is present).

Environment Variables:
    - NOMINATIM_URL: Geocoding search endpoint
    - GEOCODER_USER_AGENT: User-Agent sent to the geocoder (Nominatim requires one)
    - ELEVATION_API_URL: Open-Topo-Data base URL
    - ELEVATION_DATASET: Open-Topo-Data dataset name (default: srtm90m)
    - ELEVATION_BATCH_SIZE: Maximum locations per elevation request (default: 100)
    - ELEVATION_BATCH_DELAY: Seconds to wait between elevation requests (default: 2.0)
    - DEFAULT_SIZE_KM / DEFAULT_GRID: Request defaults
    - MAX_SIZE_KM / MAX_GRID: Upper bounds accepted by the request handler
    - MONGO_URI: MongoDB connection string; leave unset to disable caching
    - MONGO_DB_NAME / CACHE_COLLECTION: Where cached terrain results live
    - CACHE_TTL_SECONDS: Cache entry lifetime (default: 30 days)
    - SENTRY_DSN / SENTRY_TRACES_SAMPLE_RATE / ENVIRONMENT: Error tracking
    - ADMIN_API_KEY: Key protecting the debug endpoint
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Upstream collaborators
NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "TerrainExplorer/1.0")

ELEVATION_API_URL = os.getenv("ELEVATION_API_URL", "https://api.opentopodata.org/v1")
ELEVATION_DATASET = os.getenv("ELEVATION_DATASET", "srtm90m")
ELEVATION_BATCH_SIZE = int(os.getenv("ELEVATION_BATCH_SIZE", "100"))
ELEVATION_BATCH_DELAY = float(os.getenv("ELEVATION_BATCH_DELAY", "2.0"))

# Request defaults and bounds
DEFAULT_SIZE_KM = float(os.getenv("DEFAULT_SIZE_KM", "10"))
DEFAULT_GRID = int(os.getenv("DEFAULT_GRID", "40"))
MAX_SIZE_KM = float(os.getenv("MAX_SIZE_KM", "200"))
MAX_GRID = int(os.getenv("MAX_GRID", "100"))

# Cache store
MONGO_URI = os.getenv("MONGO_URI")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "terrain_db")
CACHE_COLLECTION = os.getenv("CACHE_COLLECTION", "terrain_cache")
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", str(60 * 60 * 24 * 30)))

# Error tracking
SENTRY_DSN = os.getenv("SENTRY_DSN")
SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.2"))
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
RELEASE = os.getenv("RELEASE", "unknown")

ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")
