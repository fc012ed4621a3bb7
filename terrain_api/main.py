"""
Terrain Grid API
================

FastAPI application returning grids of real-world elevation samples around a
place name or a pair of coordinates.

PIPELINE:
1. Cache lookup (MongoDB, optional)
2. Center resolution (Nominatim geocoding or explicit lat/lon)
3. Sample grid generation (``grid x grid`` lattice over ``size`` km)
4. Elevation fetch (Open-Topo-Data, sequential paced batches of 100)
5. Aggregation (min/max over valid samples) and cache store

ENDPOINTS:
- ``GET /``: Elevation grid (``q`` or ``lat``/``lon``, ``size``, ``grid``)
- ``GET /status/health``: Liveness
- ``GET /debug-sentry``: Admin-only Sentry check

Run locally::

    uvicorn terrain_api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from terrain_api.routers import debug, status, terrain
from terrain_api.services.database import close_mongo_connection, connect_to_mongo
from terrain_api.services.telemetry import init_sentry

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

init_sentry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    connect_to_mongo()
    yield
    close_mongo_connection()


app = FastAPI(
    title="Terrain Grid API",
    description="""
## Elevation grids for any place on Earth

Provide a place name (`?q=Grand Canyon`) or coordinates (`?lat=36.0544&lon=-112.1401`),
an area size in km (`size`, default 10) and a resolution (`grid`, e.g. 20, 30 or 40).
The response holds `grid * grid` elevations in metres, row by row, with their min and max.

### DATA SOURCES
- **Geocoding**: OpenStreetMap Nominatim
- **Elevation**: SRTM via Open-Topo-Data API
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(status.router, tags=["System Status"])
app.include_router(debug.router)
app.include_router(terrain.router, tags=["Terrain"])
